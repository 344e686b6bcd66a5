"""Identity provider webhook receiver."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from rcrpm.core.config import get_settings
from rcrpm.core.security import WebhookVerificationError, verify_webhook_signature
from rcrpm.db.dependencies import get_db_session
from rcrpm.events.bus import Event, HandlerContext, event_bus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/clerk")
async def receive_clerk_webhook(request: Request, db: Session = Depends(get_db_session)) -> dict[str, object]:
    """Verify, then mirror one Clerk delivery into the database."""

    settings = get_settings()
    body = await request.body()
    try:
        verify_webhook_signature(
            headers=request.headers,
            body=body,
            secret=settings.webhook_signing_secret,
            tolerance_seconds=settings.webhook_tolerance_seconds,
        )
    except WebhookVerificationError as exc:
        logger.warning("Rejected webhook delivery: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload.") from exc

    event_type = payload.get("type") if isinstance(payload, dict) else None
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(event_type, str) or not isinstance(data, dict):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Webhook payload must contain 'type' and 'data'.",
        )

    try:
        handled = event_bus.dispatch(Event(name=f"clerk/{event_type}", data=data), HandlerContext(db=db))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Webhook %s could not be applied", event_type)
        raise

    logger.info("Webhook %s handled by %d handler(s)", event_type, handled)
    return {"received": True, "handled": handled}
