"""Public contact form endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from rcrpm.events import notifications as events
from rcrpm.events.bus import EventPublisher, get_event_publisher
from rcrpm.models.entities import utc_now

router = APIRouter(prefix="/contact", tags=["contact"])


class GuestFormPayload(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    region: str = Field(min_length=1, max_length=255)
    district: str = Field(min_length=1, max_length=255)
    whatsapp: str = Field(min_length=1, max_length=64)
    reason: str = Field(min_length=1, max_length=5000)
    is_member: str = Field(min_length=1, max_length=64)
    recipient_email: str = Field(min_length=3, max_length=320)


@router.post("/send-guest-form")
def send_guest_form(
    payload: GuestFormPayload,
    publisher: EventPublisher = Depends(get_event_publisher),
) -> dict[str, object]:
    """Forward a visitor's request to the party contact address."""

    received_at = utc_now().strftime("%d/%m/%Y %H:%M")
    publisher.send(
        events.CONTACT_GUEST_FORM,
        {
            "to": payload.recipient_email.strip(),
            "full_name": payload.full_name.strip(),
            "region": payload.region.strip(),
            "district": payload.district.strip(),
            "whatsapp": payload.whatsapp.strip(),
            "reason": payload.reason.strip(),
            "is_member": payload.is_member.strip(),
            "received_at": received_at,
        },
    )
    return {"success": True, "received_at": received_at}
