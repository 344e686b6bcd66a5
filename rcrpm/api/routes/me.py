"""Current user endpoint."""

from fastapi import APIRouter, Depends

from rcrpm.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return the caller as mirrored from the identity provider."""

    return {
        "id": context.user_id,
        "email": context.email,
        "name": context.name,
        "status": context.status,
    }
