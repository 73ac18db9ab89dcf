"""Service-to-service endpoints guarded by a shared token."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from intake_tracker.api.models import InternalEventRequest  # noqa: TC001
from intake_tracker.domain.events import RealtimeEventType

if TYPE_CHECKING:
    from intake_tracker.containers import AppContainer

router = APIRouter(prefix="/internal", tags=["internal"])

# Ledger events are only emitted by the ledger itself.
_COLLABORATOR_EVENTS = {
    RealtimeEventType.MEALPLAN_GENERATED,
    RealtimeEventType.PROFILE_UPDATED,
}


def _get_internal_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.internal_token


async def require_internal(
    x_internal_token: str | None = Header(default=None),
    internal_token: str = Depends(_get_internal_token),
) -> None:
    """Ensure requests include the shared internal token."""
    if not x_internal_token or x_internal_token != internal_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/events", dependencies=[Depends(require_internal)])
async def publish_event(
    body: InternalEventRequest, request: Request
) -> dict[str, object]:
    """Push a meal plan or profile event to the user's live sessions."""
    container: AppContainer = request.app.state.container
    if body.type not in {event.value for event in _COLLABORATOR_EVENTS}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported event type: {body.type}",
        )
    delivered_to = container.propagator.publish(body.user_id, body.type, body.payload)
    return {"status": "ok", "channels": delivered_to}


@router.post("/users/{user_id}/disconnect", dependencies=[Depends(require_internal)])
async def disconnect_user(user_id: UUID, request: Request) -> dict[str, str]:
    """Tear down a user's live channels after logout or token revocation."""
    container: AppContainer = request.app.state.container
    await container.propagator.disconnect_user(user_id)
    return {"status": "ok"}
