"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from uuid import UUID

from fastapi import (
    Depends,
    FastAPI,
    Header,
    HTTPException,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from intake_tracker.api.errors import register_exception_handlers
from intake_tracker.api.internal import router as internal_router
from intake_tracker.api.models import (
    CatalogEntryRequest,
    FinalizeRequest,
    GoalRequest,
    ManualEntryRequest,
    ScanEntryRequest,
)
from intake_tracker.app_logging import configure_logging
from intake_tracker.containers import AppContainer
from intake_tracker.domain.errors import DependencyError
from intake_tracker.domain.intake import (
    CatalogEntryDraft,
    EntryDraft,
    EntrySource,
    ManualEntryDraft,
    ScanEntryDraft,
)

WS_UNAUTHORIZED = 4401
WS_TRY_AGAIN_LATER = 1013


def _get_container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_user(
    authorization: str | None = Header(default=None),
    container: AppContainer = Depends(_get_container),
) -> UUID:
    """Resolve the bearer token to a user id."""
    user_id = await _authenticate(container, _bearer_token(authorization))
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return user_id


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container
    register_exception_handlers(app)
    app.include_router(internal_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/tracking/goals")
    async def get_goals(
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Return the goal in effect and where it came from."""
        goal = await container.goal_resolver.resolve_goal(user_id)
        return {"data": goal.as_dict(), "source": goal.source.value}

    @app.post("/tracking/goals")
    async def save_goals(
        body: GoalRequest,
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Store a manual goal override."""
        goal = await container.goal_resolver.set_manual_goal(
            user_id, body.model_dump()
        )
        return {"data": goal.as_dict(), "source": goal.source.value}

    @app.delete("/tracking/goals")
    async def clear_goals(
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Drop the manual override and return the goal now in effect."""
        await container.goal_resolver.clear_manual_goal(user_id)
        goal = await container.goal_resolver.resolve_goal(user_id)
        return {"data": goal.as_dict(), "source": goal.source.value}

    @app.get("/tracking")
    async def list_intakes(
        start: date,
        end: date,
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Return logged days between start and end."""
        intakes = await container.ledger.list_intakes(user_id, start, end)
        return {
            "count": len(intakes),
            "data": [intake.as_dict() for intake in intakes],
        }

    @app.get("/tracking/{day}")
    async def get_intake(
        day: date,
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Return the day's ledger; empty when nothing is logged."""
        intake = await container.ledger.get_intake(user_id, day)
        return {"data": intake.as_dict()}

    async def _add(
        container: AppContainer, user_id: UUID, day: date, draft: EntryDraft
    ) -> dict[str, object]:
        intake = await container.ledger.add_entry(user_id, day, draft)
        return {"data": intake.as_dict()}

    @app.post("/tracking/{day}/food")
    async def add_food(
        day: date,
        body: CatalogEntryRequest,
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Log a catalog food by id."""
        draft = CatalogEntryDraft(
            meal_type=body.meal_type,
            source=EntrySource.CATALOG_FOOD,
            ref_id=body.ref_id,
            quantity=body.quantity,
        )
        return await _add(container, user_id, day, draft)

    @app.post("/tracking/{day}/recipe")
    async def add_recipe(
        day: date,
        body: CatalogEntryRequest,
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Log servings of a catalog recipe."""
        draft = CatalogEntryDraft(
            meal_type=body.meal_type,
            source=EntrySource.CATALOG_RECIPE,
            ref_id=body.ref_id,
            quantity=body.quantity,
        )
        return await _add(container, user_id, day, draft)

    @app.post("/tracking/{day}/manual")
    async def add_manual(
        day: date,
        body: ManualEntryRequest,
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Log a free-form entry with absolute nutrition."""
        draft = ManualEntryDraft(
            meal_type=body.meal_type,
            food_name=body.food_name,
            nutrition=body.nutrition.to_vector(),
            quantity=body.quantity,
        )
        return await _add(container, user_id, day, draft)

    @app.post("/tracking/{day}/scan")
    async def add_scan(
        day: date,
        body: ScanEntryRequest,
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Log a scanned food from its per-serving guess."""
        draft = ScanEntryDraft(
            meal_type=body.meal_type,
            food_name=body.food_name,
            per_serving=body.nutrition.to_vector(),
            quantity=body.quantity,
        )
        return await _add(container, user_id, day, draft)

    @app.delete("/tracking/{day}/entries/{entry_id}")
    async def remove_entry(
        day: date,
        entry_id: UUID,
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Remove one entry from the day's ledger."""
        intake = await container.ledger.remove_entry(user_id, day, entry_id)
        return {"data": intake.as_dict()}

    @app.post("/tracking/{day}/finalize")
    async def finalize_meal(
        day: date,
        body: FinalizeRequest,
        user_id: UUID = Depends(require_user),
        container: AppContainer = Depends(_get_container),
    ) -> dict[str, object]:
        """Finalize a meal and report the day against the goal."""
        record = await container.meal_finalizer.finalize_meal(
            user_id, day, body.meal_type
        )
        return {"data": record.as_dict()}

    @app.websocket("/ws")
    async def realtime(websocket: WebSocket) -> None:
        """Live channel receiving ledger, meal plan and profile events."""
        state_container: AppContainer = websocket.app.state.container
        token = websocket.query_params.get("token") or _bearer_token(
            websocket.headers.get("authorization")
        )
        try:
            user_id = await _authenticate(state_container, token)
        except DependencyError as exc:
            logger.error("Realtime handshake failed: %s", exc.message)
            await websocket.close(code=WS_TRY_AGAIN_LATER)
            return
        if user_id is None:
            await websocket.close(code=WS_UNAUTHORIZED)
            return
        await websocket.accept()
        state_container.propagator.connect(user_id, websocket)
        try:
            while True:
                message = await websocket.receive_text()
                if message == "ping":
                    await websocket.send_json({"type": "pong"})
        except WebSocketDisconnect:
            logger.info("Realtime channel closed: user_id=%s", user_id)
        finally:
            state_container.propagator.disconnect(user_id, websocket)

    return app


def _bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an 'Authorization: Bearer <token>' header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def _authenticate(container: AppContainer, token: str | None) -> UUID | None:
    if not token:
        return None
    return await asyncio.to_thread(container.authenticator.authenticate, token)
