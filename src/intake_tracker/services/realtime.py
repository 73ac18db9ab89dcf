"""Real-time fan-out of ledger changes to a user's live sessions."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

from intake_tracker.domain.errors import ValidationError
from intake_tracker.domain.events import (
    IntakeChange,
    IntakeChanged,
    RealtimeEvent,
    RealtimeEventType,
)
from intake_tracker.services.dispatch import BackgroundDispatcher
from intake_tracker.services.events import EventBus

_logger = logging.getLogger(__name__)


class RealtimeChannel(Protocol):
    """A live bidirectional connection to one client session."""

    async def send_json(self, data: Any) -> None:
        """Push a JSON message to the client."""

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        """Close the connection."""


@dataclass(eq=False)
class _ChannelSession:
    """A connected channel and the lock that keeps its pushes in order."""

    channel: RealtimeChannel
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


@dataclass
class RealtimePropagator:
    """At-most-once, best-effort push to every channel of a user.

    Pushes to one channel are delivered in publish order. Offline sessions
    are not queued for; they reconcile with a full fetch.
    """

    dispatcher: BackgroundDispatcher
    send_timeout_seconds: float = 5.0
    _channels: dict[UUID, list[_ChannelSession]] = field(
        default_factory=dict, init=False, repr=False
    )

    def connect(self, user_id: UUID, channel: RealtimeChannel) -> None:
        """Register an authenticated session's channel."""
        channels = self._channels.setdefault(user_id, [])
        if not any(session.channel is channel for session in channels):
            channels.append(_ChannelSession(channel))
        _logger.info(
            "Realtime channel connected: user_id=%s channels=%s",
            user_id,
            len(channels),
        )

    def disconnect(self, user_id: UUID, channel: RealtimeChannel) -> None:
        """Forget a channel; unknown channels are ignored."""
        channels = self._channels.get(user_id)
        if not channels:
            return
        remaining = [
            session for session in channels if session.channel is not channel
        ]
        if remaining:
            self._channels[user_id] = remaining
        else:
            del self._channels[user_id]

    async def disconnect_user(self, user_id: UUID) -> None:
        """Tear down every channel of a user (logout or token loss)."""
        for session in self._channels.pop(user_id, []):
            try:
                await session.channel.close(code=1000, reason="session ended")
            except Exception as exc:
                _logger.debug("Closing realtime channel failed: %s", exc)

    def channel_count(self, user_id: UUID) -> int:
        return len(self._channels.get(user_id, []))

    def publish(
        self,
        user_id: UUID,
        event_type: RealtimeEventType | str,
        payload: dict[str, object],
    ) -> int:
        """Schedule delivery to all of the user's channels and return their count."""
        try:
            resolved_type = RealtimeEventType(event_type)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown event type: {event_type}", field="type"
            ) from exc
        event = RealtimeEvent(type=resolved_type, user_id=user_id, payload=payload)
        sessions = list(self._channels.get(user_id, []))
        message = event.as_message()
        for session in sessions:
            self.dispatcher.schedule(
                self._deliver(user_id, session, message),
                name=f"realtime:{resolved_type.value}",
            )
        return len(sessions)

    async def _deliver(
        self, user_id: UUID, session: _ChannelSession, message: dict[str, object]
    ) -> None:
        try:
            async with session.send_lock:
                if session not in self._channels.get(user_id, []):
                    return
                await asyncio.wait_for(
                    session.channel.send_json(message),
                    timeout=self.send_timeout_seconds,
                )
        except Exception as exc:
            _logger.warning(
                "Dropping realtime channel after failed push: user_id=%s error=%s",
                user_id,
                exc,
            )
            self.disconnect(user_id, session.channel)


@dataclass
class RealtimeForwarder:
    """Turns committed ledger changes into food:added / food:removed pushes."""

    propagator: RealtimePropagator

    def register(self, event_bus: EventBus) -> None:
        event_bus.subscribe(IntakeChanged, self.on_intake_changed)

    async def on_intake_changed(self, event: IntakeChanged) -> None:
        intake = event.intake
        if event.change == IntakeChange.ADDED:
            self.propagator.publish(
                intake.user_id,
                RealtimeEventType.FOOD_ADDED,
                {"intake": intake.as_dict(), "entry": event.entry.as_dict()},
            )
        else:
            self.propagator.publish(
                intake.user_id,
                RealtimeEventType.FOOD_REMOVED,
                {"intake": intake.as_dict(), "removed_entry_id": str(event.entry.id)},
            )
