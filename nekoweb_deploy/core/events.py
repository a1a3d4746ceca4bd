"""In-process event bus for deployment runs."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass
class Event:
    """A deployment event."""

    event_type: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        return {
            "event": self.event_type,
            **self.data,
            "timestamp": self.timestamp.isoformat(),
        }


class EventBus:
    """Simple event bus for deployment run events."""

    def __init__(self):
        self._subscribers: dict[UUID, asyncio.Queue[Event]] = {}
        self._wildcard: list[asyncio.Queue[Event]] = []

    def subscribe(self, run_id: UUID | None = None) -> asyncio.Queue[Event]:
        """Subscribe to events for one run, or to every run when ``run_id`` is None."""
        if run_id is None:
            queue: asyncio.Queue[Event] = asyncio.Queue()
            self._wildcard.append(queue)
            return queue
        if run_id not in self._subscribers:
            self._subscribers[run_id] = asyncio.Queue()
        return self._subscribers[run_id]

    def unsubscribe(self, run_id: UUID) -> None:
        """Unsubscribe from run events."""
        self._subscribers.pop(run_id, None)

    def unsubscribe_all(self, queue: asyncio.Queue[Event]) -> None:
        """Drop a queue returned by ``subscribe()`` without a run id."""
        if queue in self._wildcard:
            self._wildcard.remove(queue)

    async def publish(self, run_id: UUID, event: Event) -> None:
        """Publish an event for a run."""
        event.data.setdefault("run_id", str(run_id))
        if run_id in self._subscribers:
            await self._subscribers[run_id].put(event)
        for queue in self._wildcard:
            await queue.put(event)

    async def publish_stage_started(self, run_id: UUID, stage: str) -> None:
        """Publish a stage started event."""
        await self.publish(
            run_id,
            Event(event_type="stage_started", data={"stage": stage}),
        )

    async def publish_stage_completed(
        self, run_id: UUID, stage: str, duration_ms: int
    ) -> None:
        """Publish a stage completed event."""
        await self.publish(
            run_id,
            Event(
                event_type="stage_completed",
                data={"stage": stage, "duration_ms": duration_ms},
            ),
        )

    async def publish_warning(
        self, run_id: UUID, message: str, stage: str | None = None
    ) -> None:
        """Publish a non-fatal problem."""
        await self.publish(
            run_id,
            Event(event_type="warning", data={"message": message, "stage": stage}),
        )

    async def publish_deployment_complete(self, run_id: UUID, folder: str) -> None:
        """Publish a deployment complete event."""
        await self.publish(
            run_id,
            Event(event_type="deployment_complete", data={"folder": folder}),
        )

    async def publish_error(
        self, run_id: UUID, error: str, stage: str | None = None
    ) -> None:
        """Publish an error event."""
        await self.publish(
            run_id,
            Event(
                event_type="error",
                data={"error": error, "stage": stage},
            ),
        )


# Singleton instance
_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the event bus singleton."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus
