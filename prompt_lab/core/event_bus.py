"""
Event Bus - Run lifecycle notifications for observers

The workflow runner publishes one event per state transition so a UI or a
logger can follow a run incrementally instead of polling ``task_states``.

Features:
- Per-type and wildcard ("*") subscriptions with priority ordering
- Sync and async handlers
- Bounded event history
- Dead letter queue for handlers that raised

Handler failures are logged and parked; they never interrupt a run.
"""

import asyncio
import inspect
import time
import traceback
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from prompt_lab.utils.logger import get_logger

logger = get_logger(__name__)

RUN_STARTED = "run_started"
TASK_STARTED = "task_started"
TASK_COMPLETED = "task_completed"
TASK_FAILED = "task_failed"
TASK_SKIPPED = "task_skipped"
RUN_ABORTED = "run_aborted"
RUN_FINISHED = "run_finished"
RUN_RESET = "run_reset"

EVENT_TYPES = (
    RUN_STARTED,
    TASK_STARTED,
    TASK_COMPLETED,
    TASK_FAILED,
    TASK_SKIPPED,
    RUN_ABORTED,
    RUN_FINISHED,
    RUN_RESET,
)


@dataclass
class RunEvent:
    """One lifecycle notification."""
    event_type: str
    run_id: Optional[str] = None
    task_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))


@dataclass
class EventSubscription:
    """Represents a subscription to an event type."""
    subscription_id: str
    event_type: str
    handler: Callable[[RunEvent], Any]
    priority: int = 5  # 1=highest, 10=lowest
    subscriber_name: str = "unknown"


class EventBus:
    """
    Pub-sub bus for run events.

    Usage:
        bus = EventBus()

        def on_task_failed(event: RunEvent):
            print(f"{event.task_id} failed: {event.payload['state']['error']}")

        bus.subscribe("task_failed", on_task_failed, subscriber_name="console")
        runner = WorkflowRunner(workflow, capabilities, event_bus=bus)
    """

    def __init__(self, enable_history: bool = True, history_max_size: int = 1000):
        """
        Initialize the event bus.

        Args:
            enable_history: Whether to keep event history
            history_max_size: Maximum number of events to keep in history
        """
        self.subscriptions: Dict[str, List[EventSubscription]] = defaultdict(list)
        self.wildcard_subscriptions: List[EventSubscription] = []

        self.enable_history = enable_history
        self.history_max_size = history_max_size
        self.event_history: List[RunEvent] = []

        self.dead_letter_queue: List[Tuple[RunEvent, str]] = []
        self._pending: Set[asyncio.Task] = set()

        self.stats = {
            "events_published": 0,
            "handlers_executed": 0,
            "handlers_failed": 0
        }

    def subscribe(
        self,
        event_type: str,
        handler: Callable[[RunEvent], Any],
        subscriber_name: str = "unknown",
        priority: int = 5,
    ) -> str:
        """
        Subscribe to an event type.

        Args:
            event_type: Type of event to subscribe to (or "*" for all events)
            handler: Function (or coroutine function) called with the event
            subscriber_name: Name of the subscriber (for logging)
            priority: Handler priority (1=highest, 10=lowest)

        Returns:
            subscription_id: Unique subscription ID (for unsubscribing)

        Raises:
            ValueError: Unknown event type
        """
        if event_type != "*" and event_type not in EVENT_TYPES:
            raise ValueError(
                f"Unknown event type '{event_type}'. Must be one of: {', '.join(EVENT_TYPES)}"
            )

        subscription = EventSubscription(
            subscription_id=str(uuid.uuid4()),
            event_type=event_type,
            handler=handler,
            priority=priority,
            subscriber_name=subscriber_name
        )

        if event_type == "*":
            self.wildcard_subscriptions.append(subscription)
            self.wildcard_subscriptions.sort(key=lambda s: s.priority)
        else:
            self.subscriptions[event_type].append(subscription)
            self.subscriptions[event_type].sort(key=lambda s: s.priority)
        logger.debug(f"Subscription added: {subscriber_name} -> {event_type}")

        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription; returns True if it existed."""
        for subs in [self.wildcard_subscriptions, *self.subscriptions.values()]:
            for i, sub in enumerate(subs):
                if sub.subscription_id == subscription_id:
                    subs.pop(i)
                    logger.debug(f"Subscription removed: {sub.subscriber_name}")
                    return True
        return False

    def _matching(self, event: RunEvent) -> List[EventSubscription]:
        typed_subs = self.subscriptions.get(event.event_type, [])
        return list(typed_subs) + list(self.wildcard_subscriptions)

    def _record(self, event: RunEvent) -> None:
        self.stats["events_published"] += 1
        logger.debug(f"Event published: {event.event_type} (task={event.task_id})")
        if self.enable_history:
            self.event_history.append(event)
            if len(self.event_history) > self.history_max_size:
                self.event_history = self.event_history[-self.history_max_size:]

    def _handler_failed(self, event: RunEvent, subscription: EventSubscription, error: Exception) -> None:
        self.stats["handlers_failed"] += 1
        logger.error(
            f"Handler {subscription.subscriber_name} failed for event {event.event_type}: {error}"
        )
        logger.debug(traceback.format_exc())
        self.dead_letter_queue.append((event, str(error)))

    async def publish(self, event: RunEvent) -> None:
        """Deliver ``event`` to matching subscribers in priority order, awaiting async handlers."""
        self._record(event)
        for subscription in self._matching(event):
            try:
                result = subscription.handler(event)
                if inspect.isawaitable(result):
                    await result
                self.stats["handlers_executed"] += 1
            except Exception as e:
                self._handler_failed(event, subscription, e)

    def publish_nowait(self, event: RunEvent) -> None:
        """
        Deliver ``event`` from synchronous code.

        Async handlers are scheduled on the running loop; without one they
        are dropped with a warning.
        """
        self._record(event)
        for subscription in self._matching(event):
            try:
                result = subscription.handler(event)
            except Exception as e:
                self._handler_failed(event, subscription, e)
                continue

            if inspect.iscoroutine(result):
                try:
                    loop = asyncio.get_running_loop()
                except RuntimeError:
                    result.close()
                    logger.warning(
                        f"No running event loop; async handler {subscription.subscriber_name} "
                        f"not called for {event.event_type}"
                    )
                    continue
                pending = loop.create_task(self._async_handler_wrapper(result, event, subscription))
                self._pending.add(pending)
                pending.add_done_callback(self._pending.discard)
            else:
                self.stats["handlers_executed"] += 1

    async def _async_handler_wrapper(self, coro: Any, event: RunEvent, subscription: EventSubscription) -> None:
        try:
            await coro
            self.stats["handlers_executed"] += 1
        except Exception as e:
            self._handler_failed(event, subscription, e)

    def get_event_history(self, event_type: Optional[str] = None, limit: int = 100) -> List[RunEvent]:
        """Recorded events in publish order, optionally filtered by type."""
        history = self.event_history
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        return history[-limit:]

    def get_statistics(self) -> Dict[str, Any]:
        return {
            **self.stats,
            "active_subscriptions": sum(len(subs) for subs in self.subscriptions.values()),
            "wildcard_subscriptions": len(self.wildcard_subscriptions),
            "dead_letter_queue_size": len(self.dead_letter_queue),
            "history_size": len(self.event_history)
        }

    def clear_dead_letter_queue(self) -> None:
        cleared = len(self.dead_letter_queue)
        self.dead_letter_queue.clear()
        logger.info(f"Dead letter queue cleared ({cleared} events)")
