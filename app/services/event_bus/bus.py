"""
Queue-backed event bus for asynchronous messaging between components.

Publishers never wait on subscribers: events are put on a bounded queue and a
single dispatcher task delivers them in FIFO order. When the queue is full the
event is dropped and logged.
"""
import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Dict, List, Any, Set, Optional, Tuple

from app.services.event_bus.events import EventType, Event
from app.utils.datetime import utc_now

logger = logging.getLogger("ledgerflow.eventbus")

Subscriber = Callable[[Event], Awaitable[None]]


class EventBus:
    """
    Event bus with a bounded queue and one dispatcher task.

    Subscriber failures are recorded and logged, never propagated to publishers.
    """

    def __init__(self, max_queue_size: int = 1000):
        """Initialize the event bus."""
        self._subscribers: Dict[str, List[Tuple[str, Subscriber]]] = {}
        self._subscriber_ids: Dict[str, Set[str]] = {}
        self._lock = asyncio.Lock()
        self._max_queue_size = max_queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._dispatcher: Optional[asyncio.Task] = None
        self._initialized = False
        self._failed_deliveries: Dict[str, List[Dict[str, Any]]] = {}
        self._max_failures = 100  # per subscriber
        self.dropped_events = 0

    @property
    def is_running(self) -> bool:
        return self._dispatcher is not None and not self._dispatcher.done()

    async def initialize(self) -> None:
        """Create the queue and start the dispatcher on the running loop."""
        if self._initialized:
            return

        logger.info("Initializing event bus")
        self._queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._dispatcher = asyncio.create_task(self._dispatch_loop(), name="event-bus-dispatcher")
        self._initialized = True

    async def shutdown(self, timeout: float = 5.0) -> None:
        """
        Deliver what is already queued, then stop the dispatcher.

        Args:
            timeout: Seconds to wait for the queue to drain
        """
        if not self._initialized:
            return

        logger.info("Shutting down event bus")
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Event bus shutdown with {self._queue.qsize()} undelivered events")

        self._dispatcher.cancel()
        try:
            await self._dispatcher
        except asyncio.CancelledError:
            pass

        self._initialized = False
        self._dispatcher = None
        self._queue = None

        async with self._lock:
            self._subscribers.clear()
            self._subscriber_ids.clear()

    async def publish(self, event: Event) -> bool:
        """
        Queue an event for delivery.

        Args:
            event: Event to publish

        Returns:
            bool: True if queued, False if dropped because the queue is full
        """
        if not self._initialized:
            await self.initialize()

        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped_events += 1
            logger.warning(
                f"Event queue full ({self._max_queue_size}), dropping {event.event_type.value}"
            )
            return False
        return True

    async def join(self) -> None:
        """Wait until every queued event has been delivered."""
        if self._initialized:
            await self._queue.join()

    async def _dispatch_loop(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            except Exception as e:
                logger.error(f"Unexpected error dispatching {event!r}: {e}", exc_info=True)
            finally:
                self._queue.task_done()

    async def _deliver(self, event: Event) -> None:
        event_type = event.event_type.value

        async with self._lock:
            subscribers = list(self._subscribers.get(event_type, []))

        if not subscribers:
            logger.debug(f"No subscribers for event: {event_type}")
            return

        logger.debug(f"Delivering event {event_type} to {len(subscribers)} subscribers")

        for subscriber_id, callback in subscribers:
            try:
                await callback(event)
            except asyncio.CancelledError:
                logger.warning(f"Subscriber {subscriber_id} was cancelled during event {event_type}")
                raise
            except Exception as e:
                logger.error(f"Error in subscriber {subscriber_id} for {event_type}: {e}", exc_info=True)

                failures = self._failed_deliveries.setdefault(subscriber_id, [])
                failures.append({
                    **event.to_dict(),
                    "error": str(e),
                    "failed_at": utc_now().isoformat()
                })
                if len(failures) > self._max_failures:
                    failures.pop(0)

    async def subscribe(
        self,
        event_type: EventType,
        callback: Subscriber,
        subscriber_id: Optional[str] = None
    ) -> str:
        """
        Subscribe to an event type.

        Args:
            event_type: Event type to subscribe to
            callback: Coroutine function called with each event
            subscriber_id: Optional subscriber ID; re-using one replaces its callback

        Returns:
            str: Subscriber ID
        """
        key = EventType(event_type).value

        if subscriber_id is None:
            subscriber_id = f"{callback.__module__}.{callback.__name__}_{str(uuid.uuid4())[:8]}"

        async with self._lock:
            entries = self._subscribers.setdefault(key, [])
            ids = self._subscriber_ids.setdefault(key, set())

            if subscriber_id not in ids:
                entries.append((subscriber_id, callback))
                ids.add(subscriber_id)
                logger.info(f"Subscribed to {key}: {subscriber_id}")
            else:
                for i, (sid, _) in enumerate(entries):
                    if sid == subscriber_id:
                        entries[i] = (subscriber_id, callback)
                        break

        return subscriber_id

    async def unsubscribe(self, event_type: EventType, subscriber_id: str) -> bool:
        """
        Unsubscribe from an event type.

        Returns:
            bool: True if unsubscribed, False if not found
        """
        key = EventType(event_type).value

        async with self._lock:
            if subscriber_id not in self._subscriber_ids.get(key, set()):
                return False

            self._subscribers[key] = [
                (sid, cb) for sid, cb in self._subscribers[key] if sid != subscriber_id
            ]
            self._subscriber_ids[key].remove(subscriber_id)
            self._failed_deliveries.pop(subscriber_id, None)

        logger.info(f"Unsubscribed from {key}: {subscriber_id}")
        return True

    def get_subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        if event_type:
            return len(self._subscribers.get(EventType(event_type).value, []))
        return sum(len(subscribers) for subscribers in self._subscribers.values())

    def get_failed_deliveries(self, subscriber_id: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        if subscriber_id:
            return {subscriber_id: self._failed_deliveries.get(subscriber_id, [])}
        return self._failed_deliveries
