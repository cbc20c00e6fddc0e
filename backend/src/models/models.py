import asyncio
import logging
from typing import List, Optional, Set

from schemas import Message
from utilities import CHANNEL_CAPACITY

from .errors import Empty, HubClosed, Lagged

logger = logging.getLogger(__name__)

# ------------ In-memory structures ------------
class BroadcastHub:
    ''' Bounded multi-consumer buffer shared by every subscriber.

    Messages live in a fixed ring of `capacity` slots indexed by a monotonically
    increasing sequence number. Each Subscription only keeps its own cursor into
    that sequence, so a slow subscriber never holds memory or blocks the
    publisher: once its next message is overwritten it is fast-forwarded.

    All state is touched from the event loop thread only, and nothing below
    awaits while holding it, so every method is atomic with respect to the others.
    '''

    def __init__(self, capacity: int = CHANNEL_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._slots: List[Optional[Message]] = [None] * capacity
        # sequence number the next published message gets
        self._tail = 0
        self._closed = False
        self._subscriptions: Set["Subscription"] = set()
        # swapped for a fresh event on every publish; waiters hold the old one
        self._wakeup = asyncio.Event()
        # stats
        self.messages_published = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, message: Message) -> int:
        """
        Append a message for every current subscriber and return how many there were.

        Never suspends. With no subscribers the message is dropped and 0 is returned.
        """
        if self._closed:
            raise HubClosed()
        self.messages_published += 1
        receivers = len(self._subscriptions)
        if receivers == 0:
            logger.debug("No subscribers, dropping message for room %r", message.room)
            return 0

        # overwrites the oldest slot once the ring is full
        self._slots[self._tail % self._capacity] = message
        self._tail += 1

        wakeup, self._wakeup = self._wakeup, asyncio.Event()
        wakeup.set()
        return receivers

    def subscribe(self) -> "Subscription":
        ''' New cursor at the current tail; earlier messages are never replayed.'''
        sub = Subscription(self, self._tail)
        if self._closed:
            sub._closed = True
        else:
            self._subscriptions.add(sub)
            logger.debug("Subscription opened (%d active)", len(self._subscriptions))
        return sub

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Broadcast hub closed with %d active subscriptions", len(self._subscriptions))
        # left set so any later wait returns straight away
        self._wakeup.set()

    def _release(self, sub: "Subscription") -> None:
        self._subscriptions.discard(sub)
        logger.debug("Subscription released (%d active)", len(self._subscriptions))


class Subscription:
    ''' One subscriber's read position in the hub's sequence.'''

    def __init__(self, hub: BroadcastHub, cursor: int):
        self._hub = hub
        self._cursor = cursor
        self._closed = False

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def closed(self) -> bool:
        return self._closed

    def try_recv(self) -> Message:
        """
        Return the next message without waiting.

        Raises Lagged (cursor moved to the oldest retained message), HubClosed once the
        hub is closed and drained or this subscription is closed, and Empty otherwise.
        """
        if self._closed:
            raise HubClosed()
        hub = self._hub
        oldest = hub._tail - hub._capacity
        if self._cursor < oldest:
            skipped = oldest - self._cursor
            self._cursor = oldest
            raise Lagged(skipped)
        if self._cursor < hub._tail:
            message = hub._slots[self._cursor % hub._capacity]
            self._cursor += 1
            return message
        if hub._closed:
            raise HubClosed()
        raise Empty()

    async def recv(self) -> Message:
        """
        Wait for the next message in publish order.

        Cancelling a pending recv() leaves the cursor where it was.
        """
        while True:
            # grab the event before checking so a publish in between is not missed
            wakeup = self._hub._wakeup
            try:
                return self.try_recv()
            except Empty:
                await wakeup.wait()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._hub._release(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class Shutdown:
    ''' Process-wide, fire-once signal observed by every open stream.

    bind() attaches the running loop so fire() can be called from a signal
    handler or another thread.
    '''

    def __init__(self):
        self._event = asyncio.Event()
        self._fired = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    @property
    def fired(self) -> bool:
        return self._fired

    def fire(self) -> None:
        if self._fired:
            return
        self._fired = True
        logger.info("Shutdown signal fired")
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._event.set)
        else:
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
