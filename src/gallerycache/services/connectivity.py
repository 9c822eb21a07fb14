"""
Network reachability observation.

The monitor runs one long-lived observation loop on the caller's event
loop. Probes execute on a worker thread; every state write and every
subscriber notification happens on the event loop, so readers never race
the observer.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import httpx
import psutil

from gallerycache.models import ConnectivityState, InterfaceKind

logger = logging.getLogger(__name__)

ConnectivityHandler = Callable[
    [ConnectivityState], Union[None, Awaitable[None]]
]

# Interface name prefixes, checked in order
_INTERFACE_PREFIXES: tuple[tuple[tuple[str, ...], InterfaceKind], ...] = (
    (("lo",), InterfaceKind.LOOPBACK),
    (("wlan", "wlp", "wl", "wifi", "ath", "ra"), InterfaceKind.WIFI),
    (("wwan", "rmnet", "ccmni", "pdp_ip", "usb", "ppp"), InterfaceKind.CELLULAR),
    (("eth", "enp", "eno", "ens", "enx", "en", "em"), InterfaceKind.ETHERNET),
)


def classify_interface(name: str) -> InterfaceKind:
    """Guess the interface kind from an OS interface name."""
    lowered = name.lower()
    for prefixes, kind in _INTERFACE_PREFIXES:
        if lowered.startswith(prefixes):
            return kind
    return InterfaceKind.OTHER


def detect_interface_kind() -> InterfaceKind:
    """Return the kind of the first active non-loopback interface.

    Falls back to ``LOOPBACK`` when only loopback is up and to ``UNKNOWN``
    when interface statistics are unavailable.
    """
    try:
        stats = psutil.net_if_stats()
    except (OSError, RuntimeError):
        logger.debug("Interface statistics unavailable", exc_info=True)
        return InterfaceKind.UNKNOWN

    loopback_up = False
    for name in sorted(stats):
        if not stats[name].isup:
            continue
        kind = classify_interface(name)
        if kind is InterfaceKind.LOOPBACK:
            loopback_up = True
            continue
        return kind
    return InterfaceKind.LOOPBACK if loopback_up else InterfaceKind.UNKNOWN


class ReachabilityProbe(Protocol):
    """Blocking check of current reachability, run off the event loop."""

    def check(self) -> ConnectivityState: ...


class HttpReachabilityProbe:
    """Treat any HTTP response from *url* as proof of connectivity.

    Parameters
    ----------
    url : str
        URL to send ``HEAD`` requests to.
    timeout : float
        Request timeout in seconds.
    client : httpx.Client | None
        Client to use; a private one is created per check when omitted.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 3.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    def check(self) -> ConnectivityState:
        try:
            if self._client is not None:
                self._client.head(self.url, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    client.head(self.url)
        except httpx.HTTPError as exc:
            logger.debug("Reachability check against %s failed: %s", self.url, exc)
            return ConnectivityState(
                is_connected=False, interface_kind=detect_interface_kind()
            )
        return ConnectivityState(is_connected=True, interface_kind=detect_interface_kind())


class Subscription:
    """Handle returned by :meth:`ConnectivityMonitor.subscribe`."""

    def __init__(self, monitor: ConnectivityMonitor, handler: ConnectivityHandler) -> None:
        self._monitor = monitor
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        """Stop delivering notifications to the handler."""
        if self.active:
            self.active = False
            self._monitor._unsubscribe(self)


class ConnectivityMonitor:
    """Observe reachability transitions and publish them to subscribers.

    The initial state is optimistic (connected, unknown interface) until the
    first observation arrives. Subscribers are notified only when
    ``is_connected`` flips.

    Parameters
    ----------
    probe : ReachabilityProbe | None
        Blocking reachability check polled by :meth:`start`. Without one the
        monitor only changes state through :meth:`report`.
    interval : float
        Seconds between probes.
    """

    def __init__(
        self,
        probe: Optional[ReachabilityProbe] = None,
        *,
        interval: float = 5.0,
    ) -> None:
        self._probe = probe
        self._interval = interval
        self._state = ConnectivityState()
        self._subscriptions: list[Subscription] = []
        self._waiters: list[asyncio.Future[ConnectivityState]] = []
        self._handler_tasks: set[asyncio.Task[Any]] = set()
        # Async handlers notified before any event loop was bound
        self._pending: list[Awaitable[None]] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._closed = False

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def current_state(self) -> ConnectivityState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state.is_connected

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, handler: ConnectivityHandler) -> Subscription:
        """Register *handler* for connected/disconnected transitions.

        Handlers may be plain callables or coroutine functions; coroutines
        are scheduled as tasks on the monitor's event loop. Coroutines from
        notifications made before any loop is bound are held until one is.
        """
        try:
            self._bind_loop(asyncio.get_running_loop())
        except RuntimeError:
            pass
        subscription = Subscription(self, handler)
        self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the observation loop on the running event loop.

        Raises
        ------
        RuntimeError
            If the monitor was shut down or no probe is configured.
        """
        if self._closed:
            raise RuntimeError("ConnectivityMonitor has been shut down")
        if self._probe is None:
            raise RuntimeError("ConnectivityMonitor has no reachability probe")
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        self._bind_loop(loop)
        self._task = loop.create_task(self._observe(self._probe))
        logger.debug("Connectivity observation started (interval=%.1fs)", self._interval)

    async def _observe(self, probe: ReachabilityProbe) -> None:
        while not self._closed:
            try:
                state = await asyncio.to_thread(probe.check)
            except Exception:
                logger.warning("Reachability probe failed", exc_info=True)
            else:
                self._apply(state)
            await asyncio.sleep(self._interval)

    def report(self, state: ConnectivityState) -> None:
        """Feed an observed state into the monitor.

        Safe to call from any thread. Calls from outside the monitor's event
        loop are marshalled onto it.
        """
        if self._closed:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            self._bind_loop(running)

        loop = self._loop
        if loop is None or loop is running:
            self._apply(state)
        elif loop.is_closed():
            logger.debug("Dropping connectivity report; event loop is closed")
        else:
            loop.call_soon_threadsafe(self._apply, state)

    def _apply(self, state: ConnectivityState) -> None:
        if self._closed:
            return
        previous = self._state
        self._state = state

        if previous.is_connected == state.is_connected:
            if previous.interface_kind != state.interface_kind:
                logger.debug(
                    "Network interface changed: %s -> %s",
                    previous.interface_kind.value,
                    state.interface_kind.value,
                )
            return

        if state.is_connected:
            logger.info("Network connected via: %s", state.interface_kind.value)
        else:
            logger.info("Network disconnected")
        self._notify(state)

    def _notify(self, state: ConnectivityState) -> None:
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                result = subscription.handler(state)
            except Exception:
                logger.error("Connectivity subscriber raised", exc_info=True)
                continue
            if inspect.isawaitable(result):
                self._schedule(result)

        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(state)

    def _bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._loop is None or self._loop.is_closed():
            self._loop = loop
        if self._loop is loop and self._pending:
            pending, self._pending = self._pending, []
            for awaitable in pending:
                self._schedule(awaitable)

    def _schedule(self, awaitable: Awaitable[None]) -> None:
        loop = self._loop
        if loop is None:
            logger.debug("Holding async connectivity subscriber until a loop is bound")
            self._pending.append(awaitable)
            return
        if loop.is_closed():
            logger.warning("No event loop to run async connectivity subscriber")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return
        task = loop.create_task(_run_handler(awaitable))
        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)

    async def wait_for_change(self, timeout: Optional[float] = None) -> ConnectivityState:
        """Wait for the next connected/disconnected transition.

        Raises
        ------
        asyncio.TimeoutError
            If no transition happens within *timeout* seconds.
        """
        loop = asyncio.get_running_loop()
        self._bind_loop(loop)
        waiter: asyncio.Future[ConnectivityState] = loop.create_future()
        self._waiters.append(waiter)
        return await asyncio.wait_for(waiter, timeout)

    async def drain(self) -> None:
        """Wait for scheduled async subscriber handlers to finish.

        Handlers held for want of an event loop start on the running loop.
        """
        self._bind_loop(asyncio.get_running_loop())
        while self._handler_tasks:
            await asyncio.gather(*list(self._handler_tasks))

    def shutdown(self) -> None:
        """Stop observation and drop subscribers. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        if self._task is not None:
            self._task.cancel()
        self._subscriptions.clear()
        for awaitable in self._pending:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
        self._pending.clear()
        for waiter in self._waiters:
            if not waiter.done():
                waiter.cancel()
        self._waiters.clear()
        logger.debug("Connectivity observation stopped")

    async def aclose(self) -> None:
        """Shut down and wait for the observation task to exit."""
        self.shutdown()
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None


async def _run_handler(awaitable: Awaitable[None]) -> None:
    try:
        await awaitable
    except Exception:
        logger.error("Async connectivity subscriber raised", exc_info=True)
