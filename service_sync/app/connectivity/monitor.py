"""
Online/offline detection.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Protocol, Union

from shared.logging import get_logger

RegainListener = Callable[[], Union[None, Awaitable[None]]]


class NetworkState(Protocol):
    """Platform collaborator reporting the current network state."""

    def is_online(self) -> bool:
        ...


class ObservedNetworkState:
    """Network state held in memory, with listeners for offline -> online transitions."""

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: List[RegainListener] = []
        self.logger = get_logger("sync.network_state")

    def is_online(self) -> bool:
        return self._online

    def add_regain_listener(self, listener: RegainListener) -> None:
        """Register a callback fired on every offline -> online transition."""
        self._listeners.append(listener)

    def _update(self, online: bool) -> List[Awaitable[None]]:
        regained = online and not self._online
        changed = online != self._online
        self._online = online
        if changed:
            self.logger.info("Network state changed", online=online)

        pending: List[Awaitable[None]] = []
        if regained:
            for listener in self._listeners:
                result = listener()
                if result is not None:
                    pending.append(result)
        return pending


class ManualNetworkState(ObservedNetworkState):
    """Network state pushed by the platform layer (or by tests)."""

    def set_online(self, online: bool) -> List[Awaitable[None]]:
        """Update the state; returns awaitables produced by async listeners."""
        return self._update(online)


class SocketProbeNetworkState(ObservedNetworkState):
    """Reachability probe: a short TCP connect to a known host.

    The connect runs in a background task every ``interval`` seconds and
    ``is_online`` answers from the last result, so callers on the event loop
    never wait on the network.
    """

    def __init__(self, host: str, port: int = 443, timeout: float = 2.0, interval: float = 15.0, online: bool = True):
        super().__init__(online=online)
        self.host = host
        self.port = port
        self.timeout = timeout
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    async def probe(self) -> bool:
        """Connect once, update the state and run regain listeners."""
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(self.host, self.port), timeout=self.timeout)
            writer.close()
            await writer.wait_closed()
            reachable = True
        except (OSError, asyncio.TimeoutError) as exc:
            self.logger.debug("Probe failed", host=self.host, port=self.port, error=str(exc))
            reachable = False

        for pending in self._update(reachable):
            await pending
        return reachable

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            try:
                await self.probe()
            except Exception as exc:
                self.logger.error("Connectivity probe failed", error=str(exc), exc_info=True)
            await asyncio.sleep(self.interval)


class ConnectivityMonitor:
    """Answers "can we reach the network right now?"."""

    def __init__(self, network_state: NetworkState, force_offline: bool = False):
        self.network_state = network_state
        self.force_offline = force_offline

    def is_connected(self, force_offline: Optional[bool] = None) -> bool:
        """Consult the platform state; never cached since it changes at any moment."""
        override = self.force_offline if force_offline is None else force_offline
        if override:
            return False
        return bool(self.network_state.is_online())
