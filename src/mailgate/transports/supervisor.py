"""Lifecycle of the point-to-point and network transports."""

import asyncio
import logging
import os
import signal as signal_module
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from mailgate.access import AccessPolicy
from mailgate.config import ConfigError, TransportConfig, TransportMode
from mailgate.network import BindOutcome
from mailgate.rpc import RPCRouter
from mailgate.server import ProtocolBridge
from mailgate.transports.stdio import StdioTransport

logger = logging.getLogger(__name__)

StdioFactory = Callable[[RPCRouter], StdioTransport]
BridgeFactory = Callable[[TransportConfig, RPCRouter], ProtocolBridge]


@dataclass(slots=True)
class TransportState:
    """Which transports are up. Mutated only by the supervisor."""

    mode: TransportMode
    point_to_point: StdioTransport | None = None
    network: ProtocolBridge | None = None
    healthy: bool = False


@dataclass(frozen=True, slots=True)
class SupervisorStatus:
    """Point-in-time view of the supervisor for observability."""

    mode: TransportMode | None
    point_to_point: bool
    network: bool
    healthy: bool
    bind_outcome: BindOutcome | None = None
    policy: AccessPolicy | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value if self.mode else None,
            "transports": {
                "pointToPoint": self.point_to_point,
                "network": self.network,
            },
            "healthy": self.healthy,
            "binding": self.bind_outcome.to_dict() if self.bind_outcome else None,
            "cors": self.policy.summary() if self.policy else None,
        }


class TransportShutdownError(Exception):
    """One or more transports failed to stop cleanly."""

    def __init__(self, errors: list[tuple[str, BaseException]]):
        details = "; ".join(f"{name}: {error}" for name, error in errors)
        super().__init__(f"Transport shutdown failed ({details})")
        self.errors = errors


def _default_stdio(router: RPCRouter) -> StdioTransport:
    return StdioTransport(router)


def _default_bridge(config: TransportConfig, router: RPCRouter) -> ProtocolBridge:
    return ProtocolBridge(config, router)


class TransportSupervisor:
    """Starts, tracks and stops the transports required by a mode.

    Startup is all or nothing: if any transport fails, the ones already
    started are stopped and the error propagates. Both transports share one
    RPCRouter.
    """

    def __init__(
        self,
        config: TransportConfig,
        router: RPCRouter,
        *,
        stdio_factory: StdioFactory = _default_stdio,
        bridge_factory: BridgeFactory = _default_bridge,
    ):
        self._config = config
        self._router = router
        self._stdio_factory = stdio_factory
        self._bridge_factory = bridge_factory
        self._state: TransportState | None = None
        self._shutdown_requested = asyncio.Event()
        self._signals_installed = False
        self._signal_count = 0

    @property
    def state(self) -> TransportState | None:
        return self._state

    async def initialize(self, mode: TransportMode | None = None) -> TransportState:
        if self._state is not None:
            raise RuntimeError("Transports are already initialized")

        mode = mode or self._config.mode
        if mode.uses_network and self._config.port is None:
            raise ConfigError(f"A port is required for {mode.value} mode")

        logger.info(f"Initializing transports ({mode.value} mode)")
        state = TransportState(mode=mode)
        self._state = state
        try:
            if mode.uses_point_to_point:
                stdio = self._stdio_factory(self._router)
                await stdio.start()
                state.point_to_point = stdio
            if mode.uses_network:
                bridge = self._bridge_factory(self._config, self._router)
                await bridge.start()
                state.network = bridge
        except BaseException as e:
            logger.error(f"Transport initialization failed, rolling back: {e}")
            for name, error in await self._stop_transports(state):
                logger.error(f"Rollback of {name} transport failed: {error}")
            self._state = None
            raise

        state.healthy = True
        logger.info(f"Transports ready ({mode.value} mode)")
        return state

    async def shutdown(self) -> None:
        """Stop every active transport.

        Raises:
            TransportShutdownError: If any transport failed to stop; the
                others are still stopped.
        """
        state, self._state = self._state, None
        if state is None:
            return

        logger.info("Shutting down transports")
        errors = await self._stop_transports(state)
        if errors:
            raise TransportShutdownError(errors)
        logger.info("All transports stopped")

    async def _stop_transports(
        self, state: TransportState
    ) -> list[tuple[str, BaseException]]:
        state.healthy = False
        errors: list[tuple[str, BaseException]] = []
        stoppable: list[tuple[str, StdioTransport | ProtocolBridge | None]] = [
            ("network", state.network),
            ("point-to-point", state.point_to_point),
        ]
        for name, transport in stoppable:
            if transport is None:
                continue
            try:
                await transport.stop()
            except Exception as e:
                logger.exception(f"Failed to stop {name} transport")
                errors.append((name, e))
        state.network = None
        state.point_to_point = None
        return errors

    def get_status(self) -> SupervisorStatus:
        state = self._state
        if state is None:
            return SupervisorStatus(
                mode=None, point_to_point=False, network=False, healthy=False
            )
        bridge = state.network
        return SupervisorStatus(
            mode=state.mode,
            point_to_point=state.point_to_point is not None,
            network=bridge is not None,
            healthy=state.healthy,
            bind_outcome=bridge.bind_outcome if bridge else None,
            policy=bridge.gate.policy if bridge else None,
        )

    def request_shutdown(self) -> None:
        """Release ``serve`` so it shuts the transports down."""
        self._shutdown_requested.set()

    def setup_graceful_shutdown(self) -> None:
        """Install SIGINT/SIGTERM handlers on the running loop, once.

        The first signal starts a graceful shutdown; a second one exits the
        process immediately.
        """
        if self._signals_installed:
            return

        loop = asyncio.get_running_loop()

        def handle_signal(sig: signal_module.Signals) -> None:
            self._signal_count += 1
            if self._signal_count == 1:
                logger.info(f"Received {sig.name}, shutting down")
                self.request_shutdown()
            else:
                logger.warning(f"Received {sig.name} again, forcing exit")
                os._exit(1)

        for sig in (signal_module.SIGTERM, signal_module.SIGINT):
            loop.add_signal_handler(sig, handle_signal, sig)
        self._signals_installed = True

    async def serve(self, mode: TransportMode | None = None) -> None:
        """Run until a shutdown is requested, then stop everything.

        In point-to-point-only mode the end of stdin also ends serving.
        """
        self.setup_graceful_shutdown()
        state = await self.initialize(mode)

        waiters = [asyncio.create_task(self._shutdown_requested.wait())]
        if state.point_to_point is not None and state.network is None:
            waiters.append(asyncio.create_task(state.point_to_point.wait_closed()))
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            await self.shutdown()
