"""Network transport: binds a listener and serves the HTTP app on it."""

import asyncio
import contextlib
import logging
import time
from collections.abc import Generator, Iterable
from enum import StrEnum

import uvicorn
from fastapi import FastAPI

from mailgate.access import AccessGate, AccessPolicy, build_policy
from mailgate.config import TransportConfig
from mailgate.credentials import CredentialStatus, FileCredentialStatus
from mailgate.network import (
    BindingPlanner,
    BindOutcome,
    SocketBinder,
    StackAvailability,
    StackProber,
    build_bind_error,
    log_network_configuration,
)
from mailgate.rpc import RPCRouter
from mailgate.server.app import create_app
from mailgate.server.health import HealthMonitor, HealthReport

logger = logging.getLogger(__name__)

STARTUP_POLL_INTERVAL_SECONDS = 0.05
STARTUP_TIMEOUT_SECONDS = 10.0
SHUTDOWN_TIMEOUT_SECONDS = 10.0


class BridgeState(StrEnum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signals to its owner."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Generator[None, None, None]:
        yield


class ProtocolBridge:
    """Owns the HTTP listener from bind to close.

    ``start`` probes the host, plans and runs the bind cascade, then hands
    the bound socket to uvicorn. A failed cascade raises BindError and the
    bridge goes back to stopped; retrying is up to the caller.
    """

    def __init__(
        self,
        config: TransportConfig,
        router: RPCRouter,
        *,
        gate: AccessGate | None = None,
        credentials: CredentialStatus | None = None,
        prober: StackProber | None = None,
        planner: BindingPlanner | None = None,
        binder: SocketBinder | None = None,
        startup_timeout: float = STARTUP_TIMEOUT_SECONDS,
        shutdown_timeout: float = SHUTDOWN_TIMEOUT_SECONDS,
    ):
        self._config = config
        self._router = router
        self._gate = gate or AccessGate(build_policy(config))
        self._credentials = credentials or FileCredentialStatus.from_config(
            config.credentials
        )
        self._prober = prober or StackProber()
        self._planner = planner or BindingPlanner()
        self._binder = binder or SocketBinder()
        self._startup_timeout = startup_timeout
        self._shutdown_timeout = shutdown_timeout

        self._state = BridgeState.STOPPED
        self._outcome: BindOutcome | None = None
        self._stack: StackAvailability | None = None
        self._server: _EmbeddedServer | None = None
        self._serve_task: asyncio.Task[None] | None = None

        self._monitor = HealthMonitor(
            config=config,
            gate=self._gate,
            credentials=self._credentials,
            core=router.core,
            listener=lambda: self._outcome,
            stack=lambda: self._stack,
        )

        self._app = create_app(self)

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def app(self) -> FastAPI:
        return self._app

    @property
    def router(self) -> RPCRouter:
        return self._router

    @property
    def gate(self) -> AccessGate:
        return self._gate

    @property
    def bind_outcome(self) -> BindOutcome | None:
        """The live listener, or None when not bound."""
        return self._outcome

    @property
    def stack(self) -> StackAvailability | None:
        """Probe results from the most recent start."""
        return self._stack

    def health(self) -> HealthReport:
        return self._monitor.report()

    def replace_policy(self, origins: Iterable[str]) -> AccessPolicy:
        """Swap the allowed origin patterns, keeping the other CORS settings."""
        policy = self._gate.policy.with_origins(origins)
        self._gate.replace_policy(policy)
        return policy

    async def start(self) -> BindOutcome:
        if self._state is not BridgeState.STOPPED:
            raise RuntimeError(f"Cannot start bridge while {self._state}")

        self._state = BridgeState.STARTING
        try:
            prefs = self._config.network_preferences()
            self._stack = await self._prober.probe()
            candidates = self._planner.plan(prefs, self._stack)
            outcome = await self._binder.bind(candidates, prefs.port)
            log_network_configuration(outcome, prefs, self._stack)
            if not outcome.success:
                raise build_bind_error(outcome, prefs, self._stack)

            self._outcome = outcome
            await self._serve(outcome)
        except BaseException:
            await self._teardown()
            self._state = BridgeState.STOPPED
            raise

        self._state = BridgeState.RUNNING
        logger.info(
            f"HTTP transport running on {outcome.address}:{outcome.port} "
            f"({outcome.mode})"
        )
        return outcome

    async def _serve(self, outcome: BindOutcome) -> None:
        uvicorn_config = uvicorn.Config(
            self._app,
            log_level="info",
            log_config=None,  # Use shared logging config, not uvicorn's
        )
        server = _EmbeddedServer(uvicorn_config)
        self._server = server
        self._serve_task = asyncio.create_task(
            server.serve(sockets=[outcome.sock] if outcome.sock else None)
        )

        deadline = time.monotonic() + self._startup_timeout
        while not server.started:
            if self._serve_task.done():
                # Surfaces the startup exception if there was one
                await self._serve_task
                raise RuntimeError("HTTP server exited during startup")
            if time.monotonic() >= deadline:
                raise TimeoutError(
                    f"HTTP server did not start within {self._startup_timeout}s"
                )
            await asyncio.sleep(STARTUP_POLL_INTERVAL_SECONDS)

    async def stop(self) -> None:
        """Stop serving and release the listener. Safe to call when stopped."""
        if self._state in (BridgeState.STOPPED, BridgeState.STOPPING):
            return

        self._state = BridgeState.STOPPING
        logger.info("Stopping HTTP transport")
        try:
            await self._teardown()
        finally:
            self._state = BridgeState.STOPPED
        logger.info("HTTP transport stopped")

    async def _teardown(self) -> None:
        server, task = self._server, self._serve_task
        self._server = None
        self._serve_task = None
        try:
            if server is not None and task is not None and not task.done():
                server.should_exit = True
                try:
                    await asyncio.wait_for(
                        asyncio.shield(task), timeout=self._shutdown_timeout
                    )
                except TimeoutError:
                    logger.warning("HTTP server did not stop in time, forcing exit")
                    server.force_exit = True
                    await task
        finally:
            outcome, self._outcome = self._outcome, None
            if outcome is not None and outcome.sock is not None:
                outcome.sock.close()
