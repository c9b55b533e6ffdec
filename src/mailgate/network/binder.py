"""Execution of a bind cascade."""

import asyncio
import logging
import os
import socket
from collections.abc import Callable, Sequence

from mailgate.network.types import BindCandidate, BindOutcome

logger = logging.getLogger(__name__)

BIND_TIMEOUT_SECONDS = 5.0
LISTEN_BACKLOG = 128

SocketFactory = Callable[[int, int], socket.socket]


def dual_stack_capable() -> bool:
    """Whether this platform lets an IPv6 socket also accept IPv4 traffic."""
    return hasattr(socket, "IPV6_V6ONLY") and socket.has_dualstack_ipv6()


def is_dual_stack(sock: socket.socket) -> bool:
    """Read back whether a bound IPv6 socket accepts IPv4-mapped peers."""
    if sock.family != socket.AF_INET6 or not hasattr(socket, "IPV6_V6ONLY"):
        return False
    try:
        return sock.getsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY) == 0
    except OSError:
        return False


class SocketBinder:
    """Tries bind candidates strictly in order until one listens.

    Every attempt is bounded by a hard timeout. A failed or abandoned
    attempt always closes its socket before the next candidate is tried, so
    no port is left held. ``bind`` never raises: an exhausted cascade is a
    failed BindOutcome carrying the last error.
    """

    def __init__(
        self,
        *,
        timeout: float = BIND_TIMEOUT_SECONDS,
        backlog: int = LISTEN_BACKLOG,
        socket_factory: SocketFactory = socket.socket,
    ):
        self._timeout = timeout
        self._backlog = backlog
        self._socket_factory = socket_factory

    async def bind(
        self, candidates: Sequence[BindCandidate], port: int
    ) -> BindOutcome:
        if not candidates:
            logger.error("No bind candidates to try")
            return BindOutcome.failed(OSError("No bind candidates"), port=port)

        failures: list[BindOutcome] = []
        for candidate in candidates:
            logger.info(
                f"Trying to bind to {candidate.address}:{port} ({candidate.family})"
            )
            outcome = await self._attempt(candidate, port)
            if outcome.success:
                logger.info(
                    f"Successfully bound to {outcome.address}:{outcome.port} "
                    f"({outcome.mode})"
                )
                return outcome
            logger.warning(
                f"Failed to bind to {candidate.address}:{port} "
                f"({candidate.family}): {outcome.error}"
            )
            failures.append(outcome)

        logger.error(f"All {len(failures)} binding attempts failed")
        return failures[-1]

    async def _attempt(self, candidate: BindCandidate, port: int) -> BindOutcome:
        def failed(error: BaseException) -> BindOutcome:
            return BindOutcome.failed(
                error, address=candidate.address, port=port, family=candidate.family
            )

        try:
            sock = self._socket_factory(
                candidate.family.socket_family, socket.SOCK_STREAM
            )
        except Exception as e:
            return failed(e)

        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._listen, sock, candidate, port),
                timeout=self._timeout,
            )
        except TimeoutError:
            sock.close()
            return failed(
                TimeoutError(
                    f"Bind to {candidate.address}:{port} timed out "
                    f"after {self._timeout}s"
                )
            )
        except Exception as e:
            sock.close()
            return failed(e)

        address, bound_port = sock.getsockname()[:2]
        return BindOutcome(
            success=True,
            address=address,
            port=bound_port,
            family=candidate.family,
            sock=sock,
            dual_stack=is_dual_stack(sock),
        )

    def _listen(self, sock: socket.socket, candidate: BindCandidate, port: int) -> None:
        if os.name != "nt":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if candidate.is_ipv6_wildcard:
            # The OS only honors IPV6_V6ONLY before bind()
            self._relax_ipv6_only(sock)
        sock.bind((candidate.address, port))
        sock.listen(self._backlog)
        sock.setblocking(False)

    def _relax_ipv6_only(self, sock: socket.socket) -> bool:
        if not dual_stack_capable():
            logger.info("Dual-stack sockets unsupported here; binding IPv6-only")
            return False
        try:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        except OSError as e:
            logger.warning(f"Could not enable IPv6 dual-stack mode: {e}")
            return False
        return True

