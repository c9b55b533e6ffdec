"""Detection of usable IP protocol families."""

import asyncio
import logging

from mailgate.network.types import (
    IPV4_WILDCARD,
    IPV6_WILDCARD,
    AddressFamily,
    StackAvailability,
)

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 1.0


def _close_connection(
    _reader: asyncio.StreamReader, writer: asyncio.StreamWriter
) -> None:
    writer.close()


class StackProber:
    """Probes whether the host can listen on IPv4 and IPv6 wildcards.

    Each family gets an ephemeral listen on port 0 which is closed right
    away. A family that fails to bind, or does not bind within the timeout,
    is simply reported as unavailable.
    """

    def __init__(self, timeout: float = PROBE_TIMEOUT_SECONDS):
        self._timeout = timeout

    async def probe(self) -> StackAvailability:
        """Probe both families concurrently."""
        ipv4, ipv6 = await asyncio.gather(
            self.probe_family(AddressFamily.IPV4),
            self.probe_family(AddressFamily.IPV6),
        )
        availability = StackAvailability.from_probes(ipv4=ipv4, ipv6=ipv6)
        logger.info(
            f"Network stack detection: ipv4={availability.ipv4} "
            f"ipv6={availability.ipv6} preferred={availability.preferred}"
        )
        return availability

    async def probe_family(self, family: AddressFamily) -> bool:
        address = IPV6_WILDCARD if family is AddressFamily.IPV6 else IPV4_WILDCARD
        try:
            server = await asyncio.wait_for(
                asyncio.start_server(
                    _close_connection,
                    host=address,
                    port=0,
                    family=family.socket_family,
                ),
                timeout=self._timeout,
            )
        except TimeoutError:
            logger.debug(f"{family} probe timed out after {self._timeout}s")
            return False
        except OSError as e:
            logger.debug(f"{family} probe failed: {e}")
            return False

        server.close()
        await server.wait_closed()
        return True
