"""TCP/IP socket transport (raw port 9100 printing)."""

import asyncio
import ipaddress
import logging
import socket

from receiptable.models.printer import ConnectionKind, DeviceDescriptor
from receiptable.transports.base import BaseTransport, ConnectError, WriteError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 9100
SUGGESTED_HOST = "192.168.1.100"


def parse_target(target: str) -> tuple[str, int]:
    """Split ``host[:port]`` (``[v6]:port`` for IPv6) into host and port."""
    target = target.strip()
    if not target:
        raise ConnectError("Network target is empty")
    if target.startswith("["):
        host, _, rest = target[1:].partition("]")
        port_text = rest.lstrip(":")
    elif target.count(":") == 1:
        host, _, port_text = target.partition(":")
    else:
        host, port_text = target, ""
    if not port_text:
        return host, DEFAULT_PORT
    if not port_text.isdigit() or not 0 < int(port_text) < 65536:
        raise ConnectError(f"Invalid port in network target '{target}'")
    return host, int(port_text)


def _local_ipv4() -> ipaddress.IPv4Address | None:
    try:
        address = ipaddress.ip_address(socket.gethostbyname(socket.gethostname()))
    except (OSError, ValueError):
        return None
    if not isinstance(address, ipaddress.IPv4Address) or address.is_loopback:
        return None
    return address


class SocketTransport(BaseTransport):
    """Printer reachable over TCP; target is ``host[:port]``."""

    kind = ConnectionKind.SOCKET

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    async def _open(self, target: str) -> None:
        host, port = parse_target(target)
        self._reader, self._writer = await asyncio.open_connection(host, port)

    async def _close(self) -> None:
        if self._writer:
            writer, self._writer = self._writer, None
            self._reader = None
            writer.close()
            await writer.wait_closed()

    async def _write(self, data: bytes) -> None:
        if not self._writer:
            raise WriteError("Socket is not open")
        self._writer.write(data)
        await self._writer.drain()

    async def scan(self) -> list[DeviceDescriptor]:
        """Suggest network addresses; network printers cannot be enumerated."""
        devices = [
            DeviceDescriptor(
                path=SUGGESTED_HOST,
                description="Network Printer (Enter your IP)",
                kind=self.kind,
            )
        ]
        local = await asyncio.get_running_loop().run_in_executor(None, _local_ipv4)
        if local is not None:
            network = ipaddress.ip_network(f"{local}/24", strict=False)
            suggestion = str(network.network_address + 100)
            if suggestion != SUGGESTED_HOST:
                devices.append(
                    DeviceDescriptor(path=suggestion, description=f"Suggested: {suggestion}", kind=self.kind)
                )
        return devices
