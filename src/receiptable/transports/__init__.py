"""Printer transports for receiptable."""

from receiptable.models.printer import ConnectionKind, PrinterConfig
from receiptable.transports.base import (
    BaseTransport,
    ConnectError,
    NotConnectedError,
    TransportError,
    TransportTimeoutError,
    WriteError,
)
from receiptable.transports.network import SocketTransport
from receiptable.transports.parallel import ParallelTransport
from receiptable.transports.usb_serial import SerialTransport

__all__ = [
    "BaseTransport",
    "ConnectError",
    "NotConnectedError",
    "ParallelTransport",
    "SerialTransport",
    "SocketTransport",
    "TransportError",
    "TransportTimeoutError",
    "WriteError",
    "create_transport",
]


def create_transport(kind: ConnectionKind | str, config: PrinterConfig | None = None) -> BaseTransport:
    """Factory function to create a transport for a connection kind."""
    kind = ConnectionKind.parse(kind)
    timeouts = {}
    if config is not None:
        timeouts = {"connect_timeout": config.connect_timeout, "write_timeout": config.write_timeout}

    if kind == ConnectionKind.SERIAL:
        baudrate = config.baudrate if config is not None else 9600
        return SerialTransport(baudrate=baudrate, **timeouts)
    transport_classes = {
        ConnectionKind.SOCKET: SocketTransport,
        ConnectionKind.PARALLEL: ParallelTransport,
    }
    return transport_classes[kind](**timeouts)
