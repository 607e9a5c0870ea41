"""Printer connection models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class ConnectionKind(StrEnum):
    """Supported transport kinds."""

    SERIAL = "serial"
    SOCKET = "socket"
    PARALLEL = "parallel"

    @classmethod
    def parse(cls, value: "str | ConnectionKind") -> "ConnectionKind":
        """Parse a kind tag, accepting the names the POS app stores (USB, Network, LPT)."""
        if isinstance(value, ConnectionKind):
            return value
        key = str(value).strip().lower()
        kind = _ALIASES.get(key)
        if kind is None:
            raise ValueError(f"Unsupported connection type: {value}")
        return kind


_ALIASES = {
    "serial": ConnectionKind.SERIAL,
    "usb": ConnectionKind.SERIAL,
    "socket": ConnectionKind.SOCKET,
    "network": ConnectionKind.SOCKET,
    "tcp": ConnectionKind.SOCKET,
    "parallel": ConnectionKind.PARALLEL,
    "lpt": ConnectionKind.PARALLEL,
}


class TransportState(StrEnum):
    """Connection state of a transport handle."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAULTED = "faulted"


class PrinterConfig(BaseModel):
    """Persisted printer connection settings."""

    connection_type: ConnectionKind
    device_path: str
    baudrate: int = 9600
    connect_timeout: float = Field(default=5.0, gt=0)
    write_timeout: float = Field(default=10.0, gt=0)

    @field_validator("connection_type", mode="before")
    @classmethod
    def _parse_kind(cls, value: str) -> ConnectionKind:
        return ConnectionKind.parse(value)


class DeviceDescriptor(BaseModel):
    """A device found by a transport scan."""

    path: str
    description: str
    kind: ConnectionKind


class ConnectionHandle(BaseModel):
    """Describes a live connection."""

    kind: ConnectionKind
    target: str
    connected_at: datetime = Field(default_factory=datetime.now)


class WriteAck(BaseModel):
    """Acknowledges a fully transmitted write."""

    bytes_written: int
