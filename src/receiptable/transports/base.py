"""Abstract base class for printer transports."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import ClassVar

from receiptable.models.printer import ConnectionHandle, ConnectionKind, DeviceDescriptor, TransportState, WriteAck

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_WRITE_TIMEOUT = 10.0


class TransportError(Exception):
    """Base exception for transport errors."""

    pass


class ConnectError(TransportError):
    """Connection could not be established."""

    pass


class WriteError(TransportError):
    """Data could not be fully transmitted."""

    pass


class TransportTimeoutError(TransportError):
    """A connect or write did not finish in time."""

    pass


class NotConnectedError(TransportError):
    """Operation requires a connected transport."""

    pass


class BaseTransport(ABC):
    """Abstract base class for all transports.

    A transport owns at most one live connection. Subclasses implement the
    raw ``_open``/``_close``/``_write`` operations; this class runs the
    state machine and enforces timeouts::

        disconnected -> connecting -> connected -> {disconnected, faulted}

    There is no retry here: a faulted transport stays faulted until
    ``connect`` is called again.
    """

    kind: ClassVar[ConnectionKind]

    def __init__(
        self,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        write_timeout: float = DEFAULT_WRITE_TIMEOUT,
    ) -> None:
        self.connect_timeout = connect_timeout
        self.write_timeout = write_timeout
        self._state = TransportState.DISCONNECTED
        self._target: str | None = None
        self._handle: ConnectionHandle | None = None

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def target(self) -> str | None:
        """Target of the current (or last faulted) connection."""
        return self._target

    @property
    def is_connected(self) -> bool:
        return self._state == TransportState.CONNECTED

    async def connect(self, target: str) -> ConnectionHandle:
        """Open a connection to target.

        Any existing connection is closed first.

        Raises:
            ConnectError: If the device cannot be opened.
            TransportTimeoutError: If opening takes longer than connect_timeout.
        """
        if self._state in (TransportState.CONNECTED, TransportState.FAULTED):
            await self.disconnect()

        self._state = TransportState.CONNECTING
        self._target = target
        try:
            await asyncio.wait_for(self._open(target), timeout=self.connect_timeout)
        except TimeoutError as e:
            await self._fault()
            raise TransportTimeoutError(f"Timeout connecting to {target}") from e
        except ConnectError:
            await self._reset()
            raise
        except asyncio.CancelledError:
            await self._reset()
            raise
        except Exception as e:
            # OSError, but also bad targets: IDNA errors, NUL bytes in paths
            await self._reset()
            raise ConnectError(f"Failed to connect to {target}: {e}") from e

        self._state = TransportState.CONNECTED
        self._handle = ConnectionHandle(kind=self.kind, target=target)
        logger.info(f"{self.kind} transport connected to {target}")
        return self._handle

    async def disconnect(self) -> None:
        """Close the connection (no-op when already disconnected)."""
        if self._state != TransportState.DISCONNECTED:
            logger.info(f"{self.kind} transport disconnected from {self._target}")
        await self._reset()

    async def write_bytes(self, data: bytes) -> WriteAck:
        """Transmit data completely or fail.

        Raises:
            NotConnectedError: If the transport is not connected.
            WriteError: On any I/O error; the transport becomes faulted.
            TransportTimeoutError: If the write exceeds write_timeout; the transport becomes faulted.
        """
        if self._state != TransportState.CONNECTED:
            raise NotConnectedError(f"{self.kind} transport is not connected (state: {self._state})")

        try:
            await asyncio.wait_for(self._write(data), timeout=self.write_timeout)
        except TimeoutError as e:
            await self._fault()
            raise TransportTimeoutError(f"Timeout writing to {self._target}") from e
        except WriteError:
            await self._fault()
            raise
        except OSError as e:
            await self._fault()
            raise WriteError(f"Failed to write to {self._target}: {e}") from e

        return WriteAck(bytes_written=len(data))

    @abstractmethod
    async def scan(self) -> list[DeviceDescriptor]:
        """List devices reachable by this transport kind.

        Must not change connection state.
        """
        pass

    @abstractmethod
    async def _open(self, target: str) -> None:
        """Open the underlying device or socket."""
        pass

    @abstractmethod
    async def _close(self) -> None:
        """Release the underlying device or socket."""
        pass

    @abstractmethod
    async def _write(self, data: bytes) -> None:
        """Write all of data to the device."""
        pass

    async def _fault(self) -> None:
        logger.error(f"{self.kind} transport to {self._target} faulted")
        await self._safe_close()
        self._handle = None
        self._state = TransportState.FAULTED

    async def _reset(self) -> None:
        await self._safe_close()
        self._handle = None
        self._target = None
        self._state = TransportState.DISCONNECTED

    async def _safe_close(self) -> None:
        try:
            await self._close()
        except OSError as e:
            logger.debug(f"Error closing {self.kind} transport: {e}")

    async def __aenter__(self) -> "BaseTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
