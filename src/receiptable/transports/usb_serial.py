"""USB-serial transport (pyserial)."""

import asyncio
import functools
import logging

import serial
from serial.tools import list_ports

from receiptable.models.printer import ConnectionKind, DeviceDescriptor
from receiptable.transports.base import BaseTransport, ConnectError, WriteError

logger = logging.getLogger(__name__)


class SerialTransport(BaseTransport):
    """Printer on a serial port; target is the device path (``/dev/ttyUSB0``, ``COM3``)."""

    kind = ConnectionKind.SERIAL

    def __init__(self, baudrate: int = 9600, **kwargs) -> None:
        super().__init__(**kwargs)
        self.baudrate = baudrate
        self._serial: serial.Serial | None = None

    async def _open(self, target: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            self._serial = await loop.run_in_executor(
                None,
                functools.partial(
                    serial.Serial,
                    port=target,
                    baudrate=self.baudrate,
                    timeout=self.connect_timeout,
                    write_timeout=self.write_timeout,
                ),
            )
        except serial.SerialException as e:
            raise ConnectError(f"Failed to open serial port {target}: {e}") from e

    async def _close(self) -> None:
        if self._serial:
            port, self._serial = self._serial, None
            port.close()

    async def _write(self, data: bytes) -> None:
        if not self._serial:
            raise WriteError("Serial port is not open")
        loop = asyncio.get_running_loop()
        written = await loop.run_in_executor(None, self._write_all, self._serial, data)
        if written != len(data):
            raise WriteError(f"Short write to {self._serial.port}: {written} of {len(data)} bytes")

    @staticmethod
    def _write_all(port: serial.Serial, data: bytes) -> int:
        written = port.write(data) or 0
        port.flush()
        return written

    async def scan(self) -> list[DeviceDescriptor]:
        loop = asyncio.get_running_loop()
        try:
            ports = await loop.run_in_executor(None, list_ports.comports)
        except OSError as e:
            logger.warning(f"Failed to scan serial ports: {e}")
            return []

        devices = []
        for port in sorted(ports, key=lambda p: p.device):
            if port.vid is not None and port.pid is not None:
                description = f"USB Device (VID:{port.vid:04x} PID:{port.pid:04x})"
            else:
                description = "Serial/USB Device"
            devices.append(DeviceDescriptor(path=port.device, description=description, kind=self.kind))
        return devices
