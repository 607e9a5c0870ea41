"""Parallel port (LPT) transport."""

import asyncio
import glob
import logging
import re
import sys
from typing import BinaryIO

from receiptable.models.printer import ConnectionKind, DeviceDescriptor
from receiptable.transports.base import BaseTransport, ConnectError, WriteError

logger = logging.getLogger(__name__)

LPT_NAME = re.compile(r"^LPT\d+:?$", re.IGNORECASE)
WINDOWS_PORTS = ("LPT1", "LPT2", "LPT3")
POSIX_PATTERNS = ("/dev/lp[0-9]*", "/dev/usb/lp[0-9]*")


class ParallelTransport(BaseTransport):
    """Printer on a parallel port; target is the OS port name (``LPT1``, ``/dev/lp0``)."""

    kind = ConnectionKind.PARALLEL

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._port: BinaryIO | None = None

    async def _open(self, target: str) -> None:
        if LPT_NAME.match(target) and sys.platform != "win32":
            raise ConnectError("LPT ports are only supported on Windows; use a device path such as /dev/lp0")
        loop = asyncio.get_running_loop()
        self._port = await loop.run_in_executor(None, open, target, "wb", 0)

    async def _close(self) -> None:
        if self._port:
            port, self._port = self._port, None
            port.close()

    async def _write(self, data: bytes) -> None:
        if not self._port:
            raise WriteError("Parallel port is not open")
        await asyncio.get_running_loop().run_in_executor(None, self._write_all, self._port, data)

    @staticmethod
    def _write_all(port: BinaryIO, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = port.write(view)
            if not written:
                raise WriteError("Parallel port accepted no data")
            view = view[written:]
        port.flush()

    async def scan(self) -> list[DeviceDescriptor]:
        if sys.platform == "win32":
            return [
                DeviceDescriptor(path=name, description=f"Parallel Port {name[3:]}", kind=self.kind)
                for name in WINDOWS_PORTS
            ]
        paths: list[str] = []
        for pattern in POSIX_PATTERNS:
            paths.extend(sorted(glob.glob(pattern)))
        return [DeviceDescriptor(path=path, description="Parallel Port", kind=self.kind) for path in paths]
