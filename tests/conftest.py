"""Pytest configuration and fixtures."""

from typing import Any

import pytest

from receiptable.models.printer import ConnectionKind, DeviceDescriptor, PrinterConfig
from receiptable.transports.base import BaseTransport, WriteError


class MockTransport(BaseTransport):
    """Transport that records writes instead of talking to hardware."""

    kind = ConnectionKind.SOCKET

    def __init__(self, fail_writes: bool = False, fail_connect: bool = False, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail_writes = fail_writes
        self.fail_connect = fail_connect
        self.written: list[bytes] = []
        self.opened: list[str] = []
        self.closed = 0

    async def _open(self, target: str) -> None:
        if self.fail_connect:
            raise OSError("device unavailable")
        self.opened.append(target)

    async def _close(self) -> None:
        self.closed += 1

    async def _write(self, data: bytes) -> None:
        if self.fail_writes:
            raise WriteError("printer went away")
        self.written.append(data)

    async def scan(self) -> list[DeviceDescriptor]:
        return [DeviceDescriptor(path="10.0.0.5", description="Mock printer", kind=self.kind)]


class TransportRecorder:
    """Transport factory that hands out MockTransports and remembers them."""

    def __init__(self, transport_cls: type[MockTransport] = MockTransport, **options: Any) -> None:
        self.transport_cls = transport_cls
        self.options = options
        self.created: list[MockTransport] = []

    def __call__(self, kind: ConnectionKind, config: PrinterConfig | None) -> MockTransport:
        transport = self.transport_cls(**self.options)
        transport.kind = kind
        self.created.append(transport)
        return transport

    @property
    def last(self) -> MockTransport:
        return self.created[-1]


@pytest.fixture
def receipt_template() -> dict[str, Any]:
    """A receipt template in the POS web app's JSON shape."""
    return {
        "id": "receipt-basic",
        "name": "Basic Receipt",
        "version": "1.2",
        "paper_width": 80,
        "layout": {
            "sections": [
                {
                    "type": "header",
                    "elements": [
                        {"type": "text", "content": "{{store_name}}", "align": "center", "bold": True},
                        {"type": "text", "content": "Order #{{order_id}}", "align": "center"},
                        {"type": "divider"},
                    ],
                },
                {
                    "type": "body",
                    "elements": [
                        {
                            "type": "table",
                            "data_source": "items",
                            "columns": [
                                {"header": "Item", "field": "name"},
                                {"header": "Qty", "field": "quantity", "width": 5, "align": "right"},
                                {
                                    "header": "Total",
                                    "field": "total",
                                    "width": 10,
                                    "align": "right",
                                    "format": "currency",
                                },
                            ],
                        },
                        {"type": "divider", "style": "double"},
                        {"type": "row", "left": "TOTAL", "right": "${{total}}", "bold": True},
                    ],
                },
                {
                    "type": "footer",
                    "elements": [
                        {"type": "text", "content": "Points earned: {{points}}", "condition": "points > 0"},
                        {
                            "type": "qr",
                            "content": "{{receipt_url}}",
                            "align": "center",
                            "condition": "receipt_url != ''",
                        },
                        {"type": "space", "lines": 2},
                    ],
                },
            ]
        },
    }


@pytest.fixture
def receipt_data() -> dict[str, Any]:
    return {
        "store_name": "Acme",
        "order_id": "ORD-1",
        "items": [
            {"name": "Coffee", "quantity": 2, "price": 3.5, "total": 7.0},
            {"name": "Bagel", "quantity": 1, "price": 2.25, "total": 2.25},
        ],
        "total": 9.25,
        "points": 5,
        "receipt_url": "https://example.com/r/ORD-1",
    }
