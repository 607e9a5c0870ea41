"""Print orchestration: template cache, active transport and print jobs."""

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from receiptable.models.job import OperationResult, PrinterStatus, TemplateListing, TemplateSummary
from receiptable.models.primitives import RenderResult
from receiptable.models.printer import ConnectionKind, DeviceDescriptor, PrinterConfig, TransportState
from receiptable.models.template import Template, parse_and_validate
from receiptable.store import TemplateStore
from receiptable.templates.encoder import EscPosEncoder
from receiptable.templates.renderer import TemplateRenderer
from receiptable.transports import BaseTransport, NotConnectedError, TransportError, create_transport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[ConnectionKind, PrinterConfig | None], BaseTransport]


class OrchestratorError(Exception):
    """Base exception for orchestrator errors."""

    pass


class NoActiveTemplateError(OrchestratorError):
    """Printing requires an active template."""

    pass


class TemplateNotFoundError(OrchestratorError):
    """No cached template has the requested id."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"Template '{template_id}' not found in cache")


def sample_payload() -> dict[str, Any]:
    """Synthetic receipt data used by test prints."""
    return {
        "store_name": "Test Store",
        "store_address": "123 Test St",
        "order_id": "TEST-001",
        "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "cashier_name": "Test User",
        "items": [
            {"name": "Test Item 1", "quantity": 2, "price": 10.00, "total": 20.00},
            {"name": "Test Item 2", "quantity": 1, "price": 15.50, "total": 15.50},
        ],
        "subtotal": 35.50,
        "tax": 2.84,
        "tax_rate": 8.0,
        "total": 38.34,
        "payment_method": "Test Payment",
        "footer_message": "This is a test receipt",
    }


def _report_detached_write(task: asyncio.Future) -> None:
    """Log the outcome of a write whose caller was cancelled."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Print failed after its request was cancelled: {error}")
    else:
        logger.info("Print completed after its request was cancelled")


class PrintOrchestrator:
    """Owns the template store and the single active transport.

    Transport operations (connect, disconnect, scan and the final write of a
    print job) are serialised on one lock; concurrent print requests wait
    their turn. Rendering and encoding happen before the lock is taken.
    Failed writes are never retried, to avoid duplicate receipts.
    """

    def __init__(
        self,
        encoder: EscPosEncoder | None = None,
        renderer: TemplateRenderer | None = None,
        transport_factory: TransportFactory = create_transport,
        printer_config: PrinterConfig | None = None,
    ) -> None:
        self.store = TemplateStore()
        self.encoder = encoder or EscPosEncoder()
        self.renderer = renderer or TemplateRenderer()
        self.printer_config = printer_config
        self._transport_factory = transport_factory
        self._transport: BaseTransport | None = None
        self._kind: ConnectionKind | None = None
        self._device_path: str | None = None
        self._lock = asyncio.Lock()

    # Template operations

    def set_template(self, raw: str | bytes | dict[str, Any] | Template) -> OperationResult:
        """Validate a template, cache it and make it active.

        Raises:
            TemplateValidationError: If the template is invalid; the cache is unchanged.
        """
        template = parse_and_validate(raw)
        self.store.put(template)
        return OperationResult(message=f"Template '{template.id}' cached and set as active")

    def get_template(self, template_id: str) -> Template:
        entry = self.store.get(template_id)
        if entry is None:
            raise TemplateNotFoundError(template_id)
        return entry.template

    def list_templates(self) -> TemplateListing:
        return TemplateListing(
            templates=[
                TemplateSummary(
                    template_id=entry.template.id,
                    name=entry.template.name,
                    version=entry.template.version,
                    cached_at=entry.cached_at,
                )
                for entry in self.store.entries()
            ],
            active_template_id=self.store.active_id,
        )

    def clear_cache(self) -> OperationResult:
        self.store.clear()
        return OperationResult(message="Template cache cleared")

    def _select_template(
        self,
        template_id: str | None = None,
        template: str | bytes | dict[str, Any] | Template | None = None,
    ) -> Template:
        if template is not None:
            selected = parse_and_validate(template)
            self.store.put(selected)
            return selected
        if template_id is not None:
            selected = self.store.activate(template_id)
            if selected is None:
                raise TemplateNotFoundError(template_id)
            return selected
        selected = self.store.active()
        if selected is None:
            raise NoActiveTemplateError("No template specified and no active template set")
        return selected

    def preview(self, payload: Mapping[str, Any], template_id: str | None = None) -> RenderResult:
        """Render without printing."""
        if template_id is not None:
            return self.renderer.render(self.get_template(template_id), payload)
        template = self.store.active()
        if template is None:
            raise NoActiveTemplateError("No active template set")
        return self.renderer.render(template, payload)

    # Printing

    async def print_with_data(
        self,
        payload: Mapping[str, Any],
        template_id: str | None = None,
        template: str | bytes | dict[str, Any] | Template | None = None,
    ) -> OperationResult:
        """Render the active (or given) template with payload and print it.

        Raises:
            NoActiveTemplateError: If no template is active.
            TemplateNotFoundError: If template_id is not cached.
            NotConnectedError: If the printer is not connected.
            RenderError: If rendering fails; nothing is printed.
            EncodingError: If the primitives cannot be encoded.
            TransportError: If the write fails; the transport is left faulted.
        """
        selected = self._select_template(template_id, template)
        result = await self._print(selected, payload)
        order_id = payload.get("order_id")
        message = f"Receipt printed successfully (Order #{order_id})" if order_id else "Receipt printed successfully"
        return OperationResult(message=message, diagnostics=result.diagnostics)

    async def test_print(self) -> OperationResult:
        """Print the active template with synthetic data."""
        template = self.store.active()
        if template is None:
            raise NoActiveTemplateError("No active template set")
        result = await self._print(template, sample_payload())
        return OperationResult(message="Test receipt printed successfully", diagnostics=result.diagnostics)

    async def _print(self, template: Template, payload: Mapping[str, Any]) -> RenderResult:
        if not self._is_connected():
            raise NotConnectedError("Printer not connected")

        result = self.renderer.render(template, payload)
        data = self.encoder.encode(result.primitives, template.paper_width)

        # A started write runs to completion even if the caller goes away
        write = asyncio.ensure_future(self._write(data))
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            write.add_done_callback(_report_detached_write)
            raise
        logger.info(f"Printed template '{template.id}' ({len(data)} bytes)")
        return result

    async def _write(self, data: bytes) -> None:
        async with self._lock:
            transport = self._transport
            if transport is None or not transport.is_connected:
                raise NotConnectedError("Printer not connected")
            try:
                await transport.write_bytes(data)
            except TransportError as e:
                logger.error(f"Print failed on {self._kind} {self._device_path}: {e}")
                raise

    # Transport operations

    def _is_connected(self) -> bool:
        return self._transport is not None and self._transport.is_connected

    def _config_for(self, kind: ConnectionKind, target: str) -> PrinterConfig:
        if self.printer_config is None:
            return PrinterConfig(connection_type=kind, device_path=target)
        return self.printer_config.model_copy(update={"connection_type": kind, "device_path": target})

    async def connect(self, kind: ConnectionKind | str, target: str) -> OperationResult:
        """Connect to a printer, replacing any existing connection.

        Raises:
            ValueError: If kind is not a supported connection type.
            ConnectError: If the device cannot be opened.
            TransportTimeoutError: If connecting times out.
        """
        kind = ConnectionKind.parse(kind)
        logger.info(f"Connecting to {kind} printer at {target}")
        async with self._lock:
            if self._transport is not None:
                await self._transport.disconnect()
            config = self._config_for(kind, target)
            self._transport = self._transport_factory(kind, config)
            self._kind = kind
            self._device_path = target
            await self._transport.connect(target)
            self.printer_config = config
        logger.info("Printer connected successfully")
        return OperationResult(message=f"Connected to {kind} printer at {target}")

    async def disconnect(self) -> OperationResult:
        async with self._lock:
            if self._transport is not None:
                await self._transport.disconnect()
        logger.info("Printer disconnected")
        return OperationResult(message="Printer disconnected")

    async def scan(self, kind: ConnectionKind | str | None = None) -> list[DeviceDescriptor]:
        """List devices for one kind, or for every kind when kind is None."""
        kinds = [ConnectionKind.parse(kind)] if kind is not None else list(ConnectionKind)
        devices: list[DeviceDescriptor] = []
        async with self._lock:
            for k in kinds:
                if self._transport is not None and self._kind == k:
                    scanner = self._transport
                else:
                    scanner = self._transport_factory(k, self.printer_config)
                devices.extend(await scanner.scan())
        logger.info(f"Device scan completed ({len(devices)} found)")
        return devices

    def status(self) -> PrinterStatus:
        transport = self._transport
        return PrinterStatus(
            connected=self._is_connected(),
            connection_kind=self._kind,
            device_path=self._device_path,
            state=transport.state if transport is not None else TransportState.DISCONNECTED,
            active_template=self.store.active_id,
            cached_count=len(self.store),
        )

    async def close(self) -> None:
        """Release the transport on shutdown."""
        await self.disconnect()
