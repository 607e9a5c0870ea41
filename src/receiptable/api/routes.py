"""REST API routes for receiptable."""

import logging
import secrets
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from receiptable.config import AppConfig, save_config, settings
from receiptable.models.job import OperationResult, PrinterStatus, TemplateListing
from receiptable.models.primitives import RenderResult
from receiptable.models.printer import ConnectionKind, DeviceDescriptor, PrinterConfig
from receiptable.models.template import TemplateValidationError
from receiptable.orchestrator import NoActiveTemplateError, PrintOrchestrator, TemplateNotFoundError
from receiptable.templates.engine import EncodingError, RenderError
from receiptable.transports import ConnectError, NotConnectedError, TransportError, TransportTimeoutError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator(request: Request) -> PrintOrchestrator:
    """Orchestrator owned by the application (set during startup)."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=500, detail="Print orchestrator not initialized")
    return orchestrator


def get_config(request: Request) -> AppConfig:
    return getattr(request.app.state, "config", None) or AppConfig()


async def verify_api_key(request: Request) -> None:
    """Verify API key if configured.

    API key can be provided via:
    - X-API-Key header
    - Authorization: Bearer <key> header
    - api_key query parameter

    If no API key is configured, all requests are allowed.
    """
    configured_key = get_config(request).api_key

    # No API key configured = open access
    if not configured_key:
        return

    provided_key = None

    if "X-API-Key" in request.headers:
        provided_key = request.headers["X-API-Key"]
    elif "Authorization" in request.headers:
        auth = request.headers["Authorization"]
        if auth.startswith("Bearer "):
            provided_key = auth[7:]
    # Query parameter (less secure, but convenient for testing)
    elif "api_key" in request.query_params:
        provided_key = request.query_params["api_key"]

    if not provided_key or not secrets.compare_digest(provided_key, configured_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )


@contextmanager
def _http_errors() -> Iterator[None]:
    """Map orchestrator errors to HTTP status codes."""
    try:
        yield
    except (TemplateValidationError, RenderError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except (NoActiveTemplateError, NotConnectedError) as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except (ConnectError, TransportTimeoutError) as e:
        raise HTTPException(status_code=502, detail=f"Printer connection failed: {e}") from e
    except TransportError as e:
        raise HTTPException(status_code=502, detail=f"Print failed: {e}") from e
    except EncodingError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e


# Request models


class SetTemplateRequest(BaseModel):
    """Template upload body."""

    template: dict[str, Any]


class PrintTemplateRequest(BaseModel):
    """Print request body."""

    data: dict[str, Any] = Field(default_factory=dict)
    template_id: str | None = None
    template: dict[str, Any] | None = None


class LegacyPrintItem(BaseModel):
    name: str
    quantity: int = Field(ge=0)
    price: float


class LegacyPrintRequest(BaseModel):
    """Fixed-shape order body accepted by POST /print."""

    order_id: str
    timestamp: str
    items: list[LegacyPrintItem]
    subtotal: float
    tax: float
    total: float
    payment_method: str

    def to_payload(self) -> dict[str, Any]:
        """Template payload with per-item totals filled in."""
        payload = self.model_dump()
        payload["items"] = [{**item.model_dump(), "total": item.quantity * item.price} for item in self.items]
        return payload


class PreviewRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)
    template_id: str | None = None


class ConnectRequest(BaseModel):
    connection_type: str
    device_path: str


# Endpoints


@router.get("/health")
async def health() -> dict[str, str]:
    """Health check."""
    return {"status": "healthy"}


@router.get("/status", response_model=PrinterStatus)
async def get_status(orchestrator: PrintOrchestrator = Depends(get_orchestrator)) -> PrinterStatus:
    """Printer connection and template cache status."""
    return orchestrator.status()


@router.post(
    "/template",
    response_model=OperationResult,
    responses={400: {"description": "Invalid template"}},
)
async def set_template(
    request: SetTemplateRequest,
    orchestrator: PrintOrchestrator = Depends(get_orchestrator),
) -> OperationResult:
    """Cache a template and make it active."""
    with _http_errors():
        return orchestrator.set_template(request.template)


@router.get("/templates", response_model=TemplateListing)
async def list_templates(orchestrator: PrintOrchestrator = Depends(get_orchestrator)) -> TemplateListing:
    """List cached templates."""
    return orchestrator.list_templates()


@router.get("/template/{template_id}")
async def get_template(
    template_id: str,
    orchestrator: PrintOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Get a cached template."""
    with _http_errors():
        return orchestrator.get_template(template_id).model_dump(mode="json")


@router.post(
    "/print-template",
    response_model=OperationResult,
    responses={
        400: {"description": "Invalid template or data"},
        404: {"description": "Template not found"},
        409: {"description": "No active template or printer not connected"},
        502: {"description": "Printer communication failed"},
    },
)
async def print_template(
    request: PrintTemplateRequest,
    orchestrator: PrintOrchestrator = Depends(get_orchestrator),
) -> OperationResult:
    """Print a receipt with the active (or given) template."""
    with _http_errors():
        return await orchestrator.print_with_data(
            request.data,
            template_id=request.template_id,
            template=request.template,
        )


@router.post(
    "/print",
    response_model=OperationResult,
    responses={
        400: {"description": "Invalid data"},
        409: {"description": "No active template or printer not connected"},
        502: {"description": "Printer communication failed"},
    },
)
async def print_order(
    request: LegacyPrintRequest,
    orchestrator: PrintOrchestrator = Depends(get_orchestrator),
) -> OperationResult:
    """Print a fixed-shape order with the active template."""
    with _http_errors():
        return await orchestrator.print_with_data(request.to_payload())


@router.post("/test-print", response_model=OperationResult)
async def test_print(orchestrator: PrintOrchestrator = Depends(get_orchestrator)) -> OperationResult:
    """Print the active template with test data."""
    with _http_errors():
        return await orchestrator.test_print()


@router.post("/preview", response_model=RenderResult)
async def preview(
    request: PreviewRequest,
    orchestrator: PrintOrchestrator = Depends(get_orchestrator),
) -> RenderResult:
    """Render the active (or given) template without printing."""
    with _http_errors():
        return orchestrator.preview(request.data, template_id=request.template_id)


@router.delete("/cache", response_model=OperationResult)
async def clear_cache(orchestrator: PrintOrchestrator = Depends(get_orchestrator)) -> OperationResult:
    """Remove all cached templates."""
    return orchestrator.clear_cache()


@router.post("/connect", response_model=OperationResult)
async def connect(
    request: ConnectRequest,
    http_request: Request,
    orchestrator: PrintOrchestrator = Depends(get_orchestrator),
) -> OperationResult:
    """Connect to a printer and remember the connection."""
    try:
        kind = ConnectionKind.parse(request.connection_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    with _http_errors():
        result = await orchestrator.connect(kind, request.device_path)

    config = get_config(http_request)
    if config.persist_connection:
        current = orchestrator.printer_config or PrinterConfig(connection_type=kind, device_path=request.device_path)
        config.printer = current
        try:
            save_config(config, settings.config_file)
        except OSError as e:
            logger.warning(f"Failed to save config: {e}")
    return result


@router.post("/disconnect", response_model=OperationResult)
async def disconnect(orchestrator: PrintOrchestrator = Depends(get_orchestrator)) -> OperationResult:
    """Disconnect from the printer."""
    return await orchestrator.disconnect()


@router.get("/devices", response_model=list[DeviceDescriptor])
async def list_devices(
    kind: str | None = None,
    orchestrator: PrintOrchestrator = Depends(get_orchestrator),
) -> list[DeviceDescriptor]:
    """Scan for printers of one kind, or all kinds."""
    try:
        return await orchestrator.scan(kind)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
