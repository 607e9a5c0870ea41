"""Print job and status models."""

from datetime import datetime

from pydantic import BaseModel, Field

from receiptable.models.printer import ConnectionKind, TransportState


class OperationResult(BaseModel):
    """Successful outcome of an orchestrator operation."""

    success: bool = True
    message: str
    diagnostics: list[str] = Field(default_factory=list)


class TemplateSummary(BaseModel):
    """Short description of a cached template."""

    template_id: str
    name: str
    version: str
    cached: bool = True
    cached_at: datetime


class TemplateListing(BaseModel):
    """Cached templates plus the active template id."""

    templates: list[TemplateSummary] = Field(default_factory=list)
    active_template_id: str | None = None


class PrinterStatus(BaseModel):
    """Printer and template cache status."""

    connected: bool
    connection_kind: ConnectionKind | None = None
    device_path: str | None = None
    state: TransportState = TransportState.DISCONNECTED
    active_template: str | None = None
    cached_count: int = 0
