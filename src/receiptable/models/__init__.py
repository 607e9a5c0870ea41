"""Pydantic models for receiptable."""

from receiptable.models.job import OperationResult, PrinterStatus, TemplateListing, TemplateSummary
from receiptable.models.primitives import DrawingPrimitive, RenderResult
from receiptable.models.printer import ConnectionKind, DeviceDescriptor, PrinterConfig, TransportState
from receiptable.models.template import (
    Template,
    TemplateValidationError,
    UnsupportedElementError,
    parse_and_validate,
)

__all__ = [
    "ConnectionKind",
    "DeviceDescriptor",
    "DrawingPrimitive",
    "OperationResult",
    "PrinterConfig",
    "PrinterStatus",
    "RenderResult",
    "Template",
    "TemplateListing",
    "TemplateSummary",
    "TemplateValidationError",
    "TransportState",
    "UnsupportedElementError",
    "parse_and_validate",
]
