"""Template evaluation, rendering and encoding for receiptable."""

from receiptable.templates.encoder import EscPosEncoder, render_preview
from receiptable.templates.engine import (
    EncodingError,
    EvalError,
    RenderError,
    SubstitutionTypeError,
    TemplateError,
)
from receiptable.templates.expression import evaluate
from receiptable.templates.renderer import TemplateRenderer, render

__all__ = [
    "EncodingError",
    "EscPosEncoder",
    "EvalError",
    "RenderError",
    "SubstitutionTypeError",
    "TemplateError",
    "TemplateRenderer",
    "evaluate",
    "render",
    "render_preview",
]
