"""Template renderer: template + payload -> ordered drawing primitives."""

import logging
import math
import re
from collections.abc import Mapping
from typing import Any

from receiptable.models.primitives import (
    BarcodePrimitive,
    DividerPrimitive,
    DrawingPrimitive,
    FeedPrimitive,
    LogoPrimitive,
    QRPrimitive,
    RenderResult,
    RowPrimitive,
    TableCell,
    TableRowPrimitive,
    TextPrimitive,
)
from receiptable.models.template import (
    BarcodeElement,
    ColumnFormat,
    DividerElement,
    DividerStyle,
    Element,
    LogoElement,
    QRElement,
    RowElement,
    Section,
    SpaceElement,
    TableColumn,
    TableElement,
    Template,
    TextElement,
)
from receiptable.templates.engine import MISSING, SubstitutionTypeError, resolve_path
from receiptable.templates.expression import evaluate

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)\s*\}\}")

DIVIDER_CHARACTERS = {
    DividerStyle.SOLID: "-",
    DividerStyle.DASHED: "- ",
    DividerStyle.DOTTED: ".",
    DividerStyle.DOUBLE: "=",
}


def format_value(value: Any) -> str:
    """Format a scalar payload value for printing."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_column(value: Any, fmt: ColumnFormat) -> str:
    if fmt == ColumnFormat.TEXT or isinstance(value, bool):
        return format_value(value)
    try:
        number = float(value)
    except (OverflowError, TypeError, ValueError):
        return format_value(value)
    if not math.isfinite(number):
        return format_value(value)
    if fmt == ColumnFormat.INTEGER:
        return str(int(round(number)))
    if fmt == ColumnFormat.CURRENCY:
        return f"${number:.2f}"
    return f"{number:.2f}"


class _RenderContext:
    """Per-render state: paper width and collected diagnostics."""

    def __init__(self, template: Template) -> None:
        self.columns = template.paper_width.columns
        self.diagnostics: list[str] = []

    def substitute(self, content: str, *scopes: Mapping[str, Any]) -> str:
        """Replace {{placeholders}} in content, looking through scopes in order."""

        def replace(match: re.Match) -> str:
            identifier = match.group(1)
            value = MISSING
            for scope in scopes:
                value = resolve_path(scope, identifier)
                if value is not MISSING:
                    break
            if value is MISSING:
                self.diagnostics.append(f"missing value for '{identifier}'")
                return ""
            if isinstance(value, (list, tuple, Mapping)):
                raise SubstitutionTypeError(
                    f"'{identifier}' is a {'list' if isinstance(value, (list, tuple)) else 'mapping'} "
                    "and can only be used as the data source of a row or table"
                )
            return format_value(value)

        return PLACEHOLDER.sub(replace, content)

    def resolve_list(self, source: str, payload: Mapping[str, Any]) -> list[Mapping[str, Any]]:
        """Resolve a data_source reference to a list of mappings."""
        identifier = source.strip()
        match = PLACEHOLDER.fullmatch(identifier)
        if match:
            identifier = match.group(1)
        value = resolve_path(payload, identifier)
        if value is MISSING or value is None:
            self.diagnostics.append(f"missing list '{identifier}'")
            return []
        if not isinstance(value, (list, tuple)):
            raise SubstitutionTypeError(f"data source '{identifier}' is not a list")
        for index, item in enumerate(value):
            if not isinstance(item, Mapping):
                raise SubstitutionTypeError(f"item {index} of '{identifier}' is not an object")
        return list(value)


class TemplateRenderer:
    """Walks a template against a payload and emits drawing primitives.

    Rendering is pure: the same template and payload always produce the same
    primitives. Conditions and placeholders are resolved here; layout of
    rows and tables to physical columns is left to the encoder.
    """

    def render(self, template: Template, payload: Mapping[str, Any] | None = None) -> RenderResult:
        """Render a template.

        Args:
            template: Validated template.
            payload: Data payload.

        Returns:
            Primitives in document order plus non-fatal diagnostics.

        Raises:
            EvalError: If a condition is malformed or cannot be evaluated.
            SubstitutionTypeError: If a placeholder is used with the wrong kind of value.
        """
        payload = payload or {}
        ctx = _RenderContext(template)
        primitives: list[DrawingPrimitive] = []

        for section in template.sections:
            primitives.extend(self._render_section(section, payload, ctx))

        for diagnostic in ctx.diagnostics:
            logger.warning(f"Template '{template.id}': {diagnostic}")
        return RenderResult(primitives=primitives, diagnostics=ctx.diagnostics)

    def _render_section(
        self, section: Section, payload: Mapping[str, Any], ctx: _RenderContext
    ) -> list[DrawingPrimitive]:
        if not evaluate(section.condition, payload):
            return []

        out: list[DrawingPrimitive] = []
        if section.spacing and section.spacing.before:
            out.append(FeedPrimitive(lines=section.spacing.before))
        for element in section.elements:
            if not evaluate(element.condition, payload):
                continue
            out.extend(self._render_element(element, payload, ctx))
        if section.spacing and section.spacing.after:
            out.append(FeedPrimitive(lines=section.spacing.after))
        return out

    def _render_element(
        self, element: Element, payload: Mapping[str, Any], ctx: _RenderContext
    ) -> list[DrawingPrimitive]:
        match element:
            case TextElement():
                return [
                    TextPrimitive(
                        text=ctx.substitute(element.content, payload),
                        align=element.align,
                        bold=element.bold,
                        underline=element.underline,
                        invert=element.invert,
                        font_size=element.font_size,
                        font_width=element.font_width,
                    )
                ]
            case LogoElement():
                source = ctx.substitute(element.source or "", payload).strip()
                if not source:
                    ctx.diagnostics.append("logo has no source")
                    return []
                return [
                    LogoPrimitive(
                        source=source,
                        align=element.align,
                        max_width=element.max_width,
                        max_height=element.max_height,
                    )
                ]
            case DividerElement():
                return [self._render_divider(element, ctx)]
            case RowElement():
                return self._render_row(element, payload, ctx)
            case QRElement():
                content = ctx.substitute(element.content, payload)
                return [QRPrimitive(content=content, size=element.size, align=element.align)]
            case BarcodeElement():
                return [
                    BarcodePrimitive(
                        content=ctx.substitute(element.content, payload),
                        format=element.format,
                        height=element.height,
                        width=element.width,
                        show_text=element.show_text,
                        align=element.align,
                    )
                ]
            case TableElement():
                return self._render_table(element, payload, ctx)
            case SpaceElement():
                return [FeedPrimitive(lines=element.lines)] if element.lines else []
        raise TypeError(f"Unhandled element type: {type(element).__name__}")

    def _render_divider(self, element: DividerElement, ctx: _RenderContext) -> DividerPrimitive:
        if element.length == "full":
            width = ctx.columns
        elif element.length == "half":
            width = ctx.columns // 2
        else:
            width = min(int(element.length), ctx.columns)
        character = element.character or DIVIDER_CHARACTERS[element.style]
        return DividerPrimitive(character=character, width=width, align=element.align)

    def _render_row(
        self, element: RowElement, payload: Mapping[str, Any], ctx: _RenderContext
    ) -> list[DrawingPrimitive]:
        scopes: list[tuple[Mapping[str, Any], ...]]
        if element.data_source:
            scopes = [(item, payload) for item in ctx.resolve_list(element.data_source, payload)]
        else:
            scopes = [(payload,)]

        rows: list[DrawingPrimitive] = []
        for scope in scopes:
            rows.append(
                RowPrimitive(
                    left=ctx.substitute(element.left or "", *scope),
                    center=ctx.substitute(element.center or "", *scope),
                    right=ctx.substitute(element.right or "", *scope),
                    bold=element.bold,
                    separator=element.separator,
                )
            )
        return rows

    def _column_widths(self, columns: list[TableColumn], total: int) -> list[int]:
        fixed = sum(c.width for c in columns if c.width)
        flexible = [c for c in columns if not c.width]
        if not flexible:
            return [c.width or 0 for c in columns]
        share, extra = divmod(max(total - fixed, 0), len(flexible))
        widths = []
        for column in columns:
            if column.width:
                widths.append(column.width)
            else:
                # Leftover columns go to the first flexible column
                widths.append(max(share + extra, 1))
                extra = 0
        return widths

    def _cell_text(
        self, column: TableColumn, item: Mapping[str, Any], payload: Mapping[str, Any], ctx: _RenderContext
    ) -> str:
        if "{{" in column.field:
            return ctx.substitute(column.field, item, payload)
        value = resolve_path(item, column.field)
        if value is MISSING:
            ctx.diagnostics.append(f"missing value for '{column.field}'")
            return ""
        if isinstance(value, (list, tuple, Mapping)):
            raise SubstitutionTypeError(f"table column '{column.field}' resolved to a non-scalar value")
        return _format_column(value, column.format)

    def _render_table(
        self, element: TableElement, payload: Mapping[str, Any], ctx: _RenderContext
    ) -> list[DrawingPrimitive]:
        widths = self._column_widths(element.columns, ctx.columns)
        items = ctx.resolve_list(element.data_source, payload)
        out: list[DrawingPrimitive] = []

        if element.show_header:
            out.append(
                TableRowPrimitive(
                    cells=[
                        TableCell(text=ctx.substitute(c.header, payload), width=w, align=c.align)
                        for c, w in zip(element.columns, widths, strict=True)
                    ],
                    bold=element.header_bold,
                )
            )
            if element.header_divider:
                out.append(DividerPrimitive(character="-", width=min(sum(widths), ctx.columns)))

        for item in items:
            out.append(
                TableRowPrimitive(
                    cells=[
                        TableCell(text=self._cell_text(c, item, payload, ctx), width=w, align=c.align)
                        for c, w in zip(element.columns, widths, strict=True)
                    ]
                )
            )
        return out


_default_renderer = TemplateRenderer()


def render(template: Template, payload: Mapping[str, Any] | None = None) -> RenderResult:
    """Render a template with the module-level renderer."""
    return _default_renderer.render(template, payload)
