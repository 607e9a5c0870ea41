"""ESC/POS encoder: drawing primitives -> printer command bytes.

Command generation is delegated to python-escpos; its ``Dummy`` printer
buffers the commands in memory so the bytes can be handed to any transport.
"""

import base64
import binascii
import io
import logging
from collections.abc import Iterable

from escpos.exceptions import Error as EscposError
from escpos.printer import Dummy
from PIL import Image, UnidentifiedImageError

from receiptable.models.primitives import (
    BarcodePrimitive,
    DividerPrimitive,
    DrawingPrimitive,
    FeedPrimitive,
    LogoPrimitive,
    QRPrimitive,
    RowPrimitive,
    TableRowPrimitive,
    TextPrimitive,
)
from receiptable.models.template import Alignment, BarcodeFormat, PaperWidth
from receiptable.templates.engine import EncodingError

logger = logging.getLogger(__name__)

# Pixel width used when a logo has no max_width (dots per line on 80mm paper)
DEFAULT_LOGO_WIDTH = 512


def align_text(text: str, width: int, align: Alignment) -> str:
    """Pad or truncate text to exactly width columns."""
    if len(text) > width:
        return text[:width]
    if align == Alignment.RIGHT:
        return text.rjust(width)
    if align == Alignment.CENTER:
        return text.center(width)
    return text.ljust(width)


def layout_row(row: RowPrimitive, columns: int) -> str:
    """Lay out left/centre/right parts on a single line.

    The right part is kept intact; the left part is truncated when the two
    do not fit together.
    """
    fill = (row.separator or " ")[0]
    left, center, right = row.left, row.center, row.right

    if center:
        side = max((columns - len(center)) // 2, 0)
        left_part = align_text(left, side, Alignment.LEFT) if side else ""
        right_part = align_text(right, columns - side - len(center), Alignment.RIGHT)
        return (left_part + center + right_part)[:columns]

    if len(right) >= columns:
        return right[:columns]
    room = columns - len(right)
    if right and len(left) >= room:
        # Keep one column between the parts
        left = left[: max(room - 1, 0)]
    if not right:
        return left[:columns]
    gap = columns - len(left) - len(right)
    return left + fill * gap + right


def layout_table_row(row: TableRowPrimitive) -> str:
    return "".join(align_text(cell.text, cell.width, cell.align) for cell in row.cells).rstrip()


def layout_divider(divider: DividerPrimitive, columns: int) -> str:
    pattern = divider.character
    line = (pattern * (divider.width // len(pattern) + 1))[: divider.width]
    return align_text(line, columns, divider.align).rstrip()


def _load_image(source: str) -> Image.Image:
    if source.startswith("data:"):
        _, _, encoded = source.partition(",")
        data = base64.b64decode(encoded, validate=True)
        image = Image.open(io.BytesIO(data))
    else:
        image = Image.open(source)
    image.load()
    return image


class EscPosEncoder:
    """Encodes primitives to ESC/POS with python-escpos."""

    def __init__(self, cut: bool = True, feed_lines: int = 3, profile: str | None = None) -> None:
        self.cut = cut
        self.feed_lines = feed_lines
        self.profile = profile

    def encode(self, primitives: Iterable[DrawingPrimitive], paper: PaperWidth) -> bytes:
        """Encode primitives for a paper width.

        Raises:
            EncodingError: If a primitive cannot be encoded.
        """
        printer = Dummy(profile=self.profile) if self.profile else Dummy()
        columns = paper.columns
        try:
            printer.hw("INIT")
            for primitive in primitives:
                self._encode_one(printer, primitive, columns)
            printer.set_with_default()
            if self.feed_lines:
                printer.ln(self.feed_lines)
            if self.cut:
                printer.cut()
        except EncodingError:
            raise
        except EscposError as e:
            raise EncodingError(f"Failed to encode receipt: {e}") from e
        except (ValueError, TypeError) as e:
            raise EncodingError(f"Failed to encode receipt: {e}") from e
        return printer.output

    def _encode_one(self, printer: Dummy, primitive: DrawingPrimitive, columns: int) -> None:
        match primitive:
            case TextPrimitive():
                scaled = primitive.font_size > 1 or primitive.font_width > 1
                printer.set_with_default(
                    align=primitive.align.value,
                    bold=primitive.bold,
                    underline=1 if primitive.underline else 0,
                    invert=primitive.invert,
                    custom_size=scaled,
                    width=primitive.font_width,
                    height=primitive.font_size,
                )
                printer.textln(primitive.text)
            case RowPrimitive():
                printer.set_with_default(bold=primitive.bold)
                printer.textln(layout_row(primitive, columns))
            case TableRowPrimitive():
                printer.set_with_default(bold=primitive.bold)
                printer.textln(layout_table_row(primitive))
            case DividerPrimitive():
                printer.set_with_default()
                printer.textln(layout_divider(primitive, columns))
            case FeedPrimitive():
                if primitive.lines:
                    printer.ln(primitive.lines)
            case QRPrimitive():
                printer.set_with_default(align=primitive.align.value)
                printer.qr(primitive.content, size=primitive.size, native=True)
            case BarcodePrimitive():
                self._encode_barcode(printer, primitive)
            case LogoPrimitive():
                self._encode_logo(printer, primitive)
            case _:
                raise EncodingError(f"Unsupported primitive: {primitive!r}")

    def _encode_barcode(self, printer: Dummy, barcode: BarcodePrimitive) -> None:
        content = barcode.content
        if not content:
            raise EncodingError("Barcode content is empty")
        if barcode.format == BarcodeFormat.CODE128 and not content.startswith("{"):
            content = "{B" + content
        printer.set_with_default(align=barcode.align.value)
        printer.barcode(
            content,
            barcode.format.value,
            height=barcode.height,
            width=barcode.width,
            pos="BELOW" if barcode.show_text else "OFF",
            align_ct=barcode.align == Alignment.CENTER,
            function_type="B",
            check=False,
        )

    def _encode_logo(self, printer: Dummy, logo: LogoPrimitive) -> None:
        try:
            image = _load_image(logo.source)
        except (OSError, UnidentifiedImageError, binascii.Error, ValueError) as e:
            raise EncodingError(f"Failed to load logo '{logo.source[:60]}': {e}") from e

        max_width = logo.max_width or DEFAULT_LOGO_WIDTH
        max_height = logo.max_height or image.height
        image.thumbnail((max_width, max_height))
        printer.set_with_default(align=logo.align.value)
        printer.image(image)


def render_preview(primitives: Iterable[DrawingPrimitive], paper: PaperWidth) -> str:
    """Plain-text approximation of the printed receipt."""
    columns = paper.columns
    lines: list[str] = []
    for primitive in primitives:
        match primitive:
            case TextPrimitive():
                for line in primitive.text.splitlines() or [""]:
                    lines.append(align_text(line, columns, primitive.align).rstrip())
            case RowPrimitive():
                lines.append(layout_row(primitive, columns))
            case TableRowPrimitive():
                lines.append(layout_table_row(primitive))
            case DividerPrimitive():
                lines.append(layout_divider(primitive, columns))
            case FeedPrimitive():
                lines.extend([""] * primitive.lines)
            case QRPrimitive():
                lines.append(align_text(f"[QR: {primitive.content}]", columns, primitive.align).rstrip())
            case BarcodePrimitive():
                label = f"[{primitive.format}: {primitive.content}]"
                lines.append(align_text(label, columns, primitive.align).rstrip())
            case LogoPrimitive():
                lines.append(align_text("[LOGO]", columns, primitive.align).rstrip())
    return "\n".join(lines) + "\n"
