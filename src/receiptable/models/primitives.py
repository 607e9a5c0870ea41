"""Drawing primitives produced by the renderer.

Primitives are fully resolved: no placeholders, no conditions. They are the
contract between the renderer and the ESC/POS encoder.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from receiptable.models.template import Alignment, BarcodeFormat


class _Primitive(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextPrimitive(_Primitive):
    kind: Literal["text"] = "text"
    text: str
    align: Alignment = Alignment.LEFT
    bold: bool = False
    underline: bool = False
    invert: bool = False
    font_size: int = 1
    font_width: int = 1


class LogoPrimitive(_Primitive):
    kind: Literal["logo"] = "logo"
    source: str
    align: Alignment = Alignment.CENTER
    max_width: int | None = None
    max_height: int | None = None


class DividerPrimitive(_Primitive):
    kind: Literal["divider"] = "divider"
    character: str = "-"
    width: int  # Columns
    align: Alignment = Alignment.LEFT


class RowPrimitive(_Primitive):
    kind: Literal["row"] = "row"
    left: str = ""
    center: str = ""
    right: str = ""
    bold: bool = False
    separator: str | None = None


class TableCell(_Primitive):
    text: str
    width: int
    align: Alignment = Alignment.LEFT


class TableRowPrimitive(_Primitive):
    kind: Literal["table_row"] = "table_row"
    cells: list[TableCell]
    bold: bool = False


class QRPrimitive(_Primitive):
    kind: Literal["qr"] = "qr"
    content: str
    size: int = 4
    align: Alignment = Alignment.CENTER


class BarcodePrimitive(_Primitive):
    kind: Literal["barcode"] = "barcode"
    content: str
    format: BarcodeFormat = BarcodeFormat.CODE128
    height: int = 64
    width: int = 3
    show_text: bool = True
    align: Alignment = Alignment.CENTER


class FeedPrimitive(_Primitive):
    kind: Literal["feed"] = "feed"
    lines: int = 1


DrawingPrimitive = Annotated[
    TextPrimitive
    | LogoPrimitive
    | DividerPrimitive
    | RowPrimitive
    | TableRowPrimitive
    | QRPrimitive
    | BarcodePrimitive
    | FeedPrimitive,
    Field(discriminator="kind"),
]


class RenderResult(BaseModel):
    """Output of a render: primitives in print order plus non-fatal diagnostics."""

    primitives: list[DrawingPrimitive] = Field(default_factory=list)
    diagnostics: list[str] = Field(default_factory=list)
