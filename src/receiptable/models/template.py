"""Receipt template configuration models."""

import json
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

# Characters per line for the supported paper rolls
PAPER_COLUMNS = {58: 32, 80: 48}
DEFAULT_PAPER_MM = 80
MIN_COLUMNS = 16
MAX_COLUMNS = 64


class TemplateValidationError(ValueError):
    """Raised when a template is malformed or uses unsupported values."""

    pass


class UnsupportedElementError(TemplateValidationError):
    """Raised when an element uses a type the renderer does not know."""

    def __init__(self, element_type: str, location: str = "") -> None:
        self.element_type = element_type
        where = f" at {location}" if location else ""
        super().__init__(f"Unsupported element type '{element_type}'{where}")


class Alignment(StrEnum):
    """Horizontal alignment."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class BarcodeFormat(StrEnum):
    """Supported 1D barcode symbologies."""

    CODE128 = "CODE128"
    CODE39 = "CODE39"
    EAN13 = "EAN13"
    EAN8 = "EAN8"
    UPC_A = "UPC-A"
    UPC_E = "UPC-E"
    ITF = "ITF"
    CODABAR = "CODABAR"


class DividerStyle(StrEnum):
    """Divider line styles."""

    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"
    DOUBLE = "double"


class ColumnFormat(StrEnum):
    """Value formatting for table columns."""

    TEXT = "text"
    NUMBER = "number"
    INTEGER = "integer"
    CURRENCY = "currency"


class _ElementBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    condition: str | None = None
    align: Alignment = Alignment.LEFT


class TextElement(_ElementBase):
    """A line (or wrapped paragraph) of text."""

    type: Literal["text"] = "text"
    content: str
    bold: bool = False
    underline: bool = False
    invert: bool = False
    font_size: int = Field(default=1, ge=1, le=8)  # Height multiplier
    font_width: int = Field(default=1, ge=1, le=8)  # Width multiplier


class LogoElement(_ElementBase):
    """Bitmap logo, loaded from a file path or a data URI."""

    type: Literal["logo"] = "logo"
    source: str | None = None
    max_width: int | None = Field(default=None, gt=0)
    max_height: int | None = Field(default=None, gt=0)


class DividerElement(_ElementBase):
    """Horizontal rule made of a repeated character."""

    type: Literal["divider"] = "divider"
    style: DividerStyle = DividerStyle.SOLID
    character: str | None = Field(default=None, min_length=1)
    length: str = "full"  # "full", "half" or a number of columns

    @field_validator("length", mode="before")
    @classmethod
    def _check_length(cls, value: Any) -> str:
        value = str(value).strip().lower()
        if value in ("full", "half") or (value.isdigit() and int(value) > 0):
            return value
        raise ValueError("length must be 'full', 'half' or a positive number of columns")


class RowElement(_ElementBase):
    """Left/right (and optional centre) text on one line.

    With ``data_source`` set, one row is emitted per item of that list.
    """

    type: Literal["row"] = "row"
    left: str | None = Field(default=None, validation_alias=AliasChoices("left", "left_content"))
    center: str | None = Field(default=None, validation_alias=AliasChoices("center", "center_content"))
    right: str | None = Field(default=None, validation_alias=AliasChoices("right", "right_content"))
    bold: bool = False
    separator: str | None = None
    data_source: str | None = Field(default=None, validation_alias=AliasChoices("data_source", "rows_source"))

    @model_validator(mode="after")
    def _check_content(self) -> "RowElement":
        if self.left is None and self.center is None and self.right is None:
            raise ValueError("row requires at least one of left, center or right")
        return self


class QRElement(_ElementBase):
    """QR code."""

    type: Literal["qr"] = "qr"
    content: str
    size: int = Field(default=4, ge=1, le=16)


class BarcodeElement(_ElementBase):
    """Linear barcode."""

    type: Literal["barcode"] = "barcode"
    content: str
    format: BarcodeFormat = BarcodeFormat.CODE128
    height: int = Field(default=64, ge=1, le=255)
    width: int = Field(default=3, ge=2, le=6)
    show_text: bool = True

    @field_validator("format", mode="before")
    @classmethod
    def _normalise_format(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class TableColumn(BaseModel):
    """Column of a table element."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    header: str = ""
    field: str  # Dotted path into the item, or a template with {{placeholders}}
    width: int | None = Field(default=None, gt=0)
    align: Alignment = Alignment.LEFT
    format: ColumnFormat = ColumnFormat.TEXT


class TableElement(_ElementBase):
    """Table with one row per item of a list in the payload."""

    type: Literal["table"] = "table"
    columns: list[TableColumn] = Field(min_length=1)
    data_source: str = Field(validation_alias=AliasChoices("data_source", "rows_source"))
    show_header: bool = True
    header_bold: bool = True
    header_divider: bool = True


class SpaceElement(_ElementBase):
    """Blank lines."""

    type: Literal["space"] = "space"
    lines: int = Field(default=1, ge=0, le=255, validation_alias=AliasChoices("lines", "height"))


# Union type with discriminator for element parsing
Element = Annotated[
    TextElement | LogoElement | DividerElement | RowElement | QRElement | BarcodeElement | TableElement | SpaceElement,
    Field(discriminator="type"),
]

ELEMENT_TYPES = frozenset({"text", "logo", "divider", "row", "qr", "barcode", "table", "space"})


class Spacing(BaseModel):
    """Blank lines around a section."""

    model_config = ConfigDict(frozen=True)

    before: int = Field(default=0, ge=0)
    after: int = Field(default=0, ge=0)


class Section(BaseModel):
    """Ordered group of elements (header, body, footer, ...)."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    kind: str = Field(default="body", validation_alias=AliasChoices("type", "kind"))
    name: str | None = None
    condition: str | None = None
    elements: list[Element] = Field(default_factory=list)
    spacing: Spacing | None = None


class PaperWidth(BaseModel):
    """Printable width of the paper roll."""

    model_config = ConfigDict(frozen=True)

    columns: int
    millimetres: int | None = None

    @classmethod
    def parse(cls, value: Any) -> "PaperWidth":
        """Parse ``58``/``80``/``"58mm"``/``"80mm"`` or a column count."""
        if value is None:
            return cls(columns=PAPER_COLUMNS[DEFAULT_PAPER_MM], millimetres=DEFAULT_PAPER_MM)
        if isinstance(value, PaperWidth):
            return value
        if isinstance(value, dict):
            return cls.model_validate(value)
        if isinstance(value, bool):
            raise ValueError(f"Unsupported paper width: {value!r}")
        if isinstance(value, str):
            text = value.strip().lower()
            if text.endswith("mm"):
                text = text[:-2].strip()
                if text.isdigit() and int(text) in PAPER_COLUMNS:
                    mm = int(text)
                    return cls(columns=PAPER_COLUMNS[mm], millimetres=mm)
                raise ValueError(f"Unsupported paper width: {value!r} (expected 58mm or 80mm)")
            if not text.isdigit():
                raise ValueError(f"Unsupported paper width: {value!r}")
            value = int(text)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int):
            raise ValueError(f"Unsupported paper width: {value!r}")
        if value in PAPER_COLUMNS:
            return cls(columns=PAPER_COLUMNS[value], millimetres=value)
        if MIN_COLUMNS <= value <= MAX_COLUMNS:
            return cls(columns=value)
        raise ValueError(
            f"Unsupported paper width: {value!r} (expected 58mm, 80mm or {MIN_COLUMNS}-{MAX_COLUMNS} columns)"
        )


class Template(BaseModel):
    """A validated receipt template."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str = ""
    version: str = "1.0"
    paper_width: PaperWidth = Field(default_factory=lambda: PaperWidth.parse(None))
    sections: list[Section] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # Templates from the POS web app nest sections under "layout"
        layout = data.pop("layout", None)
        if "sections" not in data and isinstance(layout, dict):
            data["sections"] = layout.get("sections", [])
        if not data.get("name"):
            data["name"] = data.get("id") or ""
        if data.get("version") is None:
            data.pop("version", None)
        else:
            data["version"] = str(data["version"])
        data["paper_width"] = PaperWidth.parse(data.get("paper_width"))
        return data

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("template id must not be empty")
        return value


def _check_element_types(data: dict[str, Any]) -> None:
    """Reject unknown element types before pydantic sees them."""
    sections = data.get("sections")
    if sections is None and isinstance(data.get("layout"), dict):
        sections = data["layout"].get("sections")
    if not isinstance(sections, list):
        return
    for s_idx, section in enumerate(sections):
        if not isinstance(section, dict) or not isinstance(section.get("elements"), list):
            continue
        for e_idx, element in enumerate(section["elements"]):
            if not isinstance(element, dict):
                continue
            element_type = element.get("type")
            if element_type is None:
                raise TemplateValidationError(f"sections.{s_idx}.elements.{e_idx}: element is missing 'type'")
            if not isinstance(element_type, str):
                raise TemplateValidationError(f"sections.{s_idx}.elements.{e_idx}: element 'type' must be a string")
            if element_type not in ELEMENT_TYPES:
                raise UnsupportedElementError(str(element_type), f"sections.{s_idx}.elements.{e_idx}")


def _format_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def parse_and_validate(raw: str | bytes | dict[str, Any] | Template) -> Template:
    """Parse raw template JSON into a validated Template.

    Args:
        raw: JSON text, bytes, an already-decoded mapping or a Template.

    Returns:
        The validated template.

    Raises:
        TemplateValidationError: If the template is malformed.
        UnsupportedElementError: If an element has an unknown type.
    """
    if isinstance(raw, Template):
        return raw
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TemplateValidationError(f"Invalid template JSON: {e}") from e
    if not isinstance(raw, dict):
        raise TemplateValidationError("Template must be a JSON object")

    _check_element_types(raw)
    try:
        return Template.model_validate(raw)
    except ValidationError as e:
        raise TemplateValidationError(f"Invalid template: {_format_errors(e)}") from e
    except ValueError as e:
        raise TemplateValidationError(f"Invalid template: {e}") from e
