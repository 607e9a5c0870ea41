"""Tests for the template renderer."""

import pytest

from receiptable.models.primitives import (
    DividerPrimitive,
    FeedPrimitive,
    QRPrimitive,
    RowPrimitive,
    TableRowPrimitive,
    TextPrimitive,
)
from receiptable.models.template import parse_and_validate
from receiptable.templates.engine import EvalError, SubstitutionTypeError
from receiptable.templates.renderer import TemplateRenderer, format_value, render


def _template(*elements, **extra):
    return parse_and_validate({"id": "t", "sections": [{"type": "body", "elements": list(elements)}], **extra})


class TestFormatValue:
    """Tests for scalar formatting."""

    @pytest.mark.parametrize(
        "value,expected",
        [(None, ""), (True, "true"), (False, "false"), (7.0, "7"), (2.25, "2.25"), (3, "3"), ("x", "x")],
    )
    def test_format(self, value, expected):
        assert format_value(value) == expected


class TestRender:
    """Tests for rendering templates to primitives."""

    def test_full_receipt(self, receipt_template, receipt_data):
        result = render(parse_and_validate(receipt_template), receipt_data)
        kinds = [p.kind for p in result.primitives]
        assert kinds == [
            "text",
            "text",
            "divider",
            "table_row",
            "divider",
            "table_row",
            "table_row",
            "divider",
            "row",
            "text",
            "qr",
            "feed",
        ]
        assert result.primitives[0] == TextPrimitive(text="Acme", align="center", bold=True)
        assert result.primitives[1].text == "Order #ORD-1"
        assert result.primitives[8] == RowPrimitive(left="TOTAL", right="$9.25", bold=True)
        assert result.primitives[9].text == "Points earned: 5"
        assert result.primitives[10] == QRPrimitive(content="https://example.com/r/ORD-1", align="center")
        assert result.diagnostics == []

    def test_deterministic(self, receipt_template, receipt_data):
        template = parse_and_validate(receipt_template)
        renderer = TemplateRenderer()
        assert renderer.render(template, receipt_data) == renderer.render(template, receipt_data)

    def test_conditions_skip_elements(self, receipt_template, receipt_data):
        receipt_data["points"] = 0
        receipt_data["receipt_url"] = ""
        result = render(parse_and_validate(receipt_template), receipt_data)
        assert not any(isinstance(p, QRPrimitive) for p in result.primitives)
        assert not any(isinstance(p, TextPrimitive) and p.text.startswith("Points") for p in result.primitives)

    def test_section_condition(self):
        template = parse_and_validate(
            {
                "id": "t",
                "sections": [
                    {"type": "promo", "condition": "promo == true", "elements": [{"type": "text", "content": "SALE"}]},
                    {"type": "body", "elements": [{"type": "text", "content": "body"}]},
                ],
            }
        )
        assert [p.text for p in render(template, {"promo": False}).primitives] == ["body"]
        assert [p.text for p in render(template, {"promo": True}).primitives] == ["SALE", "body"]

    def test_section_spacing(self):
        template = parse_and_validate(
            {
                "id": "t",
                "sections": [
                    {"spacing": {"before": 1, "after": 2}, "elements": [{"type": "text", "content": "x"}]},
                ],
            }
        )
        primitives = render(template, {}).primitives
        assert primitives == [FeedPrimitive(lines=1), TextPrimitive(text="x"), FeedPrimitive(lines=2)]

    def test_condition_unknown_identifier(self):
        template = _template({"type": "text", "content": "x", "condition": "missing > 0"})
        with pytest.raises(EvalError):
            render(template, {})

    def test_missing_value_degrades(self):
        result = render(_template({"type": "text", "content": "Hello {{customer.name}}!"}), {})
        assert result.primitives[0].text == "Hello !"
        assert result.diagnostics == ["missing value for 'customer.name'"]

    def test_nested_and_indexed_paths(self):
        template = _template({"type": "text", "content": "{{store.name}} / {{items.1.name}}"})
        result = render(template, {"store": {"name": "Acme"}, "items": [{"name": "A"}, {"name": "B"}]})
        assert result.primitives[0].text == "Acme / B"

    def test_list_in_text_is_an_error(self):
        with pytest.raises(SubstitutionTypeError, match="items"):
            render(_template({"type": "text", "content": "{{items}}"}), {"items": [1, 2]})

    def test_mapping_in_text_is_an_error(self):
        with pytest.raises(SubstitutionTypeError):
            render(_template({"type": "text", "content": "{{store}}"}), {"store": {"name": "Acme"}})

    def test_row_data_source(self):
        template = _template(
            {"type": "row", "left_content": "{{quantity}}x {{name}}", "right_content": "{{currency}}{{total}}",
             "rows_source": "{{items}}"}
        )
        payload = {"currency": "$", "items": [{"name": "Coffee", "quantity": 2, "total": 7.0}]}
        result = render(template, payload)
        assert result.primitives == [RowPrimitive(left="2x Coffee", right="$7")]

    def test_row_data_source_missing(self):
        result = render(_template({"type": "row", "left": "{{name}}", "data_source": "items"}), {})
        assert result.primitives == []
        assert result.diagnostics == ["missing list 'items'"]

    def test_row_data_source_not_a_list(self):
        with pytest.raises(SubstitutionTypeError):
            render(_template({"type": "row", "left": "{{name}}", "data_source": "items"}), {"items": "nope"})

    def test_table(self):
        template = _template(
            {
                "type": "table",
                "data_source": "items",
                "columns": [
                    {"header": "Item", "field": "name"},
                    {"header": "Qty", "field": "quantity", "width": 4, "align": "right", "format": "integer"},
                    {"header": "Price", "field": "{{currency}}{{price}}", "width": 8, "align": "right"},
                ],
            },
            paper_width=58,
        )
        payload = {"currency": "EUR", "items": [{"name": "Tea", "quantity": 1.0, "price": 2.5}]}
        header, divider, row = render(template, payload).primitives

        assert isinstance(header, TableRowPrimitive)
        assert header.bold is True
        assert [(c.text, c.width) for c in header.cells] == [("Item", 20), ("Qty", 4), ("Price", 8)]
        assert divider == DividerPrimitive(character="-", width=32)
        assert [c.text for c in row.cells] == ["Tea", "1", "EUR2.5"]

    def test_table_currency_format(self, receipt_template, receipt_data):
        result = render(parse_and_validate(receipt_template), receipt_data)
        first_item = result.primitives[5]
        assert [c.text for c in first_item.cells] == ["Coffee", "2", "$7.00"]

    @pytest.mark.parametrize("fmt", ["integer", "currency", "number"])
    @pytest.mark.parametrize("value", ["nan", "1e999", float("inf")])
    def test_table_non_finite_values_print_as_is(self, fmt, value):
        column = {"field": "qty", "format": fmt}
        template = _template({"type": "table", "data_source": "items", "show_header": False, "columns": [column]})
        (row,) = render(template, {"items": [{"qty": value}]}).primitives
        assert row.cells[0].text == format_value(value)

    def test_table_without_header(self):
        template = _template(
            {"type": "table", "data_source": "items", "show_header": False, "columns": [{"field": "name"}]}
        )
        primitives = render(template, {"items": [{"name": "A"}, {"name": "B"}]}).primitives
        assert [p.cells[0].text for p in primitives] == ["A", "B"]
        assert primitives[0].cells[0].width == 48

    def test_divider(self):
        template = _template(
            {"type": "divider"},
            {"type": "divider", "style": "double", "length": "half"},
            {"type": "divider", "character": "*", "length": 100},
            paper_width=58,
        )
        assert render(template, {}).primitives == [
            DividerPrimitive(character="-", width=32),
            DividerPrimitive(character="=", width=16),
            DividerPrimitive(character="*", width=32),
        ]

    def test_logo_without_source(self):
        result = render(_template({"type": "logo", "source": "{{logo_url}}"}), {"logo_url": ""})
        assert result.primitives == []
        assert "logo has no source" in result.diagnostics

    def test_space_zero_lines(self):
        assert render(_template({"type": "space", "lines": 0}), {}).primitives == []

    def test_barcode(self):
        result = render(_template({"type": "barcode", "content": "{{order_id}}", "format": "code39"}), {"order_id": 42})
        assert result.primitives[0].content == "42"
        assert result.primitives[0].format == "CODE39"
