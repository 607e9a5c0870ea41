"""Tests for condition expressions."""

import pytest

from receiptable.templates.engine import EvalError
from receiptable.templates.expression import evaluate, parse


class TestParse:
    """Tests for expression parsing."""

    def test_parse_number_literal(self):
        comparison = parse("points > 0")
        assert comparison.identifier == "points"
        assert comparison.op == ">"
        assert comparison.literal == 0.0

    def test_parse_quoted_string(self):
        assert parse('payment_method == "Cash"').literal == "Cash"
        assert parse("payment_method == 'Card'").literal == "Card"

    def test_parse_boolean(self):
        assert parse("show_logo != false").literal is False

    def test_parse_dotted_identifier(self):
        assert parse("store.name == 'Acme'").identifier == "store.name"

    @pytest.mark.parametrize("expression", ["points", "> 0", "points >> 0", "points > ", "a == b"])
    def test_malformed(self, expression):
        with pytest.raises(EvalError):
            parse(expression)


class TestEvaluate:
    """Tests for evaluating conditions against a payload."""

    def test_blank_is_true(self):
        assert evaluate(None, {}) is True
        assert evaluate("   ", {}) is True

    def test_numeric_comparison(self):
        assert evaluate("points > 0", {"points": 5}) is True
        assert evaluate("points > 0", {"points": 0}) is False
        assert evaluate("total >= 10.5", {"total": 10.5}) is True
        assert evaluate("total < 10", {"total": 12}) is False

    def test_numeric_string_payload(self):
        assert evaluate("points > 3", {"points": "5"}) is True

    def test_string_equality(self):
        payload = {"payment_method": "Cash"}
        assert evaluate("payment_method == 'Cash'", payload) is True
        assert evaluate("payment_method != 'Cash'", payload) is False

    def test_empty_string(self):
        assert evaluate("receipt_url != ''", {"receipt_url": ""}) is False
        assert evaluate("receipt_url != ''", {"receipt_url": "https://x"}) is True

    def test_boolean(self):
        assert evaluate("show_logo == true", {"show_logo": True}) is True
        assert evaluate("show_logo != false", {"show_logo": False}) is False

    def test_nested_path(self):
        assert evaluate("store.open == true", {"store": {"open": True}}) is True
        assert evaluate("items.0.quantity > 1", {"items": [{"quantity": 2}]}) is True

    def test_unknown_identifier(self):
        with pytest.raises(EvalError, match="Unknown identifier 'points'"):
            evaluate("points > 0", {})

    def test_boolean_ordering_rejected(self):
        with pytest.raises(EvalError):
            evaluate("flag > false", {"flag": True})

    def test_type_mismatch(self):
        with pytest.raises(EvalError):
            evaluate("name > 3", {"name": "Acme"})
        with pytest.raises(EvalError):
            evaluate("flag == 1", {"flag": True})
        with pytest.raises(EvalError):
            evaluate("items == 'x'", {"items": [1, 2]})

    def test_non_finite_strings_compare_as_text(self):
        assert evaluate("status == 'nan'", {"status": "nan"}) is True
        assert evaluate("status != 'inf'", {"status": "Inf"}) is True
        with pytest.raises(EvalError):
            evaluate("status > 0", {"status": "nan"})

    @pytest.mark.parametrize("expression", ["points > nan", "points < inf", "points == 1e999"])
    def test_non_finite_literal_rejected(self, expression):
        with pytest.raises(EvalError, match="Invalid literal"):
            evaluate(expression, {"points": 1})

    def test_parse_is_cached(self):
        assert parse("points > 0") is parse("points > 0")
