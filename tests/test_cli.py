"""Tests for the receiptable-render CLI."""

import json

from receiptable.cli.render import main


class TestRenderCli:
    """Tests for rendering templates from the command line."""

    def test_text_preview(self, tmp_path, receipt_template, receipt_data, capsys):
        template_path = tmp_path / "receipt.json"
        template_path.write_text(json.dumps(receipt_template))
        data_path = tmp_path / "data.json"
        data_path.write_text(json.dumps(receipt_data))

        assert main([str(template_path), "--json", str(data_path)]) == 0

        out = capsys.readouterr().out
        assert "Acme" in out
        assert "Order #ORD-1" in out

    def test_data_arguments(self, tmp_path, capsys):
        template_path = tmp_path / "t.json"
        template_path.write_text(
            json.dumps(
                {
                    "id": "t",
                    "sections": [
                        {"elements": [{"type": "text", "content": "{{name}}", "condition": "count > 1"}]},
                    ],
                }
            )
        )

        assert main([str(template_path), "-d", "name=Widget", "-d", "count=2"]) == 0
        assert capsys.readouterr().out == "Widget\n"

    def test_missing_value_warning(self, tmp_path, capsys):
        template_path = tmp_path / "t.json"
        template_path.write_text(
            json.dumps({"id": "t", "sections": [{"elements": [{"type": "text", "content": "{{name}}"}]}]})
        )

        assert main([str(template_path)]) == 0
        assert "missing value for 'name'" in capsys.readouterr().err

    def test_escpos_output(self, tmp_path, receipt_template, receipt_data):
        template_path = tmp_path / "receipt.json"
        template_path.write_text(json.dumps(receipt_template))
        data_path = tmp_path / "data.json"
        data_path.write_text(json.dumps(receipt_data))
        output = tmp_path / "receipt.bin"

        assert main([str(template_path), "--json", str(data_path), "--format", "escpos", "-o", str(output)]) == 0
        assert output.read_bytes().startswith(b"\x1b@")

    def test_missing_template(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.json")]) == 1
        assert "not found" in capsys.readouterr().err

    def test_invalid_template(self, tmp_path, capsys):
        template_path = tmp_path / "t.json"
        template_path.write_text(json.dumps({"id": ""}))
        assert main([str(template_path)]) == 1
        assert "Cannot load template" in capsys.readouterr().err

    def test_bad_data_argument(self, tmp_path, capsys):
        template_path = tmp_path / "t.json"
        template_path.write_text(json.dumps({"id": "t"}))
        assert main([str(template_path), "-d", "novalue"]) == 1
