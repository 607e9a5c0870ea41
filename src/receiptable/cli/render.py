"""CLI tool for rendering receipt templates without a printer."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any


class CliError(Exception):
    """Reported to stderr; exits with status 1."""

    pass


def _parse_value(text: str) -> Any:
    """Interpret KEY=VALUE values as JSON where possible (numbers, booleans)."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="receiptable-render",
        description="Render a receipt template to a text preview or ESC/POS bytes.",
    )
    parser.add_argument("template", type=Path, help="Path to template JSON file")
    parser.add_argument("--json", type=Path, dest="json_file", help="JSON file with the data payload")
    parser.add_argument(
        "-d",
        "--data",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Payload field; repeatable, values are parsed as JSON when possible",
    )
    parser.add_argument("--format", choices=["text", "escpos"], default="text", help="Output format (default: text)")
    parser.add_argument(
        "-o", "--output", type=Path, help="Output file (default: stdout for text, receipt.bin for escpos)"
    )
    parser.add_argument("--no-cut", action="store_true", help="Do not append a paper cut to ESC/POS output")
    return parser


def _load_payload(json_file: Path | None, pairs: list[str]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if json_file is not None:
        try:
            loaded = json.loads(json_file.read_text(encoding="utf-8"))
        except OSError as e:
            raise CliError(f"Cannot read data file {json_file}: {e}") from e
        except json.JSONDecodeError as e:
            raise CliError(f"Invalid JSON in {json_file}: {e}") from e
        if not isinstance(loaded, dict):
            raise CliError(f"Data file {json_file} must contain a JSON object")
        payload.update(loaded)

    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise CliError(f"Invalid data argument '{pair}', expected KEY=VALUE")
        payload[key] = _parse_value(value)
    return payload


def _render(args: argparse.Namespace) -> bytes | str:
    from receiptable.models.template import TemplateValidationError, parse_and_validate
    from receiptable.templates import EncodingError, EscPosEncoder, RenderError, render, render_preview

    if not args.template.exists():
        raise CliError(f"Template file not found: {args.template}")
    payload = _load_payload(args.json_file, args.data)

    try:
        template = parse_and_validate(args.template.read_bytes())
    except TemplateValidationError as e:
        raise CliError(f"Cannot load template {args.template}: {e}") from e

    try:
        result = render(template, payload)
    except RenderError as e:
        raise CliError(f"Cannot render template: {e}") from e
    for diagnostic in result.diagnostics:
        print(f"Warning: {diagnostic}", file=sys.stderr)

    if args.format == "text":
        return render_preview(result.primitives, template.paper_width)
    try:
        return EscPosEncoder(cut=not args.no_cut).encode(result.primitives, template.paper_width)
    except EncodingError as e:
        raise CliError(f"Cannot encode receipt: {e}") from e


def main(argv: list[str] | None = None) -> int:
    """Main entry point for receiptable-render CLI."""
    args = _build_parser().parse_args(argv)

    try:
        output = _render(args)
        if isinstance(output, str):
            if args.output is None:
                sys.stdout.write(output)
                return 0
            output = output.encode("utf-8")
        destination = args.output or Path("receipt.bin")
        try:
            destination.write_bytes(output)
        except OSError as e:
            raise CliError(f"Cannot write {destination}: {e}") from e
    except CliError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Rendered to {destination}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
