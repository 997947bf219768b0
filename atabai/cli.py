"""
Command-line entry point.

Usage:
    atabai-convert cash-flow statement.xlsx -o output/ifrs_cash_flow.xlsx
    atabai-convert profit-loss pl_2024.xlsx --company "Acme LLC" --json-logs
"""
import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from atabai.config import get_settings
from atabai.exceptions import AtabaiError
from atabai.logging_config import configure_logging
from atabai.services.statement_processor import StatementProcessor

STATEMENTS = {
    "cash-flow": ("process_cash_flow", "ifrs_cash_flow"),
    "profit-loss": ("process_profit_loss", "ifrs_profit_loss"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="atabai-convert",
        description="Convert an NSBU Excel statement to an IFRS workbook with live formulas.",
    )
    parser.add_argument("statement", choices=sorted(STATEMENTS), help="Statement type of the input file")
    parser.add_argument("input", type=Path, help="Source .xlsx workbook")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output .xlsx path (default: <output_dir>/<input>_<statement>.xlsx)",
    )
    parser.add_argument("--company", default=None, help="Company name shown under the title")
    parser.add_argument("--style", default=None, help="Output style (atabai, basic, professional)")
    parser.add_argument("--colorway", default=None, help="Output colorway (atabai, blue, slate)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    return parser


def default_output_path(input_path: Path, statement: str, output_dir: Path) -> Path:
    _, suffix = STATEMENTS[statement]
    return output_dir / f"{input_path.stem}_{suffix}.xlsx"


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=args.json_logs or settings.log_json)

    processor = StatementProcessor(settings=settings, style=args.style, colorway=args.colorway)
    method, _ = STATEMENTS[args.statement]
    output = args.output or default_output_path(args.input, args.statement, settings.output_dir)

    try:
        result = getattr(processor, method)(args.input, company_name=args.company)
    except AtabaiError as e:
        print(json.dumps(e.to_dict(), ensure_ascii=False, indent=2), file=sys.stderr)
        return 1

    saved = processor.save(result, output)
    print(json.dumps({"output": str(saved), **result.summary}, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
