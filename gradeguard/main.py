import argparse
import json
import sys
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any

from gradeguard.config.settings import Settings
from gradeguard.extraction.exceptions import ExtractionError
from gradeguard.extraction.models import DocumentType
from gradeguard.logging.logger import Log
from gradeguard.pdf.exceptions import PdfExtractionError
from gradeguard.processor.models import ExtractionOutcome
from gradeguard.processor.processor import build_processor

EXIT_READY = 0
EXIT_ERROR = 1
EXIT_NOT_READY = 2


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gradeguard-extract",
        description="Extract structure from a PDF and report grading readiness as JSON.",
    )
    p.add_argument("pdf", type=Path, help="Path to the PDF file.")
    p.add_argument(
        "--type",
        dest="doc_type",
        choices=[t.value for t in DocumentType],
        type=str.upper,
        default=DocumentType.RAW.value,
        help="Document type (default: RAW).",
    )
    p.add_argument(
        "--pdf-engine",
        choices=["pdfplumber", "pymupdf"],
        default=None,
        help="Override the configured PDF text backend.",
    )
    p.add_argument("--indent", type=int, default=2, help="JSON indentation.")
    return p


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def outcome_to_dict(outcome: ExtractionOutcome) -> dict[str, Any]:
    return {
        "extracted": asdict(outcome.extracted),
        "document": asdict(outcome.document),
        "run": asdict(outcome.run),
        "readiness": asdict(outcome.readiness),
        "quality": asdict(outcome.quality),
    }


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    settings = Settings()
    if args.pdf_engine:
        settings = settings.model_copy(update={"pdf_engine": args.pdf_engine})
    Log.configure(settings.log_level, stream=sys.stderr)

    try:
        raw_bytes = args.pdf.read_bytes()
    except OSError as exc:
        Log.error("Cannot read PDF", path=str(args.pdf), error=str(exc))
        return EXIT_ERROR

    try:
        outcome = build_processor(settings).process(raw_bytes, args.doc_type)
    except (PdfExtractionError, ExtractionError) as exc:
        Log.error("Extraction failed", path=str(args.pdf), error=str(exc))
        return EXIT_ERROR

    json.dump(outcome_to_dict(outcome), sys.stdout, indent=args.indent, default=_json_default)
    sys.stdout.write("\n")
    return EXIT_READY if outcome.readiness.ok else EXIT_NOT_READY


if __name__ == "__main__":
    raise SystemExit(main())
