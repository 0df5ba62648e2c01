"""Command-line entrypoint: configures logging, runs the CV pipeline on one file and writes JSON.

Exit codes: 0 ok/partial, 1 extraction failed, 2 unreadable document, 3 configuration error.
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from cvtransformer.core.config import settings
from cvtransformer.core.exceptions import ConfigurationError, DocumentUnreadableError
from cvtransformer.services.cv.pipeline import process_document

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNREADABLE = 2
EXIT_CONFIG = 3


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("pdfminer").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cvtransformer",
        description="Parse a CV (DOCX, PDF, DOC or TXT) into structured JSON using an LLM.",
    )
    parser.add_argument("input_file", help="Path to the CV file.")
    parser.add_argument(
        "-o",
        "--output",
        help="Path to write the JSON result. Defaults to stdout.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help=f"Logging level (default: {settings.LOG_LEVEL}).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    logger = logging.getLogger("cv.cli")

    try:
        result = asyncio.run(process_document(args.input_file, settings))
    except DocumentUnreadableError as e:
        logger.error("❌ %s", e.message)
        return EXIT_UNREADABLE
    except ConfigurationError as e:
        logger.error("❌ %s", e.message)
        return EXIT_CONFIG

    payload = json.dumps(result.model_dump(by_alias=True), ensure_ascii=False, indent=2)
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
        logger.info("💾 Wrote %s", args.output)
    else:
        sys.stdout.write(payload + "\n")

    return EXIT_FAILED if result.status == "failed" else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
