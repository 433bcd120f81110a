#!/usr/bin/env python3
"""
POA Validator — Entry Point
============================

Validates a Power of Attorney file and prints a report.

Usage:
    python main.py                       # Built-in sample text (no OCR needed)
    python main.py path/to/poa.pdf       # PDF (text layer, falls back to OCR)
    python main.py path/to/scan.jpg      # Photographed or scanned page
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from poa_validator.config import Settings
from poa_validator.exceptions import ValidationFailure
from poa_validator.models import (
    CheckResult,
    CheckStatus,
    OCROptions,
    OverallStatus,
    ValidationResult,
)
from poa_validator.pipeline import ValidationPipeline

# ─── Sample POA text (as a clean PDF text layer would give it) ───────

SAMPLE_TEXT = """\
DURABLE POWER OF ATTORNEY FOR DISPOSITION OF REMAINS
State of California

I, Margaret Ellis, authorize my agent to arrange cremation and the
final disposition of remains in accordance with California Probate Code.

Dated: 03/14/2024
Principal Signature: ______________________

Witness: Daniel Ortiz
Witness: Helen Ortiz, Spouse of Agent

On 03/14/2024, acknowledged before me, Rosa Delgado, Notary Public
Commission Number: 2291847
Commission Expires: 11/30/2023
"""


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72

_STATUS_COLORS = {
    CheckStatus.PASS: _GREEN,
    CheckStatus.WARNING: _YELLOW,
    CheckStatus.FAIL: _RED,
    CheckStatus.NOT_CHECKED: _DIM,
}


# ─── Pretty Printer Helpers ─────────────────────────────────────────


def _print_check(label: str, check: CheckResult) -> None:
    color = _STATUS_COLORS[check.status]
    print(f"  {label:<12} {color}{_BOLD}{check.status.value.upper()}{_RESET}")
    for issue in check.issues:
        print(f"    {color}-{_RESET} {issue}")


def _print_details(result: ValidationResult) -> None:
    notary = result.notary
    print(f"  Notary:      {notary.notary_name or '-'}  #{notary.commission_number or '-'}")
    print(f"  Expires:     {notary.commission_expiry or '-'}")
    print(f"  Witnesses:   {', '.join(result.witness.witness_names) or '-'}")
    print(f"  POA Type:    {result.verbiage.poa_type.value}")
    print(f"  Executed:    {result.additional_checks.date.document_date or '-'}")


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_report(result: ValidationResult) -> int:
    """Pretty-print the validation result with ANSI color codes.

    Returns:
        0 if the document passed, 1 otherwise.
    """
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  POWER OF ATTORNEY VALIDATION REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Document:    {result.filename or '(text input)'}")
    print(f"  Audit Hash:  {_DIM}{result.document_hash[:16]}...{_RESET}")
    strategy = result.source_strategy.value if result.source_strategy else "text"
    print(f"  Extraction:  {strategy} ({result.ocr_confidence:.0f}% confidence)")
    print(f"  Time:        {result.processing_time_ms} ms")
    print(f"{'─' * _WIDTH}")
    _print_details(result)
    print(f"{'─' * _WIDTH}")

    _print_check("Notary", result.notary)
    _print_check("Witnesses", result.witness)
    _print_check("Verbiage", result.verbiage)
    print(f"  {_DIM}advisory{_RESET}")
    _print_check("Date", result.additional_checks.date)
    _print_check("Signature", result.additional_checks.signature)

    print(f"{'=' * _WIDTH}")
    if result.overall == OverallStatus.PASS:
        print(f"  {_GREEN}{_BOLD}DOCUMENT PASSED ALL CHECKS{_RESET}")
    elif result.overall == OverallStatus.WARNING:
        print(f"  {_YELLOW}{_BOLD}DOCUMENT NEEDS MANUAL REVIEW{_RESET}")
    else:
        print(f"  {_RED}{_BOLD}DOCUMENT FAILED COMPLIANCE CHECKS{_RESET}")
    print(f"{'=' * _WIDTH}\n")

    return 0 if result.overall == OverallStatus.PASS else 1


# ─── Main ────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> None:
    """Validate a file (or the built-in sample) and print the report."""
    parser = argparse.ArgumentParser(description="Validate a Power of Attorney document.")
    parser.add_argument("file", nargs="?", type=Path, help="PDF or image to validate")
    parser.add_argument("--language", default=None, help="OCR language code (default: eng)")
    parser.add_argument("--no-preprocess", action="store_true", help="Skip image preprocessing")
    args = parser.parse_args(argv)

    load_dotenv()
    settings = Settings()
    logging.basicConfig(level=settings.log_level)

    pipeline = ValidationPipeline(settings=settings)

    try:
        if args.file is None:
            result = pipeline.validate_text(SAMPLE_TEXT)
        else:
            options = OCROptions(
                language=args.language or settings.ocr_language,
                preprocess=not args.no_preprocess,
            )
            result = pipeline.validate(args.file.read_bytes(), args.file.name, options)
    except ValidationFailure as e:
        print(f"\n  {_RED}{_BOLD}{e}{_RESET}\n", file=sys.stderr)
        sys.exit(2)

    sys.exit(print_report(result))


if __name__ == "__main__":
    main()
