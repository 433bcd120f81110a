"""
Compliance validation engine — rule checks over extracted text.

Each check:
  - Takes the extracted text (matched case-insensitively)
  - Returns its own CheckResult subclass with a status and issue list
  - Is a pure function apart from the optional registry lookup and "today"
  - Never raises: an internal error degrades that one check to ``fail``

Only notary, witness and verbiage feed the overall verdict. Date and
signature are advisory and can at worst produce a warning.
"""

from __future__ import annotations

import functools
import logging
import re
from datetime import date
from typing import Callable, TypeVar

from .dates import DATE_FRAGMENT, parse_date
from .exceptions import CheckExecutionError, ExternalLookupFailure
from .models import (
    CheckResult,
    CheckStatus,
    ComplianceChecks,
    DateCheckResult,
    NotaryCheckResult,
    OverallStatus,
    PhraseMatch,
    PoaType,
    SignatureCheckResult,
    VerbiageCheckResult,
    WitnessCheckResult,
)
from .registry import NotaryRegistryClient

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=CheckResult)


# ─── Constants ───────────────────────────────────────────────────────

REQUIRED_PHRASES: tuple[str, ...] = (
    "power of attorney",
    "cremation",
    "disposition of remains",
    "authorize",
    "durable power of attorney",
)

# Any one of these grants cremation authority
CREMATION_AUTHORITY_PHRASES: tuple[str, ...] = (
    "cremat",
    "disposition of remains",
    "final disposition",
    "dispose of my remains",
)

# California Probate Code bars interested parties from witnessing
PROHIBITED_WITNESS_TERMS: tuple[str, ...] = (
    "agent",
    "attorney-in-fact",
    "spouse",
    "heir",
    "beneficiary",
)

DEFAULT_REQUIRED_WITNESSES = 1

_NOTARY_NAME = re.compile(r"notary\s+public\s*:\s*([^\n]+)", re.IGNORECASE)
_ACKNOWLEDGED_BEFORE = re.compile(
    r"acknowledged\s+before\s+me,?\s*([^,\n]+?),?\s+(?:a\s+)?notary\s+public",
    re.IGNORECASE,
)
_COMMISSION_NUMBER = re.compile(
    r"commission\s+(?:number|no\.?|#)\s*[:#]?\s*([A-Z0-9-]*\d[A-Z0-9-]*)",
    re.IGNORECASE,
)
_COMMISSION_EXPIRY = re.compile(
    rf"commission\s+expires?(?:\s+on)?\s*:?\s*({DATE_FRAGMENT})",
    re.IGNORECASE,
)

_WITNESS_LABEL = re.compile(
    r"\bwitness(?:[ \t]*(?:#|no\.?)?[ \t]*\d+)?(?:[ \t]+name)?[ \t]*:[ \t]*([^\n]+)",
    re.IGNORECASE,
)
_PRESENCE_OF = re.compile(
    r"signed\s+in\s+the\s+presence\s+of\s*:?[ \t]*([^\n]+)", re.IGNORECASE
)
# One name per line: optional bullet, capitalised words, optional ", role"
_NAME_LINE = (
    r"[ \t]*(?:\d+[.)]|[-*•])?[ \t]*"
    r"[A-Z][A-Za-z.'-]*(?:[ \t]+[A-Z][A-Za-z.'-]*){0,4}"
    r"(?:,[ \t]*[A-Za-z][A-Za-z \t-]*)?"
    r"[ \t]*(?:\n|$)"
)
# "Witness:" / "Witnesses:" header with the names on the following lines
_WITNESS_BLOCK = re.compile(
    r"\b(?i:witness(?:es)?(?:[ \t]*(?:#|no\.?)?[ \t]*\d+)?(?:[ \t]+name)?)[ \t]*:[ \t]*\n"
    rf"((?:{_NAME_LINE}){{1,6}})"
)
_BULLET = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")

_EXECUTION_DATE = re.compile(
    rf"\b(?:dated?|executed(?:\s+on)?|signed(?:\s+on)?)\s*[:\s]\s*({DATE_FRAGMENT})",
    re.IGNORECASE,
)

_PRINCIPAL_SIGNATURE = re.compile(
    r"principal(?:'s)?[:\s]*signature|signature\s+of\s+(?:the\s+)?principal",
    re.IGNORECASE,
)
_AGENT_SIGNATURE = re.compile(
    r"(?:agent|attorney-in-fact)(?:'s)?[:\s]*signature"
    r"|signature\s+of\s+(?:the\s+)?(?:agent|attorney-in-fact)",
    re.IGNORECASE,
)

_JURISDICTION = re.compile(r"\bcalifornia\b|\bca\b|\bcal\.|probate\s+code", re.IGNORECASE)


# ─── Error Containment ──────────────────────────────────────────────


def _contained(name: str, result_type: type[R]) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Turn any exception inside a check into a ``fail`` result for that check."""

    def decorator(func: Callable[..., R]) -> Callable[..., R]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                error = CheckExecutionError(
                    f"Error during {name} validation: {e}", details={"check": name}
                )
                logger.error("[%s] %s", error.code, error, exc_info=True)
                return result_type(status=CheckStatus.FAIL, issues=[str(error)])

        return wrapper

    return decorator


# ─── Aggregation ─────────────────────────────────────────────────────


def compute_overall(
    notary: CheckResult, witness: CheckResult, verbiage: CheckResult
) -> OverallStatus:
    """Overall verdict from the three primary checks only.

    fail if any is fail, else warning if any is warning, else pass if all
    pass. Anything else (e.g. a check that was not run) is a warning.
    """
    statuses = [notary.status, witness.status, verbiage.status]
    if CheckStatus.FAIL in statuses:
        return OverallStatus.FAIL
    if CheckStatus.WARNING in statuses:
        return OverallStatus.WARNING
    if all(s == CheckStatus.PASS for s in statuses):
        return OverallStatus.PASS
    return OverallStatus.WARNING


# ─── Individual Checks ───────────────────────────────────────────────


@_contained("notary", NotaryCheckResult)
def check_notary(
    text: str,
    registry: NotaryRegistryClient | None = None,
    today: date | None = None,
) -> NotaryCheckResult:
    """Find the notary acknowledgment fields and check the commission.

    Missing name, number or expiry each add an issue, as does an expired
    commission. Without a registry, or when the registry cannot answer, we
    recommend manual verification instead of failing the check.
    """
    today = today or date.today()
    issues: list[str] = []

    notary_name = _extract_notary_name(text)
    number_match = _COMMISSION_NUMBER.search(text)
    commission_number = number_match.group(1).strip() if number_match else None
    expiry_match = _COMMISSION_EXPIRY.search(text)
    commission_expiry = parse_date(expiry_match.group(1)) if expiry_match else None

    if not notary_name:
        issues.append("Notary name not found or not clearly visible")
    if not commission_number:
        issues.append("Notary commission number not found")
    if commission_expiry is None:
        issues.append("Notary commission expiry date not found")
    elif commission_expiry < today:
        issues.append("Notary commission has expired")

    is_valid = False
    if commission_number and registry is not None:
        try:
            is_valid = registry.verify(commission_number, notary_name)
        except ExternalLookupFailure as e:
            logger.warning("Notary registry validation failed: %s", e)
            issues.append(
                "Could not verify notary with state registry - manual verification recommended"
            )
    else:
        issues.append("Notary not verified against state registry - manual verification recommended")

    if not issues:
        status = CheckStatus.PASS
    elif len(issues) <= 2:
        status = CheckStatus.WARNING
    else:
        status = CheckStatus.FAIL

    return NotaryCheckResult(
        status=status,
        issues=issues,
        notary_name=notary_name,
        commission_number=commission_number,
        commission_expiry=commission_expiry,
        is_valid=is_valid,
    )


@_contained("witness", WitnessCheckResult)
def check_witnesses(
    text: str, required_witnesses: int = DEFAULT_REQUIRED_WITNESSES
) -> WitnessCheckResult:
    """Collect witness names and flag disqualified (interested) witnesses."""
    issues: list[str] = []
    names = _collect_witness_names(text)
    count = len(names)

    if count < required_witnesses:
        issues.append(
            f"Insufficient witnesses found. Required: {required_witnesses}, Found: {count}"
        )

    for name in names:
        lowered = name.lower()
        for term in PROHIBITED_WITNESS_TERMS:
            if re.search(rf"\b{re.escape(term)}\b", lowered):
                issues.append(f"Prohibited witness detected: {name} (contains '{term}')")

    if count < required_witnesses:
        status = CheckStatus.FAIL
    elif issues:
        status = CheckStatus.WARNING
    else:
        status = CheckStatus.PASS

    return WitnessCheckResult(
        status=status,
        issues=issues,
        witness_count=count,
        required_witnesses=required_witnesses,
        witness_names=names,
    )


@_contained("verbiage", VerbiageCheckResult)
def check_verbiage(text: str) -> VerbiageCheckResult:
    """Required phrases, cremation authority, POA type and jurisdiction.

    Cremation authority is the one hard requirement: without it the
    check fails. Every other gap is a warning.
    """
    issues: list[str] = []
    lowered = text.lower()

    matches: list[PhraseMatch] = []
    for phrase in REQUIRED_PHRASES:
        line_number = find_phrase_line(text, phrase)
        found = line_number is not None
        matches.append(PhraseMatch(phrase=phrase, found=found, line_number=line_number))
        if not found:
            issues.append(f'Required phrase not found: "{phrase}"')

    has_cremation_authority = any(
        find_phrase_line(text, phrase) is not None for phrase in CREMATION_AUTHORITY_PHRASES
    )
    if not has_cremation_authority:
        issues.append("No explicit cremation authority found in document")

    if find_phrase_line(text, "durable power of attorney") is not None:
        poa_type = PoaType.DURABLE
    elif find_phrase_line(text, "power of attorney") is not None and "durable" not in lowered:
        poa_type = PoaType.NON_DURABLE
    else:
        poa_type = PoaType.UNKNOWN

    if not _JURISDICTION.search(text):
        issues.append("Document may not be California-specific")

    if not has_cremation_authority:
        status = CheckStatus.FAIL
    elif issues:
        status = CheckStatus.WARNING
    else:
        status = CheckStatus.PASS

    return VerbiageCheckResult(
        status=status,
        issues=issues,
        has_cremation_authority=has_cremation_authority,
        poa_type=poa_type,
        required_phrases=matches,
    )


@_contained("date", DateCheckResult)
def check_dates(text: str, today: date | None = None) -> DateCheckResult:
    """Find the execution date. Advisory: never worse than a warning."""
    today = today or date.today()
    issues: list[str] = []

    dates_found: list[date] = []
    for match in _EXECUTION_DATE.finditer(text):
        parsed = parse_date(match.group(1))
        if parsed is not None and parsed not in dates_found:
            dates_found.append(parsed)

    document_date = dates_found[0] if dates_found else None

    if document_date is None:
        issues.append("No execution date found in document")
    elif document_date > today:
        issues.append("Document appears to be dated in the future")

    return DateCheckResult(
        status=CheckStatus.WARNING if issues else CheckStatus.PASS,
        issues=issues,
        document_date=document_date,
        dates_found=dates_found,
        is_currently_valid=document_date is not None and document_date <= today,
    )


@_contained("signature", SignatureCheckResult)
def check_signatures(text: str) -> SignatureCheckResult:
    """The principal must sign. The agent's signature is not required."""
    principal_signed = bool(_PRINCIPAL_SIGNATURE.search(text))
    agent_signed = bool(_AGENT_SIGNATURE.search(text))

    issues: list[str] = []
    if not principal_signed:
        issues.append("Principal signature not clearly identified")

    return SignatureCheckResult(
        status=CheckStatus.WARNING if issues else CheckStatus.PASS,
        issues=issues,
        principal_signed=principal_signed,
        agent_signed=agent_signed,
    )


# ─── Helpers ─────────────────────────────────────────────────────────


def find_phrase_line(text: str, phrase: str) -> int | None:
    """1-based line of the first case-insensitive occurrence of ``phrase``.

    Words may be separated by any run of whitespace, since OCR often wraps
    or doubles spaces inside a phrase.
    """
    pattern = r"\s+".join(re.escape(word) for word in phrase.split())
    match = re.search(pattern, text, re.IGNORECASE)
    if match is None:
        return None
    return text.count("\n", 0, match.start()) + 1


def _extract_notary_name(text: str) -> str | None:
    for pattern in (_NOTARY_NAME, _ACKNOWLEDGED_BEFORE):
        match = pattern.search(text)
        if match:
            name = _clean_name(match.group(1))
            if name:
                return name
    return None


def _collect_witness_names(text: str) -> list[str]:
    candidates: list[str] = []
    candidates.extend(m.group(1) for m in _WITNESS_LABEL.finditer(text))
    candidates.extend(m.group(1) for m in _PRESENCE_OF.finditer(text))
    for block in _WITNESS_BLOCK.finditer(text):
        candidates.extend(_BULLET.sub("", line) for line in block.group(1).splitlines())

    unique: dict[str, str] = {}
    for raw in candidates:
        name = _clean_name(raw)
        if name and len(name) > 2:
            unique.setdefault(name.casefold(), name)
    return list(unique.values())


def _clean_name(raw: str) -> str | None:
    """Strip signature-line underscores and stray punctuation OCR leaves behind."""
    name = re.sub(r"\s+", " ", raw).strip(" \t_-.,;:")
    if not re.search(r"[A-Za-z]", name):
        return None
    return name


# ─── Engine ──────────────────────────────────────────────────────────


class ComplianceEngine:
    """Runs all five checks against one text.

    The checks share no state, so order does not matter; they run in
    sequence because the registry lookup is the only I/O and is bounded
    by its own timeout.
    """

    def __init__(
        self,
        registry: NotaryRegistryClient | None = None,
        required_witnesses: int = DEFAULT_REQUIRED_WITNESSES,
    ):
        self.registry = registry
        self.required_witnesses = required_witnesses

    def run(self, text: str, today: date | None = None) -> ComplianceChecks:
        logger.info("Running compliance checks on %d characters", len(text))
        return ComplianceChecks(
            notary=check_notary(text, registry=self.registry, today=today),
            witness=check_witnesses(text, required_witnesses=self.required_witnesses),
            verbiage=check_verbiage(text),
            date=check_dates(text, today=today),
            signature=check_signatures(text),
        )
