# =============================================================================
# lib/numbering.py - Document Number Generation
# =============================================================================
# Quotes and invoices are numbered from a per-company pattern made of
# literal characters and tokens:
#
#   {YYYY}  four-digit year          (2025)
#   {YY}    two-digit year           (25)
#   {MM}    two-digit month          (01-12)
#   {DD}    two-digit day            (01-31)
#   {SEQ:n} sequence padded to n     (n: 1-6)
#
#   FA-{SEQ:3}-{YY}          => FA-001-25
#   INV-{YYYY}-{MM}-{SEQ:4}  => INV-2025-01-0001
#
# The sequence resets per "period": never without a year token, yearly with
# one, monthly when {MM} is present too. Counters live in number_sequences
# and are incremented atomically by the next_sequence() Postgres function.
#
# Numbers of draft documents sitting in the trash are handed out again
# before the counter moves forward.
# =============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Literal

from lib.supabase_client import SupabaseClient, first_row

logger = logging.getLogger(__name__)

DocType = Literal["invoice", "quote"]

TOKEN_PATTERN = re.compile(r"\{(YYYY|YY|MM|DD|SEQ:\d+)\}")
SEQ_PATTERN = re.compile(r"\{SEQ:(\d+)\}")
YEAR_PATTERN = re.compile(r"\{YYYY\}|\{YY\}")
MONTH_PATTERN = re.compile(r"\{MM\}")
INVALID_CHARS = re.compile(r"[^a-zA-Z0-9\-/_.\s]")

DRAFT_STATUS = "brouillon"

DEFAULT_PATTERNS: dict[str, str] = {
    "invoice": "FA-{SEQ:3}-{YY}",
    "quote": "DEV-{SEQ:3}-{YY}",
}

PATTERN_EXAMPLES: list[dict[str, str]] = [
    {"pattern": "FA-{SEQ:3}-{YY}", "example": "FA-001-25", "description": "Simple with year"},
    {"pattern": "FA/{SEQ:3}/{YY}", "example": "FA/001/25", "description": "With slashes"},
    {"pattern": "INV-{YYYY}-{SEQ:4}", "example": "INV-2025-0001", "description": "Full year"},
    {"pattern": "F{YY}{MM}-{SEQ:3}", "example": "F2501-001", "description": "Monthly reset"},
    {"pattern": "{YY}-{MM}-{DD}-{SEQ:2}", "example": "25-01-15-01", "description": "Full date"},
]

_TABLES: dict[str, str] = {"invoice": "invoices", "quote": "quotes"}


class NumberingError(ValueError):
    """Raised when a numbering pattern is invalid."""


@dataclass
class PatternValidation:
    """Outcome of validate_pattern()."""

    valid: bool
    error: str | None = None
    seq_padding: int | None = None
    has_seq: bool = False
    has_year: bool = False
    has_month: bool = False


# =============================================================================
# Pattern Handling
# =============================================================================

def validate_pattern(pattern: str | None) -> PatternValidation:
    """
    Check that a numbering pattern can produce document numbers.

    Rules:
    - not blank
    - exactly one {SEQ:n} token, with 1 <= n <= 6
    - outside tokens, only letters, digits, "-", "/", "_", "." and spaces

    Args:
        pattern: The pattern to validate

    Returns:
        PatternValidation with the error message when invalid
    """
    if not pattern or not pattern.strip():
        return PatternValidation(valid=False, error="Pattern cannot be empty")

    seq_tokens = SEQ_PATTERN.findall(pattern)
    if not seq_tokens:
        return PatternValidation(valid=False, error="Pattern must contain a {SEQ:n} token")
    if len(seq_tokens) > 1:
        return PatternValidation(
            valid=False,
            error="Pattern can only contain one {SEQ:n} token",
            has_seq=True,
        )

    seq_padding = int(seq_tokens[0])
    if seq_padding < 1 or seq_padding > 6:
        return PatternValidation(
            valid=False,
            error="SEQ padding must be between 1 and 6",
            has_seq=True,
        )

    invalid = INVALID_CHARS.findall(TOKEN_PATTERN.sub("", pattern))
    if invalid:
        unique = list(dict.fromkeys(invalid))
        return PatternValidation(
            valid=False,
            error=f"Characters not allowed: {', '.join(unique)}",
            has_seq=True,
        )

    return PatternValidation(
        valid=True,
        seq_padding=seq_padding,
        has_seq=True,
        has_year=bool(YEAR_PATTERN.search(pattern)),
        has_month=bool(MONTH_PATTERN.search(pattern)),
    )


def compute_period_key(pattern: str, on: date) -> str:
    """
    Sequence period for a pattern at a given date.

    Returns "global" without a year token, "YYYY-MM" when a month token is
    present, "YYYY" otherwise.
    """
    if not YEAR_PATTERN.search(pattern):
        return "global"
    if MONTH_PATTERN.search(pattern):
        return f"{on.year}-{on.month:02d}"
    return str(on.year)


def _substitute_dates(pattern: str, on: date) -> str:
    return (
        pattern
        .replace("{YYYY}", str(on.year))
        .replace("{YY}", f"{on.year % 100:02d}")
        .replace("{MM}", f"{on.month:02d}")
        .replace("{DD}", f"{on.day:02d}")
    )


def substitute_tokens(pattern: str, on: date, seq_value: int, seq_padding: int) -> str:
    """Render a pattern for a date and a sequence value."""
    return SEQ_PATTERN.sub(str(seq_value).zfill(seq_padding), _substitute_dates(pattern, on))


def _require_valid(pattern: str) -> PatternValidation:
    validation = validate_pattern(pattern)
    if not validation.valid:
        raise NumberingError(validation.error)
    return validation


# =============================================================================
# Number Reuse
# =============================================================================

def find_reusable_number(
    user_id: str,
    doc_type: DocType,
    pattern: str,
    on: date,
) -> str | None:
    """
    Smallest number of a trashed draft that matches the pattern for this date.

    The number is only returned when no active document already carries it.
    """
    client = SupabaseClient.get_client()
    table = _TABLES[doc_type]

    deleted_drafts = (
        client.table(table)
        .select("numero")
        .eq("user_id", user_id)
        .eq("status", DRAFT_STATUS)
        .not_.is_("deleted_at", "null")
        .order("numero")
        .execute()
    ).data or []

    if not deleted_drafts:
        return None

    match = re.match(r"^(.*?)\{SEQ:\d+\}(.*)$", _substitute_dates(pattern, on))
    if not match:
        return None
    prefix, suffix = match.groups()

    candidates: list[tuple[int, str]] = []
    for row in deleted_drafts:
        numero = row.get("numero") or ""
        if not (numero.startswith(prefix) and numero.endswith(suffix)):
            continue
        seq_text = numero[len(prefix):len(numero) - len(suffix)] if suffix else numero[len(prefix):]
        if seq_text.isdigit():
            candidates.append((int(seq_text), numero))

    if not candidates:
        return None

    _, numero = min(candidates)

    active = first_row(
        client.table(table)
        .select("id")
        .eq("user_id", user_id)
        .eq("numero", numero)
        .is_("deleted_at", "null")
        .limit(1)
        .execute()
    )
    if active:
        return None

    logger.info(f"Reusing trashed draft number {numero} for {doc_type}")
    return numero


# =============================================================================
# Generation
# =============================================================================

def generate_number(
    user_id: str,
    doc_type: DocType,
    pattern: str,
    on: date | None = None,
) -> str:
    """
    Allocate the next document number.

    Args:
        user_id: Owner of the document
        doc_type: "invoice" or "quote"
        pattern: Numbering pattern (see module header)
        on: Document date, defaults to today

    Returns:
        The rendered document number

    Raises:
        NumberingError: If the pattern is invalid
        SupabaseClientError: If the sequence RPC fails
    """
    on = on or date.today()
    validation = _require_valid(pattern)

    reusable = find_reusable_number(user_id, doc_type, pattern, on)
    if reusable:
        return reusable

    seq_value = SupabaseClient.call_rpc(
        "next_sequence",
        {
            "p_user_id": user_id,
            "p_doc_type": doc_type,
            "p_period_key": compute_period_key(pattern, on),
            "p_prefix_key": "",
        },
    )

    return substitute_tokens(pattern, on, int(seq_value), validation.seq_padding or 1)


def preview_number(
    user_id: str,
    doc_type: DocType,
    pattern: str,
    on: date | None = None,
) -> str:
    """Render the number the next document would get, without consuming it."""
    on = on or date.today()
    validation = _require_valid(pattern)

    client = SupabaseClient.get_client()
    row = first_row(
        client.table("number_sequences")
        .select("last_value")
        .eq("user_id", user_id)
        .eq("doc_type", doc_type)
        .eq("period_key", compute_period_key(pattern, on))
        .eq("prefix_key", "")
        .limit(1)
        .execute()
    )
    current = int(row["last_value"]) if row and row.get("last_value") is not None else 0

    return substitute_tokens(pattern, on, current + 1, validation.seq_padding or 1)
