# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application.
# =============================================================================

import re
import secrets
import string
import unicodedata
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Handles both string and UUID objects, ensuring consistent string output.

    Args:
        value: UUID as string or UUID object

    Returns:
        String representation of the UUID

    Example:
        deal_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        deal_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Time Utilities
# =============================================================================

def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string, the format stored in timestamptz columns."""
    return utc_now().isoformat()


def today_iso() -> str:
    return date.today().isoformat()


def parse_timestamp(value: str | datetime) -> datetime:
    """
    Parse a timestamp returned by PostgREST.

    Postgres may emit a trailing "Z" or fractional seconds of varying length;
    naive values are treated as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.replace("Z", "+00:00")
        # fromisoformat wants 0, 3 or 6 fractional digits
        match = re.match(r"^(.*T\d{2}:\d{2}:\d{2})\.(\d+)(.*)$", text)
        if match:
            head, fraction, tail = match.groups()
            text = f"{head}.{fraction[:6].ljust(6, '0')}{tail}"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Money Utilities
# =============================================================================

def round_money(value: float | Decimal | int) -> float:
    """Round an amount to cents, half away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


# =============================================================================
# Text Utilities
# =============================================================================

_TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_token(length: int = 32) -> str:
    """Random alphanumeric token for public share links."""
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))


def slugify(text: str, max_length: int = 50) -> str:
    """
    Turn a display name into a URL slug.

    Accents are stripped, everything that isn't a letter or digit collapses
    to a single hyphen.

    Example:
        slugify("Éloïse Martin - Design")  # "eloise-martin-design"
    """
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")
    return slug[:max_length].rstrip("-")
