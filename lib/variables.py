# =============================================================================
# lib/variables.py - Proposal Variables Engine
# =============================================================================
# Replaces {{key}} placeholders in proposal text with values taken from a
# context dict. Sources are merged in increasing priority:
#
#   company < contact < client < deal < custom (proposal_variables)
#
# Unknown or empty variables are left as-is ({{unknown_key}}) so the author
# can see what still needs filling in.
#
# Usage:
#   from lib.variables import build_context_from_proposal, render_sections
#   context = build_context_from_proposal(proposal)
#   sections = render_sections(proposal["sections"], context)
# =============================================================================

import re
from decimal import Decimal
from typing import Any

PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

CURRENCY_SYMBOLS: dict[str, str] = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "CHF": "CHF",
}

_COMPANY_FIELDS = (
    "name", "email", "phone", "address", "city",
    "postal_code", "country", "siret", "vat_number",
)
_CLIENT_FIELDS = ("name", "email", "phone", "address", "city", "postal_code", "country")


# =============================================================================
# Variable Resolution
# =============================================================================

def format_amount(amount: float, currency: str = "EUR") -> str:
    """
    Format an amount with space thousand separators and a currency symbol.

    Example:
        format_amount(15000, "EUR")  # "15 000.00 €"
    """
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    return f"{amount:,.2f}".replace(",", " ") + f" {symbol}"


def raw_amount(amount: float | int | str) -> str:
    """
    Plain decimal notation of an amount, without rounding or exponent.

    Example:
        raw_amount(1500000.0)  # "1500000"
        raw_amount(12345.67)   # "12345.67"
    """
    return format(Decimal(str(amount)).normalize(), "f")


def _full_address(source: dict[str, Any]) -> str | None:
    parts = [source.get(key) for key in ("address", "postal_code", "city", "country")]
    parts = [part for part in parts if part]
    return ", ".join(parts) if parts else None


def build_variable_map(context: dict[str, Any]) -> dict[str, str]:
    """
    Flatten a variable context into a {key: value} map.

    Args:
        context: Dict with optional "company", "contact", "client", "deal"
            and "custom" sub-dicts

    Returns:
        Map of snake_case variable names to their string values. Missing or
        empty source values produce no key.
    """
    variables: dict[str, str] = {}

    company = context.get("company")
    if company:
        for field in _COMPANY_FIELDS:
            if company.get(field):
                variables[f"company_{field}"] = str(company[field])
        full = _full_address(company)
        if full:
            variables["company_full_address"] = full

    contact = context.get("contact")
    if contact:
        if contact.get("full_name"):
            variables["contact_name"] = contact["full_name"]
        elif contact.get("first_name") or contact.get("last_name"):
            variables["contact_name"] = " ".join(
                part for part in (contact.get("first_name"), contact.get("last_name")) if part
            )
        for field, key in (
            ("first_name", "contact_first_name"),
            ("last_name", "contact_last_name"),
            ("civility", "contact_civility"),
            ("email", "contact_email"),
            ("phone", "contact_phone"),
        ):
            if contact.get(field):
                variables[key] = str(contact[field])

    client = context.get("client")
    if client:
        for field in _CLIENT_FIELDS:
            if client.get(field):
                variables[f"client_{field}"] = str(client[field])
        full = _full_address(client)
        if full:
            variables["client_full_address"] = full

    deal = context.get("deal")
    if deal:
        if deal.get("title"):
            variables["deal_title"] = deal["title"]
        if deal.get("description"):
            variables["deal_description"] = deal["description"]
        if deal.get("amount") is not None:
            amount = float(deal["amount"])
            variables["deal_amount"] = format_amount(amount, deal.get("currency") or "EUR")
            variables["deal_amount_raw"] = raw_amount(deal["amount"])
        if deal.get("currency"):
            variables["deal_currency"] = deal["currency"]

    for key, value in (context.get("custom") or {}).items():
        if value is not None and value != "":
            variables[key] = str(value)

    return variables


# =============================================================================
# Template Rendering
# =============================================================================

def render_template(text: str | None, variables: dict[str, str]) -> str:
    """
    Replace every {{key}} in text with its value.

    Placeholders whose key is unknown or maps to "" are kept verbatim.
    """
    if not text:
        return ""

    def _replace(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return value if value else match.group(0)

    return PLACEHOLDER.sub(_replace, text)


def extract_variable_keys(text: str | None) -> list[str]:
    """Unique placeholder keys in order of first appearance."""
    if not text:
        return []
    return list(dict.fromkeys(PLACEHOLDER.findall(text)))


def render_sections(
    sections: list[dict[str, Any]],
    context: dict[str, Any],
) -> list[dict[str, Any]]:
    """Render title and body of each section, keeping the other fields."""
    variables = build_variable_map(context)
    return [
        {
            **section,
            "title": render_template(section.get("title"), variables),
            "body": render_template(section.get("body"), variables),
        }
        for section in sections
    ]


# =============================================================================
# Context Building from Proposal
# =============================================================================

def build_context_from_proposal(proposal: dict[str, Any]) -> dict[str, Any]:
    """
    Build a variable context from a proposal dict and its relations.

    Expects the keys produced by ProposalService.get_proposal(): "variables"
    (list of {key, value}), "deal", "client", "recipients" (list of
    {contact: {...}}) and "company". The first recipient is the contact.
    """
    context: dict[str, Any] = {}

    variables = proposal.get("variables") or []
    if variables:
        context["custom"] = {v["key"]: v.get("value") for v in variables}

    deal = proposal.get("deal")
    if deal:
        context["deal"] = {
            "title": deal.get("title"),
            "amount": deal.get("estimated_amount"),
            "currency": deal.get("currency"),
            "description": deal.get("description"),
        }

    client = proposal.get("client")
    if client:
        context["client"] = {
            "name": client.get("nom"),
            "email": client.get("email"),
            "phone": client.get("telephone"),
            "address": client.get("adresse"),
            "city": client.get("ville"),
            "postal_code": client.get("code_postal"),
            "country": client.get("pays"),
        }

    recipients = proposal.get("recipients") or []
    contact = recipients[0].get("contact") if recipients else None
    if contact:
        full_name = " ".join(part for part in (contact.get("prenom"), contact.get("nom")) if part)
        context["contact"] = {
            "civility": contact.get("civilite"),
            "first_name": contact.get("prenom"),
            "last_name": contact.get("nom"),
            "full_name": full_name or None,
            "email": contact.get("email"),
            "phone": contact.get("telephone"),
        }

    company = proposal.get("company")
    if company:
        context["company"] = {field: company.get(field) for field in _COMPANY_FIELDS}

    return context
