"""Formatting helpers for spoken confirmations.

Amounts use Indian digit grouping (``₹1,00,000``) and dates the en-IN long
form (``16 October 2026``), because confirmations are read aloud.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from voxledger.config import settings

_PAISE = Decimal("0.01")


def _group_indian(digits: str) -> str:
    """Group an integer digit string as lakhs and crores: ``"100000"`` → ``"1,00,000"``."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_inr(amount: Decimal | int | float) -> str:
    """Format *amount* as rupees, e.g. ``₹2,000`` or ``₹1,250.50``.

    Paise are shown only when non-zero.
    """
    value = Decimal(str(amount)).quantize(_PAISE, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, _, paise = f"{abs(value):.2f}".partition(".")
    text = _group_indian(whole)
    if paise != "00":
        text = f"{text}.{paise}"
    return f"{sign}{settings.currency_symbol}{text}"


def humanize(label: str) -> str:
    """Turn an identifier like ``home_utilities`` into ``home utilities``."""
    return label.replace("_", " ")
