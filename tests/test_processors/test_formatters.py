"""Tests for spoken amount formatting."""

from __future__ import annotations

from decimal import Decimal

import pytest

from voxledger.processors.formatters import format_inr, humanize


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (Decimal("0"), "₹0"),
        (Decimal("450"), "₹450"),
        (Decimal("2000"), "₹2,000"),
        (Decimal("100000"), "₹1,00,000"),
        (Decimal("12345678"), "₹1,23,45,678"),
        (Decimal("1250.5"), "₹1,250.50"),
        (Decimal("99.999"), "₹100"),
        (2000, "₹2,000"),
        (Decimal("-500"), "-₹500"),
    ],
)
def test_format_inr(amount, expected: str) -> None:
    assert format_inr(amount) == expected


def test_humanize() -> None:
    assert humanize("home_utilities") == "home utilities"
    assert humanize("bills") == "bills"
