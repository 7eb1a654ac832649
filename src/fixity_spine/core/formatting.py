"""Small text helpers for report lines."""

from __future__ import annotations


def commify(num: int | str) -> str:
    """Format a number with American-style thousands separators: 1242 -> '1,242'."""
    if isinstance(num, int):
        return f"{num:,}"
    text = str(num)
    sign, digits = ("-", text[1:]) if text.startswith("-") else ("", text)
    if not digits.isdigit():
        return text
    return sign + f"{int(digits):,}"


def pluralize(count: int | str, word: str, plural: str) -> str:
    """Select ``word`` for a count of one (or 'one'), ``plural`` otherwise."""
    if str(count) == "1" or str(count).lower() == "one":
        return word
    return plural


def indent(text: str, width: int = 4) -> str:
    return " " * width + text
