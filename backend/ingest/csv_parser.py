"""
Dashboard CSV parsing.

The dashboard datasets are plain comma-delimited exports. Fields may be
wrapped in double quotes to protect embedded commas; doubled quotes ("")
and quoted line breaks are not part of the format. Existing exports rely
on this simplified grammar, so it is kept instead of RFC 4180.
"""

from __future__ import annotations

import math
import re

_NUMERIC_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_csv(text: str) -> list[list[str]]:
    """Split raw text into rows of trimmed string fields."""
    text = text.strip()
    if not text:
        return []

    rows: list[list[str]] = []
    for line in text.split("\n"):
        values: list[str] = []
        current: list[str] = []
        in_quotes = False

        for char in line:
            if char == '"':
                in_quotes = not in_quotes
            elif char == "," and not in_quotes:
                values.append("".join(current).strip())
                current = []
            else:
                current.append(char)

        values.append("".join(current).strip())
        rows.append(values)

    return rows


def parse_number(value: str | None) -> float:
    """
    Parse a numeric CSV field without ever raising.

    Mirrors a lenient float parse: the longest leading numeric prefix is
    used ("12.5kg" -> 12.5). Missing, empty, non-numeric, NaN and infinite
    values all become 0.0 so they can never leak into aggregation.
    """
    if value is None:
        return 0.0
    match = _NUMERIC_PREFIX.match(value.strip())
    if match is None:
        return 0.0
    number = float(match.group(0))
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def format_csv(rows: list[list[str]]) -> str:
    """Serialize rows in the same simplified grammar parse_csv reads."""
    lines = []
    for row in rows:
        fields = [f'"{value}"' if "," in value else value for value in row]
        lines.append(",".join(fields))
    return "\n".join(lines) + "\n"
