"""
HCPCS billing code extraction and display helpers.

Source files pack codes into free text in several shapes:

- ``"J1234:Description"``
- ``"J1234,J5678:Details"`` / ``"J1234;J5678:Notes"``
- ``"J1234:Description\\nJ5678:Another description"``

Everything after the first colon of a line is description. Tokens that are
not one letter followed by four digits are dropped without error.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, TypeVar

from payer_insights.core.field_normalizer import RawRecord, resolve_hcpcs_field


HCPCS_CODE_PATTERN = re.compile(r"^[A-Z]\d{4}$", re.IGNORECASE)
_TOKEN_SEPARATORS = re.compile(r"[,;]")
_MISSING_SENTINEL = "N/A"

RecordT = TypeVar("RecordT", bound=RawRecord)


class BadgeStyle(str, Enum):
    """Display presentation for HCPCS badges."""
    SIMPLE = "simple"
    BRACKETS = "brackets"


@dataclass(frozen=True)
class HCPCSInput:
    """Codes and trailing description parsed from one HCPCS field."""
    codes: List[str] = field(default_factory=list)
    description: Optional[str] = None


def is_valid_hcpcs_code(code: Any) -> bool:
    """Check whether ``code`` is a letter followed by four digits (any case)."""
    if not code or not isinstance(code, str):
        return False
    return bool(HCPCS_CODE_PATTERN.match(code.strip()))


def extract_hcpcs_codes(value: Optional[str]) -> List[str]:
    """
    Extract the unique, valid HCPCS codes from a free-text field.

    Args:
        value: Raw field text. ``None`` or empty input is allowed.

    Returns:
        Uppercased codes in first-seen order, deduplicated case-insensitively.
        Callers that need a sorted list sort it themselves.
    """
    if not value or not isinstance(value, str):
        return []

    codes: List[str] = []
    seen = set()
    for line in value.split("\n"):
        codes_section = line.split(":", 1)[0]
        if not codes_section.strip():
            continue

        for token in _TOKEN_SEPARATORS.split(codes_section):
            token = token.strip()
            if not token or token == _MISSING_SENTINEL:
                continue
            if not HCPCS_CODE_PATTERN.match(token):
                continue
            code = token.upper()
            if code not in seen:
                seen.add(code)
                codes.append(code)

    return codes


def parse_hcpcs_input(value: Optional[str]) -> HCPCSInput:
    """
    Split a HCPCS field into its codes and its description.

    The description is everything after the first colon, trimmed; any further
    colons are part of it.
    """
    if not value or not isinstance(value, str):
        return HCPCSInput()

    codes_section, _, remainder = value.partition(":")
    description = remainder.strip() or None
    return HCPCSInput(codes=extract_hcpcs_codes(codes_section), description=description)


def format_hcpcs_codes_for_badges(
    codes: Sequence[str],
    style: BadgeStyle = BadgeStyle.SIMPLE,
) -> List[str]:
    """
    Format codes for badge display.

    Args:
        codes: Codes already validated by ``extract_hcpcs_codes``.
        style: ``simple`` gives ``J1234``, ``brackets`` gives ``[J1234]``.

    Returns:
        One display string per input code, in input order.
    """
    style = BadgeStyle(style)
    formatted: List[str] = []
    for code in codes:
        clean = code.strip().upper()
        formatted.append(f"[{clean}]" if style is BadgeStyle.BRACKETS else clean)
    return formatted


def create_hcpcs_display_text(value: Optional[str], show_description: bool = False) -> str:
    """
    Render a HCPCS field as ``"J1234, J5678"``, optionally with its description.

    Only the codes before the first colon are listed; later lines belong to
    the description.
    """
    if not value:
        return ""

    parsed = parse_hcpcs_input(value)
    if not parsed.codes:
        return ""

    codes_text = ", ".join(parsed.codes)
    if show_description and parsed.description:
        return f"{codes_text}: {parsed.description}"
    return codes_text


def extract_unique_hcpcs_from_data(records: Iterable[RawRecord]) -> List[str]:
    """Collect the sorted union of HCPCS codes across raw records."""
    codes = set()
    for record in records:
        codes.update(extract_hcpcs_codes(resolve_hcpcs_field(record)))
    return sorted(codes)


def filter_by_hcpcs_code(records: Sequence[RecordT], code: Optional[str]) -> List[RecordT]:
    """
    Keep the raw records whose HCPCS field contains ``code``.

    An empty or malformed ``code`` disables the filter and every record is
    returned.
    """
    if not code or not is_valid_hcpcs_code(code):
        return list(records)

    wanted = code.strip().upper()
    return [
        record
        for record in records
        if wanted in extract_hcpcs_codes(resolve_hcpcs_field(record))
    ]


__all__ = [
    "BadgeStyle",
    "HCPCSInput",
    "HCPCS_CODE_PATTERN",
    "create_hcpcs_display_text",
    "extract_hcpcs_codes",
    "extract_unique_hcpcs_from_data",
    "filter_by_hcpcs_code",
    "format_hcpcs_codes_for_badges",
    "is_valid_hcpcs_code",
    "parse_hcpcs_input",
]
