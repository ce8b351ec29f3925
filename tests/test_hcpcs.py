import pytest

from payer_insights.core.hcpcs import (
    BadgeStyle,
    create_hcpcs_display_text,
    extract_hcpcs_codes,
    extract_unique_hcpcs_from_data,
    filter_by_hcpcs_code,
    format_hcpcs_codes_for_badges,
    is_valid_hcpcs_code,
    parse_hcpcs_input,
)


@pytest.mark.parametrize("value", [None, "", "   ", "\n\n", 12345])
def test_extract_hcpcs_codes_empty_input(value):
    """Absent or non-text input gives an empty list, never an error."""
    assert extract_hcpcs_codes(value) == []  # type: ignore[arg-type]


def test_extract_hcpcs_codes_single_code_with_description():
    assert extract_hcpcs_codes("J0791: Injection, crizanlizumab-tmca, 5 mg [Adakveo]") == ["J0791"]


def test_extract_hcpcs_codes_deduplicates_case_insensitively():
    """Same code in different case collapses to one uppercase code."""
    assert extract_hcpcs_codes("J1234,j1234:desc") == ["J1234"]
    assert extract_hcpcs_codes(" j1234 ;J1234 \nJ1234: again") == ["J1234"]


def test_extract_hcpcs_codes_multiple_lines():
    assert extract_hcpcs_codes("J1234:desc1\nJ5678:desc2") == ["J1234", "J5678"]


def test_extract_hcpcs_codes_mixed_delimiters():
    assert extract_hcpcs_codes("J1234;J5678:notes") == ["J1234", "J5678"]
    assert extract_hcpcs_codes("J1234, J5678; J9012:Mixed separators") == ["J1234", "J5678", "J9012"]


def test_extract_hcpcs_codes_keeps_first_seen_order():
    """Codes are not resorted."""
    assert extract_hcpcs_codes("Q2055\nJ0791,C9399") == ["Q2055", "J0791", "C9399"]


def test_extract_hcpcs_codes_description_without_colon():
    """A description with no colon is treated as codes and filtered out."""
    assert extract_hcpcs_codes("Unclassified biologics") == []


def test_extract_hcpcs_codes_leading_and_trailing_separators():
    assert extract_hcpcs_codes(",;J1234,;") == ["J1234"]


def test_extract_hcpcs_codes_drops_sentinel_and_malformed_tokens():
    assert extract_hcpcs_codes("N/A") == []
    assert extract_hcpcs_codes("J7170; N/A") == ["J7170"]
    assert extract_hcpcs_codes("J12345, 12345, JJ123, J123, 0537T") == []


def test_extract_hcpcs_codes_ignores_codes_after_colon():
    """Codes mentioned inside the description are not extracted."""
    assert extract_hcpcs_codes("J1234: replaces J5678") == ["J1234"]


def test_extract_hcpcs_codes_multiline_source_field():
    value = (
        "J3590: Unclassified biologics (when specified as [Adbry] (tralokinumab)\n"
        "C9399: Unclassified drugs or biologicals (when specified as Adbry] (tralokinumab)"
    )
    assert extract_hcpcs_codes(value) == ["J3590", "C9399"]


@pytest.mark.parametrize("token", ["J12345", "1234", "JJ1234", "J12A4", "J-1234", "N/A", "1J234"])
def test_extract_hcpcs_codes_never_returns_invalid_tokens(token):
    assert extract_hcpcs_codes(f"{token},{token.lower()}") == []


def test_round_trip_through_simple_formatting():
    """Extract -> format simple -> join -> extract reproduces the same codes."""
    value = "j1234; J5678 : notes\nq2055:desc, with comma"
    codes = extract_hcpcs_codes(value)
    joined = ",".join(format_hcpcs_codes_for_badges(codes, BadgeStyle.SIMPLE))
    assert extract_hcpcs_codes(joined) == codes


def test_format_hcpcs_codes_for_badges():
    codes = ["J1234", "j5678", " Q2055 "]
    assert format_hcpcs_codes_for_badges(codes) == ["J1234", "J5678", "Q2055"]
    assert format_hcpcs_codes_for_badges(codes, BadgeStyle.BRACKETS) == ["[J1234]", "[J5678]", "[Q2055]"]
    assert format_hcpcs_codes_for_badges(codes, "brackets") == ["[J1234]", "[J5678]", "[Q2055]"]
    assert format_hcpcs_codes_for_badges([], BadgeStyle.BRACKETS) == []


def test_format_hcpcs_codes_for_badges_unknown_style():
    with pytest.raises(ValueError):
        format_hcpcs_codes_for_badges(["J1234"], "fancy")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "code, expected",
    [("J1234", True), ("j1234", True), (" Q2055 ", True), ("J123", False), ("", False), (None, False)],
)
def test_is_valid_hcpcs_code(code, expected):
    assert is_valid_hcpcs_code(code) is expected


def test_parse_hcpcs_input():
    parsed = parse_hcpcs_input("J1234,J5678:Details: more details")
    assert parsed.codes == ["J1234", "J5678"]
    assert parsed.description == "Details: more details"

    bare = parse_hcpcs_input("Q2055")
    assert bare.codes == ["Q2055"]
    assert bare.description is None

    assert parse_hcpcs_input(None).codes == []


def test_create_hcpcs_display_text():
    assert create_hcpcs_display_text("J1234;J5678:Notes") == "J1234, J5678"
    assert create_hcpcs_display_text("J1234;J5678:Notes", show_description=True) == "J1234, J5678: Notes"
    assert create_hcpcs_display_text("Notes only") == ""
    assert create_hcpcs_display_text(None) == ""


def test_extract_unique_hcpcs_from_data_probes_all_field_names():
    records = [
        {"hcpcs_code": "Q2055"},
        {"hcpcs_code": "J0791: Injection, crizanlizumab-tmca, 5 mg [Adakveo]"},
        {"hcpc_code": "J7171"},
        {"HCPCS Code": "Q2055"},
        {"hcpcsCode": "C9399"},
        {"brand_name": "No codes"},
    ]
    assert extract_unique_hcpcs_from_data(records) == ["C9399", "J0791", "J7171", "Q2055"]


def test_filter_by_hcpcs_code():
    records = [
        {"hcpcs_code": "J1234,J5678:desc"},
        {"HCPCS Code": "J5678"},
        {"hcpc_code": "Q2055"},
    ]
    assert filter_by_hcpcs_code(records, "j5678") == records[:2]
    assert filter_by_hcpcs_code(records, "J0000") == []
    # Empty or malformed filter codes leave the data untouched
    assert filter_by_hcpcs_code(records, "") == records
    assert filter_by_hcpcs_code(records, "not-a-code") == records


def test_create_hcpcs_display_text_lists_first_line_codes_only():
    """Codes on later lines are part of the description and are not repeated."""
    value = "J1234:desc\nJ5678:more"
    assert create_hcpcs_display_text(value) == "J1234"
    assert create_hcpcs_display_text(value, show_description=True) == "J1234: desc\nJ5678:more"
    assert create_hcpcs_display_text("Notes\nJ1234:later") == ""
