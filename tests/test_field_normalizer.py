import pytest

from payer_insights.core.dataset import normalize_record
from payer_insights.core.field_normalizer import (
    SOURCE_PROFILES,
    list_source_insurers,
    parse_flag,
    resolve_brand_name,
    resolve_field,
    resolve_hcpcs_field,
    resolve_indication,
    resolve_prior_authorization,
    resolve_step_therapy,
)


def _profile(insurer):
    return next(p for p in SOURCE_PROFILES if p.insurer == insurer)


def test_resolve_hcpcs_field_priority_order():
    """hcpc_code outranks "HCPCS Code" on every call."""
    record = {"HCPCS Code": "B2222", "hcpc_code": "A1111"}
    assert all(resolve_hcpcs_field(record) == "A1111" for _ in range(5))

    record = {"hcpcsCode": "D4444", "HCPCS Code": "C3333", "hcpc_code": "B2222", "hcpcs_code": "A1111"}
    assert resolve_hcpcs_field(record) == "A1111"


@pytest.mark.parametrize("alias", ["hcpcs_code", "hcpc_code", "HCPCS Code", "hcpcsCode"])
def test_resolve_hcpcs_field_each_alias(alias):
    assert resolve_hcpcs_field({alias: "J0791"}) == "J0791"


def test_resolve_hcpcs_field_skips_empty_values():
    record = {"hcpcs_code": "", "hcpc_code": None, "HCPCS Code": "  ", "hcpcsCode": "Q2055"}
    assert resolve_hcpcs_field(record) == "Q2055"


def test_resolve_hcpcs_field_missing():
    assert resolve_hcpcs_field({}) == ""
    assert resolve_hcpcs_field({"brand_name": "Adakveo"}) == ""


def test_resolve_brand_name_and_indication_aliases():
    assert resolve_brand_name({"Brand Name": "Abecma"}) == "Abecma"
    assert resolve_brand_name({"brand_name": "Adakveo", "Brand Name": "Other"}) == "Adakveo"
    assert resolve_indication({"Indication": "Multiple myeloma"}) == "Multiple myeloma"
    assert resolve_indication({}) == ""


def test_resolve_field_unknown_field():
    with pytest.raises(ValueError):
        resolve_field({}, "dosage")


@pytest.mark.parametrize(
    "value, expected",
    [("Yes", True), (" yes ", True), ("Y", True), ("Required", True), (True, True),
     ("No", False), ("", False), (None, False), ("unknown", False), (False, False)],
)
def test_parse_flag(value, expected):
    assert parse_flag(value) is expected


def test_resolve_prior_authorization():
    assert resolve_prior_authorization({"prior_authorization_required": "Yes"}) is True
    assert resolve_prior_authorization({"Prior Authorization Required": "No"}) is False
    assert resolve_prior_authorization({"medication_sourcing_required": True}) is True
    assert resolve_prior_authorization({"medication_sourcing_required": False}) is False
    assert resolve_prior_authorization({}) is False


def test_resolve_step_therapy_optional():
    """Sources that do not report step therapy give None."""
    assert resolve_step_therapy({"step_therapy_required": "Yes"}) is True
    assert resolve_step_therapy({"stepTherapyRequired": "No"}) is False
    assert resolve_step_therapy({}) is None


def test_cigna_profile_moves_doc_hcpcs_code():
    raw = {
        "Brand Name": "Abecma",
        "doc_hcpcs_code": "Q2055: Idecabtagene vicleucel",
        "date": "2024-06-01",
        "cpt_codes": "0537T",
        "diagnosis_codes": "C90.00",
    }
    prepared = _profile("Cigna Healthcare").prepare(raw)

    assert prepared["hcpcs_code"] == "Q2055"
    assert "date" not in prepared
    assert "cpt_codes" not in prepared
    assert "diagnosis_codes" not in prepared
    # Input is left untouched
    assert "hcpcs_code" not in raw
    assert raw["date"] == "2024-06-01"


def test_uhc_profile_compacts_state_policy_data():
    raw = {
        "HCPCS Code": "J0791",
        "state_policy_data": "TX: Texas criteria\n\nLA: Louisiana criteria",
        "hcpcs_codes": "J0791",
        "diagnosis_codes": "D57.00",
    }
    prepared = _profile("UnitedHealthcare").prepare(raw)

    assert prepared["state_policy_data"] == "TX, LA"
    assert "hcpcs_codes" not in prepared
    assert "diagnosis_codes" not in prepared
    assert resolve_hcpcs_field(prepared) == "J0791"


def test_plain_profiles_copy_records():
    raw = {"brand_name": "Hemlibra", "hcpc_code": "J7170"}
    prepared = _profile("Humana").prepare(raw)
    assert prepared == raw
    assert prepared is not raw


def test_list_source_insurers():
    assert list_source_insurers() == [
        "Humana", "Anthem", "Aetna", "Cigna Healthcare", "UnitedHealthcare", "Centene",
    ]


def test_resolve_prior_authorization_cigna_uhc_field_name():
    """Cigna and UHC exports report the flag under a combined notification column."""
    record = {"Prior Authorisation/Medical necessity/notification": "Yes"}
    assert resolve_prior_authorization(record) is True
    assert resolve_prior_authorization({"Prior Authorisation/Medical necessity/notification": "No"}) is False
    # Earlier aliases still win
    record["prior_authorization_required"] = "No"
    assert resolve_prior_authorization(record) is False


def test_normalize_record_cigna_style_row():
    raw = {
        "Brand Name": "Abecma",
        "HCPCS Code": "Q2055",
        "Prior Authorisation/Medical necessity/notification": "Yes",
        "link": "https://example.com/policy.pdf",
    }
    record = normalize_record(raw, "Cigna Healthcare")

    assert record.prior_authorization_required is True
    assert record.hcpcs_codes == ("Q2055",)
    assert record.extra == {"link": "https://example.com/policy.pdf"}


def test_list_values_are_joined_with_commas():
    """Array-valued fields keep every code."""
    assert resolve_hcpcs_field({"hcpcs_code": ["J1234", "J5678"]}) == "J1234,J5678"
    record = normalize_record({"brand_name": "Adbry", "hcpc_code": ["J3590", "c9399"]}, "Anthem")
    assert record.hcpcs_codes == ("J3590", "C9399")
    assert resolve_hcpcs_field({"hcpcs_code": [], "hcpc_code": "Q2055"}) == "Q2055"
