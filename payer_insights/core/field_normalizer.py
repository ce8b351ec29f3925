"""
Field-name resolution across the bundled insurer sources.

Each insurer export names the same fields differently (``hcpcs_code`` vs
``hcpc_code`` vs ``"HCPCS Code"``). Every semantic field has one ordered alias
list; the first alias holding a non-empty value wins.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Final, List, Mapping, Optional, Tuple


RawRecord = Mapping[str, Any]


HCPCS_FIELD_ALIASES: Final[Tuple[str, ...]] = (
    "hcpcs_code",
    "hcpc_code",
    "HCPCS Code",
    "hcpcsCode",
)

FIELD_ALIASES: Final[Dict[str, Tuple[str, ...]]] = {
    "hcpcs_code": HCPCS_FIELD_ALIASES,
    "brand_name": ("brand_name", "Brand Name", "brandName"),
    "indication": ("indication", "Indication"),
    "indicated_population": ("indicated_population", "Indicated Population"),
    "prior_authorization_required": (
        "prior_authorization_required",
        "Prior Authorization Required",
        "priorAuthorizationRequired",
        "Prior Authorisation/Medical necessity/notification",
    ),
    "step_therapy_required": (
        "step_therapy_required",
        "Step Therapy Required",
        "stepTherapyRequired",
    ),
}

_TRUTHY_FLAGS: Final[frozenset] = frozenset({"yes", "y", "true", "required", "1"})


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ",".join(_as_text(item) for item in value)
    return str(value)


def resolve_field(record: RawRecord, field_name: str) -> str:
    """
    Resolve a semantic field from a raw record using its alias priority list.

    Args:
        record: Raw record as loaded from one of the source files.
        field_name: Key of ``FIELD_ALIASES``.

    Returns:
        The first non-empty value among the aliases, as a string, or ``""``.

    Raises:
        ValueError: If ``field_name`` has no alias list.
    """
    try:
        aliases = FIELD_ALIASES[field_name]
    except KeyError as exc:
        raise ValueError(f"Unknown field: {field_name}") from exc

    for alias in aliases:
        value = _as_text(record.get(alias))
        if value.strip():
            return value
    return ""


def resolve_hcpcs_field(record: RawRecord) -> str:
    """Return the raw HCPCS text of a record, probing every known field name."""
    return resolve_field(record, "hcpcs_code")


def resolve_brand_name(record: RawRecord) -> str:
    return resolve_field(record, "brand_name")


def resolve_indication(record: RawRecord) -> str:
    return resolve_field(record, "indication")


def resolve_indicated_population(record: RawRecord) -> str:
    return resolve_field(record, "indicated_population")


def parse_flag(value: Any) -> bool:
    """Interpret a free-text Yes/No style flag."""
    return _as_text(value).strip().lower() in _TRUTHY_FLAGS


def resolve_prior_authorization(record: RawRecord) -> bool:
    """
    Resolve whether prior authorization is required.

    Sources that do not report the flag but report
    ``medication_sourcing_required`` are treated as requiring it when that
    field is truthy.
    """
    value = resolve_field(record, "prior_authorization_required")
    if value:
        return parse_flag(value)
    return bool(record.get("medication_sourcing_required"))


def resolve_step_therapy(record: RawRecord) -> Optional[bool]:
    """Resolve the step therapy flag, or None when the source does not report it."""
    value = resolve_field(record, "step_therapy_required")
    if not value:
        return None
    return parse_flag(value)


def _codes_before_colon(value: Any) -> str:
    return _as_text(value).split(":", 1)[0].strip()


def _transform_cigna(record: Dict[str, Any]) -> Dict[str, Any]:
    if record.get("doc_hcpcs_code"):
        record["hcpcs_code"] = _codes_before_colon(record["doc_hcpcs_code"])
    return record


def _transform_uhc(record: Dict[str, Any]) -> Dict[str, Any]:
    if record.get("state_policy_data"):
        lines = _as_text(record["state_policy_data"]).split("\n")
        record["state_policy_data"] = ", ".join(
            code for code in (_codes_before_colon(line) for line in lines) if code
        )
    return record


@dataclass(frozen=True)
class SourceProfile:
    """
    How one insurer's export is turned into records the normalizer understands.
    """

    insurer: str
    filename: str
    dropped_fields: Tuple[str, ...] = ()
    transform: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = field(
        default=None, compare=False
    )

    def prepare(self, record: RawRecord) -> Dict[str, Any]:
        """Return a cleaned copy of ``record``; the input is never mutated."""
        cleaned = {
            key: value
            for key, value in record.items()
            if key not in self.dropped_fields
        }
        if self.transform is not None:
            cleaned = self.transform(cleaned)
        return cleaned


SOURCE_PROFILES: Final[Tuple[SourceProfile, ...]] = (
    SourceProfile("Humana", "humana_nuro.json"),
    SourceProfile("Anthem", "anthem_nuro.json"),
    SourceProfile("Aetna", "aetna_nuro.json"),
    SourceProfile(
        "Cigna Healthcare",
        "cigna_nuro.json",
        dropped_fields=("date", "cpt_codes", "diagnosis_codes"),
        transform=_transform_cigna,
    ),
    SourceProfile(
        "UnitedHealthcare",
        "uhc_nuro.json",
        dropped_fields=("diagnosis_codes", "hcpcs_codes"),
        transform=_transform_uhc,
    ),
    SourceProfile("Centene", "centene_nuro.json"),
)


def list_source_insurers() -> List[str]:
    return [profile.insurer for profile in SOURCE_PROFILES]


__all__ = [
    "FIELD_ALIASES",
    "HCPCS_FIELD_ALIASES",
    "RawRecord",
    "SOURCE_PROFILES",
    "SourceProfile",
    "list_source_insurers",
    "parse_flag",
    "resolve_brand_name",
    "resolve_field",
    "resolve_hcpcs_field",
    "resolve_indicated_population",
    "resolve_indication",
    "resolve_prior_authorization",
    "resolve_step_therapy",
]
