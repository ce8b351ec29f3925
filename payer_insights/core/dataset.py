"""
Immutable coverage dataset, loaded once from the bundled JSON files.

The dataset is passed explicitly to every aggregation call; nothing in the
services reads module-level state.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from payer_insights.core.config import METADATA_FILENAME, get_data_dir
from payer_insights.core.coverage_model import InsurerMetadata, NormalizedRecord
from payer_insights.core.field_normalizer import (
    SOURCE_PROFILES,
    RawRecord,
    SourceProfile,
    resolve_brand_name,
    resolve_hcpcs_field,
    resolve_indicated_population,
    resolve_indication,
    resolve_prior_authorization,
    resolve_step_therapy,
)
from payer_insights.core.hcpcs import extract_hcpcs_codes


logger = logging.getLogger(__name__)

_PASSTHROUGH_FIELDS = (
    "inn_name",
    "label_population",
    "clinical_criteria",
    "exclusion_criteria",
    "link",
    "links",
    "state_policy_data",
    "policy_revised_date",
    "policy_effective_date",
    "policy_approved_date",
    "published_date",
    "last_review_date",
)


class DatasetLoadError(RuntimeError):
    """Raised when the bundled data cannot be read."""


@dataclass(frozen=True)
class CoverageDataset:
    records: Tuple[NormalizedRecord, ...]
    insurers: Tuple[InsurerMetadata, ...]

    def insurer_names(self) -> List[str]:
        return [meta.insurer for meta in self.insurers]

    def get_insurer(self, name: str) -> Optional[InsurerMetadata]:
        for meta in self.insurers:
            if meta.insurer == name:
                return meta
        return None


def normalize_record(record: RawRecord, insurer: str) -> NormalizedRecord:
    """
    Resolve every semantic field of a raw record into a NormalizedRecord.

    Args:
        record: Raw mapping from any source.
        insurer: Insurer the source file belongs to.
    """
    raw_hcpcs = resolve_hcpcs_field(record)
    extra = {
        name: record[name]
        for name in _PASSTHROUGH_FIELDS
        if record.get(name) not in (None, "")
    }
    return NormalizedRecord(
        brand_name=resolve_brand_name(record),
        indication=resolve_indication(record),
        insurer=insurer,
        indicated_population=resolve_indicated_population(record),
        hcpcs_codes=tuple(extract_hcpcs_codes(raw_hcpcs)),
        prior_authorization_required=resolve_prior_authorization(record),
        step_therapy_required=resolve_step_therapy(record),
        raw_hcpcs=raw_hcpcs,
        extra=extra,
    )


def normalize_source(profile: SourceProfile, records: Iterable[RawRecord]) -> List[NormalizedRecord]:
    return [normalize_record(profile.prepare(record), profile.insurer) for record in records]


def _read_json_array(path: Path) -> List[Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as exc:
        raise DatasetLoadError(f"Data file not found: {path.name}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise DatasetLoadError(f"Could not read data file {path.name}: {exc}") from exc

    if not isinstance(payload, list):
        raise DatasetLoadError(f"Data file {path.name} must contain a JSON array")
    return payload


def load_dataset(
    data_dir: Optional[Union[str, Path]] = None,
    profiles: Sequence[SourceProfile] = SOURCE_PROFILES,
) -> CoverageDataset:
    """
    Load the insurer metadata table and every source file.

    Args:
        data_dir: Directory with the JSON files. Defaults to the configured one.
        profiles: Source files to read and how to prepare their rows.

    Returns:
        The fully loaded dataset.

    Raises:
        DatasetLoadError: If any file is missing, unreadable or malformed.
    """
    directory = Path(data_dir) if data_dir is not None else get_data_dir()

    try:
        insurers = tuple(
            InsurerMetadata.from_mapping(entry)
            for entry in _read_json_array(directory / METADATA_FILENAME)
        )
    except (AttributeError, ValueError) as exc:
        raise DatasetLoadError(f"Invalid insurer metadata: {exc}") from exc

    records: List[NormalizedRecord] = []
    for profile in profiles:
        rows = _read_json_array(directory / profile.filename)
        if not all(isinstance(row, dict) for row in rows):
            raise DatasetLoadError(f"Data file {profile.filename} must contain objects")
        records.extend(normalize_source(profile, rows))
        logger.debug("Loaded %d records for %s", len(rows), profile.insurer)

    logger.info(
        "Coverage dataset loaded: %d records across %d insurers",
        len(records),
        len(insurers),
    )
    return CoverageDataset(records=tuple(records), insurers=insurers)


__all__ = [
    "CoverageDataset",
    "DatasetLoadError",
    "load_dataset",
    "normalize_record",
    "normalize_source",
]
