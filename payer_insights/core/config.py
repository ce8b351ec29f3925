"""
Runtime configuration read from environment variables.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import List


DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
METADATA_FILENAME = "insurers_coverage_data.json"


def get_data_dir() -> Path:
    """
    Directory holding the bundled JSON sources.

    Overridable with ``PAYER_INSIGHTS_DATA_DIR``.
    """
    override = os.getenv("PAYER_INSIGHTS_DATA_DIR")
    return Path(override) if override else DEFAULT_DATA_DIR


def get_cors_origins() -> List[str]:
    raw = os.getenv("PAYER_INSIGHTS_CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


__all__ = [
    "DEFAULT_DATA_DIR",
    "METADATA_FILENAME",
    "get_cors_origins",
    "get_data_dir",
]
