"""Normalization rules shared by the vessel API, resolver and migration engine.

A vessel is identified by its normalized `(vessel_name, job_number)` pair.
NULL, missing and blank job numbers are one equivalence class.
"""

from __future__ import annotations

IDENTITY_KEY_SEPARATOR = "|"


def normalize_token(value: str | None) -> str:
    """Trim and upper-case; None becomes ''."""
    if value is None:
        return ""
    return str(value).strip().upper()


def optional_token(value: str | None) -> str | None:
    """Normalized value, or None when blank. Used for nullable columns."""
    normalized = normalize_token(value)
    return normalized or None


def vessel_identity_key(vessel_name: str | None, job_number: str | None) -> str:
    return f"{normalize_token(vessel_name)}{IDENTITY_KEY_SEPARATOR}{normalize_token(job_number)}"


def vessel_map_key(vessel_name: str, job_number: str | None, pod: str | None) -> str:
    return f"{vessel_name}_{job_number or ''}_{pod or ''}"
