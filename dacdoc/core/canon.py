"""Deterministic values recorded in reports."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone


FIXED_TIMESTAMP_UTC_Z = "1970-01-01T00:00:00Z"


def content_sha256(text: str) -> str:
    """sha256 of the UTF-8 encoding of a file's decoded text."""

    return hashlib.sha256(text.encode("utf-8", errors="strict")).hexdigest()


def report_timestamp(*, deterministic: bool) -> str:
    if deterministic:
        return FIXED_TIMESTAMP_UTC_Z
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

