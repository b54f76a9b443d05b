"""Primitive test kinds, keyed by the marker `test=` value."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from dacdoc.check.base import Check, UrlCheck
from dacdoc.constants import DEFAULT_TEST_ID

PrimitiveFactory = Callable[[Path, str], Check]


def _build_url_check(file: Path, argument: str) -> Check:
    return UrlCheck.from_argument(file, argument)


_PRIMITIVE_FACTORIES: dict[str, PrimitiveFactory] = {
    DEFAULT_TEST_ID: _build_url_check,
}


def get_primitive_factories() -> dict[str, PrimitiveFactory]:
    return dict(_PRIMITIVE_FACTORIES)


def known_test_ids() -> list[str]:
    return sorted(_PRIMITIVE_FACTORIES)
