"""DacDoc: documentation claims checked as code.

Markdown files embed `!DACDOC...!` placeholders. This package parses them,
resolves them to checks and reports the outcome.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version


def __getattr__(name: str):
    if name == "__version__":
        try:
            return version("dacdoc")
        except PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)
