from __future__ import annotations


class DacDocError(Exception):
    """Base class for errors raised by dacdoc."""
