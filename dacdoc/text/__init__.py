"""Placeholder grammar: reading markers out of documentation and writing results back."""

from __future__ import annotations
