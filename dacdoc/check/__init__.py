"""Checks attached to DacDoc placeholders, and the resolver that builds them."""

from __future__ import annotations
