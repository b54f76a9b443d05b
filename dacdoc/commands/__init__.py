"""Command implementations behind the `dacdoc` CLI.

Each command works on a ScanResult; the CLI owns argument parsing,
stderr diagnostics and exit codes.
"""

from __future__ import annotations
