"""Lowest-level DacDoc utilities.

Dependency direction rules:
- dacdoc.core must not import dacdoc.text, dacdoc.check or dacdoc.commands
"""

from dacdoc.core.canon import content_sha256, report_timestamp
from dacdoc.core.jail import ensure_within_root, resolve_link_target, safe_relpath, split_link_target

__all__ = [
	"content_sha256",
	"ensure_within_root",
	"report_timestamp",
	"resolve_link_target",
	"safe_relpath",
	"split_link_target",
]
