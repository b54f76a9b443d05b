"""Placeholder grammar tokens.

    !DACDOC<param>(;<param>)*!
    param := bare-argument | key "=" value
"""

from __future__ import annotations

import re


# identifying placeholder
ANCHOR_FRAMING = "!"
ANCHOR_KEYWORD = "DACDOC"

# extracting parameters from placeholders
ANCHOR_PARAMETER_SEPARATOR = ";"
ANCHOR_PARAMETER_KEY_VALUE_SEPARATOR = "="
ANCHOR_PARAMETER_IDS_SEPARATOR = ","

# names of the parameters
ANCHOR_PARAMETER_ID = "id"
ANCHOR_PARAMETER_TEST_ID = "test"
ANCHOR_PARAMETER_IDS = "ids"

KNOWN_PARAMETER_KEYS = frozenset({ANCHOR_PARAMETER_ID, ANCHOR_PARAMETER_TEST_ID, ANCHOR_PARAMETER_IDS})

# "verify this markdown link / bare URI resolves"
DEFAULT_TEST_ID = "dacdoc-url"

# Body is non-greedy and may span lines.
ANCHOR_PATTERN = re.compile(
    re.escape(ANCHOR_FRAMING) + re.escape(ANCHOR_KEYWORD) + r"(.*?)" + re.escape(ANCHOR_FRAMING),
    re.DOTALL,
)

PARAMETER_KEY_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")

MARKDOWN_EXTENSIONS = (".md",)
