# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Fingerprint computation for grouping similar errors.

The fingerprint must match the one produced by the web and mobile clients
for the same message and stack, so the normalisation rules and the hash are
reproduced exactly:

1. Normalise the message (strip variable parts, lowercase, trim)
2. Append up to three top stack frames as ``function@file``
3. Hash the result with two djb2 seeds over UTF-16 code units

The hash is not cryptographic. It only needs to be stable and spread well
enough for grouping.
"""

import re
import struct

MAX_FRAMES = 3

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)
_NUMBER_RE = re.compile(r"\b\d+\b", re.ASCII)
_LONG_STRING_RE = re.compile(r'"[^"]{50,}"')
# The gap between function and file never crosses a line terminator
_FRAME_RE = re.compile(r"at\s+(\S+)[^\r\n\u2028\u2029]*?([^/\\]+\.[A-Za-z0-9_]+)")

# What JavaScript String.prototype.trim() removes; str.strip() uses a different set
_JS_WHITESPACE = (
    "\t\n\v\f\r \u00a0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000\ufeff"
)

_SEED_1 = 5381
_SEED_2 = 52711
_MASK_32 = 0xFFFFFFFF


def normalize_message(message: str) -> str:
    """Replace variable parts of *message* with placeholder tokens."""
    normalized = _UUID_RE.sub("{{uuid}}", message)
    normalized = _NUMBER_RE.sub("{{n}}", normalized)
    normalized = _LONG_STRING_RE.sub('"{{str}}"', normalized)
    return normalized.lower().strip(_JS_WHITESPACE)


def extract_frames(stack_trace: str, max_frames: int = MAX_FRAMES) -> list[str]:
    """Return the top frames of *stack_trace* without line/column numbers.

    Only lines containing ``"at "`` are considered. A frame that matches the
    ``at <function> ... <file>.<ext>`` shape becomes ``function@file.ext``;
    anything else is kept as the stripped raw line.
    """
    frames = []
    for line in stack_trace.split("\n"):
        if "at " not in line:
            continue
        match = _FRAME_RE.search(line)
        frames.append(f"{match.group(1)}@{match.group(2)}" if match else line.strip(_JS_WHITESPACE))
        if len(frames) >= max_frames:
            break
    return frames


def _utf16_code_units(text: str) -> tuple[int, ...]:
    encoded = text.encode("utf-16-le", "surrogatepass")
    return struct.unpack(f"<{len(encoded) // 2}H", encoded)


def simple_hash(text: str) -> str:
    """Two-seed djb2 variant producing 16 lowercase hex characters."""
    hash1 = _SEED_1
    hash2 = _SEED_2
    for code_unit in _utf16_code_units(text):
        hash1 = ((hash1 * 33) ^ code_unit) & _MASK_32
        hash2 = ((hash2 * 33) ^ code_unit) & _MASK_32
    return f"{hash1:08x}{hash2:08x}"


def compute_fingerprint(message: str, stack_trace: str | None = None) -> str:
    """Compute the grouping fingerprint for an error message and stack."""
    normalized = normalize_message(message)
    if stack_trace:
        normalized += "|" + "|".join(extract_frames(stack_trace))
    return simple_hash(normalized)
