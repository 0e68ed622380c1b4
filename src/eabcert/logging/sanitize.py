"""Sensitive data sanitization for log and console output.

Provides :func:`sanitize_for_logs` which redacts the EAB MAC key and
PEM bodies (private keys in particular) from data structures, and
:func:`sanitize_argv` which does the same for command lines before they
are logged or attached to an error.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

REDACTED = "[REDACTED]"

# Dict keys that carry the EAB HMAC secret
_SECRET_KEYS = frozenset({"b64MacKey", "mac_key", "hmac_key", "eab_hmac_key"})

# Command-line flags whose value is secret
_SECRET_FLAGS = frozenset({"--eab-hmac-key"})

# Regex matching the base64 body inside PEM blocks
_PEM_BODY_RE = re.compile(
    r"(-----BEGIN [A-Z0-9 ]+-----)"
    r"([\s\S]*?)"
    r"(-----END [A-Z0-9 ]+-----)",
)

# "b64MacKey": "..." or b64MacKey: ... inside JSON or YAML text
_SECRET_FIELD_RE = re.compile(
    r"(\"?(?:" + "|".join(sorted(_SECRET_KEYS)) + r")\"?\s*[:=]\s*)(\"[^\"]*\"|[^\s,}]+)",
)


def sanitize_pem(pem: str) -> str:
    """Replace the base64 body of PEM blocks with ``[REDACTED]``.

    Preserves BEGIN/END markers so the type of object is still visible.
    """

    def _redact(m) -> str:
        return f"{m.group(1)}\n{REDACTED}\n{m.group(3)}"

    return _PEM_BODY_RE.sub(_redact, pem)


def _redact_field(m) -> str:
    if m.group(2).startswith('"'):
        return f'{m.group(1)}"{REDACTED}"'
    return f"{m.group(1)}{REDACTED}"


def sanitize_argv(argv: Sequence[str]) -> list[str]:
    """Return a copy of *argv* with secret flag values redacted.

    Handles both ``--flag value`` and ``--flag=value`` spellings.
    """
    result: list[str] = []
    redact_next = False
    for arg in argv:
        if redact_next:
            result.append(REDACTED)
            redact_next = False
            continue
        flag, sep, _ = arg.partition("=")
        if flag in _SECRET_FLAGS:
            if sep:
                result.append(f"{flag}={REDACTED}")
            else:
                result.append(arg)
                redact_next = True
            continue
        result.append(arg)
    return result


def sanitize_for_logs(data: Any) -> Any:
    """Recursively sanitize sensitive material in *data*.

    Handles dicts (secret keys, PEM strings in values), lists, and
    plain strings such as captured command output, where PEM bodies and
    ``b64MacKey``-style fields are redacted.  Non-sensitive data passes
    through unchanged.
    """
    if isinstance(data, dict):
        return {
            k: REDACTED if k in _SECRET_KEYS else sanitize_for_logs(v)
            for k, v in data.items()
        }

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    if isinstance(data, str):
        if "-----BEGIN " in data:
            data = sanitize_pem(data)
        return _SECRET_FIELD_RE.sub(_redact_field, data)

    return data
