"""
tfdriver/utils/secure_output.py

Redacts secrets from Terraform output before it is handed to a caller.

Three kinds of values are replaced with [REDACTED]:
  - AWS access key ids (AKIA... / ASIA...)
  - values of secret-looking attributes in 'key = "value"' and 'key: value' lines
  - any explicitly supplied sensitive values (plain string replacement, no regex)

Example:
    >>> SecureOutput.secure('password = "hunter2"')
    'password = "[REDACTED]"'
"""

from __future__ import annotations

import re
from typing import Iterable

REDACTED = "[REDACTED]"

_AWS_ACCESS_KEY_RE = re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b")

_SECRET_ATTRIBUTE_RE = re.compile(
    r"""^(?P<key>\s*(?:[-+~/<=]+\s+)?[\w.\-"]*?
            (?:password|secret|token|private_key|access_key|secret_key|api_key)
            [\w.\-"]*\s*[=:]\s*)
        (?P<quote>"?)
        (?P<value>[^"\n]*?)
        (?P=quote)\s*$""",
    re.IGNORECASE | re.MULTILINE | re.VERBOSE,
)


def _redact_attribute(match: "re.Match[str]") -> str:
    value = match.group("value")
    # Terraform already masks these, and empty/computed values carry nothing.
    if not value or value in ("<sensitive>", "(sensitive value)", "<computed>"):
        return match.group(0)
    quote = match.group("quote")
    return f"{match.group('key')}{quote}{REDACTED}{quote}"


class SecureOutput:
    """Output redaction applied by 'show' when redaction is requested."""

    @staticmethod
    def secure(text: str, sensitive_values: Iterable[str] = ()) -> str:
        """
        Replace secrets in `text` with [REDACTED].

        Args:
            text: Raw command output.
            sensitive_values: Extra literal values to hide (e.g. variable values).

        Returns:
            The redacted text. Empty text is returned unchanged.
        """
        if not text:
            return text

        redacted = _AWS_ACCESS_KEY_RE.sub(REDACTED, text)
        redacted = _SECRET_ATTRIBUTE_RE.sub(_redact_attribute, redacted)

        # Longest first so a value that contains another is not partially replaced.
        for value in sorted(set(sensitive_values), key=len, reverse=True):
            if value:
                redacted = redacted.replace(value, REDACTED)

        return redacted
