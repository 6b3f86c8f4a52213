"""
Error types for the DNS ID3 detector.

FormatError and EmptyInputError are fatal to the run that raised them.
UnseenValueError is only raised when classification runs in strict mode;
the default classification policy falls back to a majority label instead.
"""

from typing import Optional


class DnsIdsError(Exception):
    """Base class for detector errors."""


class FormatError(DnsIdsError, ValueError):
    """Malformed training file (header/row column mismatch, bad header, no rows)."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class EmptyInputError(DnsIdsError, ValueError):
    """Entropy, induction or accuracy invoked on zero records."""


class UnseenValueError(DnsIdsError, KeyError):
    """Classification reached a value that has no branch in the tree."""

    def __init__(self, attribute: str, value: Optional[str]):
        self.attribute = attribute
        self.value = value
        super().__init__(f"no branch for {attribute}={value!r}")

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return self.args[0]
