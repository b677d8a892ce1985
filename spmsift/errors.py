"""Exceptions raised by spmsift.

Structural problems in package-manager output are reported as
``PackageIssue`` values, not exceptions. The classes here cover the few
conditions where no result can be produced at all.
"""


class SpmsiftError(Exception):
    """Base exception for all spmsift errors."""


class ParseError(SpmsiftError):
    """Raised when a parser cannot start on its input."""


class InvalidEncodingError(ParseError):
    """Raised when input bytes are not valid UTF-8."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Input is not valid UTF-8: {reason}")


class InvalidManifestError(ParseError):
    """Raised when dump-package JSON does not have an object at its root."""

    def __init__(self, root_type: str):
        self.root_type = root_type
        super().__init__(f"Package manifest root must be a JSON object, got {root_type}")


class ConfigError(SpmsiftError):
    """Raised when a configuration file exists but cannot be used."""


def decode_output(output) -> str:
    """Return ``output`` as text, decoding bytes as UTF-8."""
    if isinstance(output, (bytes, bytearray)):
        try:
            return bytes(output).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidEncodingError(str(exc)) from exc
    return output
