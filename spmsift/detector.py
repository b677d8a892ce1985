"""
spmsift/detector.py
===================
Guess which ``swift package`` sub-command produced a piece of output
"""

from typing import List

from .models import SwiftPackageCommand


class CommandDetector:
    """Keyword sniffing, checked in a fixed order"""

    TREE_MARKERS = ("├─", "└─", "│")
    RESOLVE_WORDS = ("resolving", "fetching", "resolved", "updating")
    DESCRIBE_WORDS = ("package name:", "package version:")
    UPDATE_WORDS = ("updating", "updated", "checking out")
    ERROR_WORDS = ("error:", "failed", "cannot", "unable to", "invalid")

    @classmethod
    def detect_command_type(cls, output: str) -> SwiftPackageCommand:
        lowered = output.lower()

        if '"name"' in lowered and '"targets"' in lowered:
            return SwiftPackageCommand.DUMP_PACKAGE
        if any(marker in lowered for marker in cls.TREE_MARKERS):
            return SwiftPackageCommand.SHOW_DEPENDENCIES
        if any(word in lowered for word in cls.RESOLVE_WORDS):
            return SwiftPackageCommand.RESOLVE
        if any(word in lowered for word in cls.DESCRIBE_WORDS):
            return SwiftPackageCommand.DESCRIBE
        # "updating" is already claimed by resolve above
        if any(word in lowered for word in cls.UPDATE_WORDS):
            return SwiftPackageCommand.UPDATE
        return SwiftPackageCommand.UNKNOWN

    @classmethod
    def has_error_output(cls, output: str) -> bool:
        lowered = output.lower()
        return any(word in lowered for word in cls.ERROR_WORDS)

    @staticmethod
    def extract_error_messages(output: str) -> List[str]:
        """Trimmed lines containing 'error:' or starting with 'error'"""
        errors: List[str] = []
        for line in output.splitlines():
            trimmed = line.strip()
            lowered = trimmed.lower()
            if "error:" in lowered or lowered.startswith("error"):
                errors.append(trimmed)
        return errors


__all__ = ['CommandDetector']
