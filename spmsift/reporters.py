"""
spmsift/reporters.py
====================
Result reporters

Supported formats:
- json: the full result document
- summary: command, success and counts only
- detailed: the full document (kept as its own format name)
"""

import json
import sys
from typing import IO, Any, Dict, Optional
from abc import ABC, abstractmethod

from .models import PackageAnalysis, OutputFormat


# =============================================================================
# Base reporter
# =============================================================================

class BaseReporter(ABC):
    """Base reporter"""

    def __init__(self, output: Optional[IO[str]] = None, indent: int = 2):
        self.output = output or sys.stdout
        self.indent = indent

    def writeln(self, text: str = ""):
        self.output.write(text + "\n")

    def write_json(self, data: Dict[str, Any]):
        self.writeln(json.dumps(data, indent=self.indent, ensure_ascii=False))

    @abstractmethod
    def report(self, result: PackageAnalysis):
        """Write one analysis result"""


# =============================================================================
# Reporters
# =============================================================================

class JsonReporter(BaseReporter):
    """Full JSON document"""

    def report(self, result: PackageAnalysis):
        self.write_json(result.to_dict())


class DetailedReporter(JsonReporter):
    """Same document as JsonReporter"""


class SummaryReporter(BaseReporter):
    """
    Counts only

    ``targets`` and ``dependencies`` appear when the parser produced those
    summaries; ``issues`` appears when there is at least one issue.
    """

    def report(self, result: PackageAnalysis):
        self.write_json(self.summarize(result))

    @staticmethod
    def summarize(result: PackageAnalysis) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            "command": result.command.value,
            "success": result.success,
        }
        if result.targets is not None:
            summary["targets"] = result.targets.count
        if result.dependencies is not None:
            summary["dependencies"] = result.dependencies.count
        if result.issues:
            summary["issues"] = len(result.issues)
        return summary


REPORTERS = {
    OutputFormat.JSON: JsonReporter,
    OutputFormat.SUMMARY: SummaryReporter,
    OutputFormat.DETAILED: DetailedReporter,
}


def get_reporter(fmt: OutputFormat, output: Optional[IO[str]] = None) -> BaseReporter:
    """Reporter instance for an output format"""
    return REPORTERS[fmt](output)


__all__ = [
    'BaseReporter',
    'JsonReporter',
    'DetailedReporter',
    'SummaryReporter',
    'get_reporter',
]
