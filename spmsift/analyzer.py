"""
spmsift/analyzer.py
===================
Dispatcher from raw package-manager output to a PackageAnalysis

Pipeline:
1. error pre-check (short-circuits every structural parser)
2. command classification, unless the caller already knows the command
3. the matching parser
4. optional metrics, severity filter and raw-input echo, each applied with
   ``dataclasses.replace`` so the parser's result is never mutated
"""

import time
from dataclasses import replace
from typing import List, Optional, Union

from loguru import logger

from .detector import CommandDetector
from .errors import ParseError, decode_output
from .manifest import DumpPackageParser
from .models import (
    PackageAnalysis, PackageIssue, PackageMetrics, IssueType, Severity,
    SwiftPackageCommand, ComplexityLevel,
)
from .scanners import ResolveParser, DescribeParser, UpdateParser
from .tree_parser import ShowDependenciesParser


def parse_output(
    output: Union[str, bytes],
    command: Optional[SwiftPackageCommand] = None,
    target: Optional[str] = None,
) -> PackageAnalysis:
    """
    Run the right parser on ``output``

    Args:
        output: raw stdout of a ``swift package`` sub-command
        command: skip classification when the producing command is known
        target: single-target filter, used by dump-package only

    Returns:
        PackageAnalysis. Hard parse failures come back as a syntax_error
        result instead of an exception.
    """
    try:
        text = decode_output(output)
    except ParseError as exc:
        return _failed(command or SwiftPackageCommand.UNKNOWN, exc)

    detected = command or CommandDetector.detect_command_type(text)
    logger.debug("command: {}", detected.value)

    if CommandDetector.has_error_output(text):
        messages = CommandDetector.extract_error_messages(text)
        logger.debug("error pre-check matched, {} error lines", len(messages))
        return PackageAnalysis(
            command=detected,
            success=False,
            issues=[
                PackageIssue(type=IssueType.UNKNOWN, severity=Severity.ERROR, message=m)
                for m in messages
            ],
        )

    try:
        if detected == SwiftPackageCommand.DUMP_PACKAGE:
            return DumpPackageParser().parse(text, target_filter=target)
        if detected == SwiftPackageCommand.SHOW_DEPENDENCIES:
            return ShowDependenciesParser().parse(text)
        if detected == SwiftPackageCommand.RESOLVE:
            return ResolveParser().parse(text)
        if detected == SwiftPackageCommand.DESCRIBE:
            return DescribeParser().parse(text)
        if detected == SwiftPackageCommand.UPDATE:
            return UpdateParser().parse(text)
    except ParseError as exc:
        return _failed(detected, exc)

    return PackageAnalysis(
        command=SwiftPackageCommand.UNKNOWN,
        success=False,
        issues=[PackageIssue(
            type=IssueType.UNKNOWN,
            severity=Severity.WARNING,
            message="Unknown command output format",
        )],
    )


def _failed(command: SwiftPackageCommand, exc: ParseError) -> PackageAnalysis:
    logger.debug("parser refused input: {}", exc)
    return PackageAnalysis(
        command=command,
        success=False,
        issues=[PackageIssue(
            type=IssueType.SYNTAX_ERROR,
            severity=Severity.ERROR,
            message=str(exc),
        )],
    )


def filter_issues(issues: List[PackageIssue], min_severity: Severity) -> List[PackageIssue]:
    """Keep issues at or above ``min_severity``, in their original order"""
    return [issue for issue in issues if issue.severity.rank >= min_severity.rank]


def determine_complexity(result: PackageAnalysis) -> ComplexityLevel:
    """Coarse bucket from target, dependency and issue counts"""
    targets = result.targets.count if result.targets else 0
    dependencies = result.dependencies.count if result.dependencies else 0
    issues = len(result.issues)

    if targets <= 10 and dependencies <= 5 and issues <= 2:
        return ComplexityLevel.LOW
    if 11 <= targets <= 30 and 6 <= dependencies <= 15 and 3 <= issues <= 10:
        return ComplexityLevel.MEDIUM
    return ComplexityLevel.HIGH


def estimate_index_time(result: PackageAnalysis) -> str:
    """Rough indexing-time range; dependencies weigh double"""
    targets = result.targets.count if result.targets else 0
    dependencies = result.dependencies.count if result.dependencies else 0
    score = targets + dependencies * 2

    if score < 20:
        return "5-15s"
    if score < 50:
        return "15-45s"
    if score < 100:
        return "45-90s"
    return "90s+"


class OutputAnalyzer:
    """
    Parse output and apply the CLI-side post-processing

    Usage:
        analyzer = OutputAnalyzer(min_severity=Severity.WARNING, include_metrics=True)
        result = analyzer.analyze(sys.stdin.read())
    """

    def __init__(
        self,
        command: Optional[SwiftPackageCommand] = None,
        target: Optional[str] = None,
        min_severity: Severity = Severity.INFO,
        include_metrics: bool = False,
        include_raw: bool = False,
    ):
        self.command = command
        self.target = target
        self.min_severity = min_severity
        self.include_metrics = include_metrics
        self.include_raw = include_raw

    def analyze(self, output: Union[str, bytes]) -> PackageAnalysis:
        started = time.perf_counter()
        result = parse_output(output, command=self.command, target=self.target)
        elapsed = time.perf_counter() - started

        if self.include_metrics:
            result = replace(result, metrics=PackageMetrics(
                parse_time=elapsed,
                complexity=determine_complexity(result),
                estimated_index_time=estimate_index_time(result),
            ))

        result = replace(result, issues=filter_issues(result.issues, self.min_severity))

        if self.include_raw:
            raw = output if isinstance(output, str) else bytes(output).decode("utf-8", "replace")
            result = replace(result, raw_output=raw)

        return result


def analyze(
    output: Union[str, bytes],
    command: Optional[SwiftPackageCommand] = None,
    target: Optional[str] = None,
    min_severity: Severity = Severity.INFO,
    include_metrics: bool = False,
    include_raw: bool = False,
) -> PackageAnalysis:
    """
    Convenience function

    Args:
        output: raw ``swift package`` output
        command: known producing command, or None to classify
        target: single-target filter for dump-package
        min_severity: drop issues below this severity
        include_metrics: attach parse time, complexity and index estimate
        include_raw: echo the input into ``raw_output``

    Returns:
        PackageAnalysis
    """
    analyzer = OutputAnalyzer(
        command=command,
        target=target,
        min_severity=min_severity,
        include_metrics=include_metrics,
        include_raw=include_raw,
    )
    return analyzer.analyze(output)


__all__ = [
    'OutputAnalyzer',
    'analyze',
    'parse_output',
    'filter_issues',
    'determine_complexity',
    'estimate_index_time',
]
