"""
spmsift - Swift Package Manager output analyser
===============================================

Turns the human-oriented output of ``swift package`` sub-commands into one
structured diagnostic model:
1. dump-package: dual-schema manifest extraction (targets, dependencies)
2. show-dependencies: tree grammar, conflict and circular heuristics
3. resolve / describe / update: line-scanning parsers
4. Output: full JSON, summary, detailed

Usage:
    # CLI
    swift package dump-package | spmsift
    swift package show-dependencies | spmsift --format summary

    # Python API
    from spmsift import analyze, Severity

    result = analyze(text, min_severity=Severity.WARNING)
    for issue in result.issues:
        print(f"[{issue.severity.value}] {issue.message}")
"""

from loguru import logger

__version__ = "1.0.0"

# Library code stays quiet until the CLI configures logging
logger.disable("spmsift")

# Models
from .models import (
    # Enums
    SwiftPackageCommand, DependencyType, IssueType, Severity,
    ComplexityLevel, OutputFormat,

    # Data classes
    ExternalDependency, LocalDependency, VersionConflict, DependencyAnalysis,
    TargetDetail, TargetAnalysis, PackageIssue, PackageMetrics, PackageAnalysis,
    SEVERITY_ORDER, UNSPECIFIED,
)

# Errors
from .errors import (
    SpmsiftError, ParseError, InvalidEncodingError, InvalidManifestError, ConfigError,
)

# Parsers
from .grammar import parse_dependency_line, classify_version
from .tree_parser import ShowDependenciesParser, parse_show_dependencies
from .manifest import DumpPackageParser, parse_dump_package
from .scanners import ResolveParser, DescribeParser, UpdateParser
from .detector import CommandDetector

# Analyzer
from .analyzer import (
    OutputAnalyzer, analyze, parse_output, filter_issues,
    determine_complexity, estimate_index_time,
)

# Reporters
from .reporters import JsonReporter, SummaryReporter, DetailedReporter, get_reporter

# Config
from .config import SpmsiftConfig

# CLI
from .cli import main as cli_main

__all__ = [
    # Version
    '__version__',

    # Enums
    'SwiftPackageCommand', 'DependencyType', 'IssueType', 'Severity',
    'ComplexityLevel', 'OutputFormat',

    # Models
    'ExternalDependency', 'LocalDependency', 'VersionConflict', 'DependencyAnalysis',
    'TargetDetail', 'TargetAnalysis', 'PackageIssue', 'PackageMetrics', 'PackageAnalysis',
    'SEVERITY_ORDER', 'UNSPECIFIED',

    # Errors
    'SpmsiftError', 'ParseError', 'InvalidEncodingError', 'InvalidManifestError', 'ConfigError',

    # Parsers
    'parse_dependency_line', 'classify_version',
    'ShowDependenciesParser', 'parse_show_dependencies',
    'DumpPackageParser', 'parse_dump_package',
    'ResolveParser', 'DescribeParser', 'UpdateParser',
    'CommandDetector',

    # Analyzer
    'OutputAnalyzer', 'analyze', 'parse_output', 'filter_issues',
    'determine_complexity', 'estimate_index_time',

    # Reporters
    'JsonReporter', 'SummaryReporter', 'DetailedReporter', 'get_reporter',

    # Config
    'SpmsiftConfig',

    # CLI
    'cli_main',
]
