"""
spmsift/scanners.py
===================
Line-scanning parsers for resolve / describe / update output

These commands print free-form progress text with no structure worth a
grammar. Each line is checked for keywords independently.
"""

import re
from typing import List, Optional, Union

from loguru import logger

from .errors import decode_output
from .models import (
    PackageAnalysis, DependencyAnalysis, ExternalDependency, PackageIssue,
    PackageMetrics, IssueType, Severity, DependencyType, SwiftPackageCommand,
)


class Patterns:
    """Compiled patterns shared by the scanners"""
    RESOLVE_NAMES = [
        re.compile(r"Resolving (\S+)", re.IGNORECASE),
        re.compile(r"Resolved (\S+)", re.IGNORECASE),
        re.compile(r"error: (\S+)", re.IGNORECASE),
        re.compile(r"failed to resolve (\S+)", re.IGNORECASE),
    ]
    SECONDS = re.compile(r"(\d+(?:\.\d*)?)\s*seconds?")
    MILLISECONDS = re.compile(r"(\d+)\s*ms")
    PACKAGE_NAME = re.compile(r"^package name:\s*", re.IGNORECASE)
    PACKAGE_VERSION = re.compile(r"^package version:\s*", re.IGNORECASE)


def _contains_any(text: str, words) -> bool:
    return any(word in text for word in words)


# =============================================================================
# resolve
# =============================================================================

class ResolveParser:
    """``swift package resolve`` output"""

    COMPLETION_MARKERS = ("Resolve completed", "All packages resolved")

    def parse(self, output: Union[str, bytes]) -> PackageAnalysis:
        lines = decode_output(output).splitlines()
        issues: List[PackageIssue] = []
        resolved: List[str] = []
        download_time = 0.0
        success = True

        for line in lines:
            trimmed = line.strip()
            lowered = trimmed.lower()

            if "resolved" in lowered:
                name = self._extract_package_name(trimmed)
                if name:
                    resolved.append(name)

            if _contains_any(lowered, ("error", "failed", "cannot resolve")):
                success = False
                issues.append(PackageIssue(
                    type=IssueType.DEPENDENCY_ERROR,
                    severity=Severity.ERROR,
                    message=trimmed,
                ))

            if "seconds" in trimmed or "ms" in trimmed:
                download_time += self._extract_download_time(trimmed)

            if _contains_any(lowered, ("network", "connection", "timeout")):
                issues.append(PackageIssue(
                    type=IssueType.NETWORK_ERROR,
                    severity=Severity.ERROR,
                    message=trimmed,
                ))

            if _contains_any(lowered, ("conflict", "incompatible", "requirement")):
                issues.append(PackageIssue(
                    type=IssueType.VERSION_CONFLICT,
                    severity=Severity.WARNING,
                    message=trimmed,
                ))

        completed = any(_contains_any(line, self.COMPLETION_MARKERS) for line in lines)
        if not completed and not any(i.type == IssueType.DEPENDENCY_ERROR for i in issues):
            issues.append(PackageIssue(
                type=IssueType.DEPENDENCY_ERROR,
                severity=Severity.INFO,
                message="Resolution may not have completed successfully",
            ))

        logger.debug("resolve: {} packages, {:.1f}s download time", len(resolved), download_time)

        return PackageAnalysis(
            command=SwiftPackageCommand.RESOLVE,
            success=success,
            dependencies=DependencyAnalysis(
                count=len(resolved),
                external=[
                    ExternalDependency(name=n, version="resolved", type=DependencyType.SOURCE_CONTROL)
                    for n in resolved
                ],
            ),
            issues=issues,
            metrics=PackageMetrics(
                estimated_index_time=f"{download_time:.1f}s" if download_time > 0 else None,
            ),
        )

    def _extract_package_name(self, line: str) -> Optional[str]:
        for pattern in Patterns.RESOLVE_NAMES:
            match = pattern.search(line)
            if match:
                return match.group(1)
        return None

    def _extract_download_time(self, line: str) -> float:
        """'Downloaded in 2.3 seconds' -> 2.3, 'Took 150ms' -> 0.15"""
        match = Patterns.SECONDS.search(line)
        if match:
            return float(match.group(1))
        match = Patterns.MILLISECONDS.search(line)
        if match:
            return int(match.group(1)) / 1000.0
        return 0.0


# =============================================================================
# describe
# =============================================================================

class DescribeParser:
    """
    ``swift package describe`` output

    Only the package name feeds the result: success means a name was found.
    Version and platform lines are traced at debug level and not modelled.
    """

    def parse(self, output: Union[str, bytes]) -> PackageAnalysis:
        issues: List[PackageIssue] = []
        package_name: Optional[str] = None
        package_version: Optional[str] = None
        platform_lines = 0

        for line in decode_output(output).splitlines():
            trimmed = line.strip()
            lowered = trimmed.lower()

            if Patterns.PACKAGE_NAME.match(trimmed):
                package_name = Patterns.PACKAGE_NAME.sub("", trimmed).strip()
            if Patterns.PACKAGE_VERSION.match(trimmed):
                package_version = Patterns.PACKAGE_VERSION.sub("", trimmed).strip()
            if "platform:" in lowered or "platforms:" in lowered:
                platform_lines += 1

            if "error" in lowered:
                issues.append(PackageIssue(
                    type=IssueType.SYNTAX_ERROR,
                    severity=Severity.ERROR,
                    message=trimmed,
                ))

        logger.debug(
            "describe: name={!r} version={!r} platform lines={}",
            package_name, package_version, platform_lines,
        )

        return PackageAnalysis(
            command=SwiftPackageCommand.DESCRIBE,
            success=package_name is not None,
            issues=issues,
            metrics=PackageMetrics(),
        )


# =============================================================================
# update
# =============================================================================

class UpdateParser:
    """``swift package update`` output"""

    def parse(self, output: Union[str, bytes]) -> PackageAnalysis:
        issues: List[PackageIssue] = []
        updated: List[str] = []
        success = True

        for line in decode_output(output).splitlines():
            trimmed = line.strip()
            lowered = trimmed.lower()

            if "updated" in lowered or "updating" in lowered:
                name = self._extract_package_name(trimmed)
                if name:
                    updated.append(name)

            if _contains_any(lowered, ("error", "failed", "cannot update")):
                success = False
                issues.append(PackageIssue(
                    type=IssueType.DEPENDENCY_ERROR,
                    severity=Severity.ERROR,
                    message=trimmed,
                ))

            if "network" in lowered or "connection" in lowered:
                issues.append(PackageIssue(
                    type=IssueType.NETWORK_ERROR,
                    severity=Severity.ERROR,
                    message=trimmed,
                ))

        return PackageAnalysis(
            command=SwiftPackageCommand.UPDATE,
            success=success,
            dependencies=DependencyAnalysis(
                count=len(updated),
                external=[
                    ExternalDependency(name=n, version="updated", type=DependencyType.SOURCE_CONTROL)
                    for n in updated
                ],
            ),
            issues=issues,
        )

    def _extract_package_name(self, line: str) -> Optional[str]:
        """First token that is not an 'updat...' or 'error' word"""
        for token in line.split():
            lowered = token.lower()
            if "updat" not in lowered and "error" not in lowered:
                return token
        return None


__all__ = [
    'ResolveParser',
    'DescribeParser',
    'UpdateParser',
]
