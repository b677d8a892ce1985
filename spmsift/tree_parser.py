"""
spmsift/tree_parser.py
======================
Parser for ``swift package show-dependencies`` text output

One pass over the lines collects dependencies, local-path candidates and
per-line issues. Whole-input heuristics run afterwards:
- version conflicts (same name, several version strings)
- branch pins (main / master / develop)
- circular dependencies (keyword scan or a repeated name; not a graph search)
"""

import re
from typing import Dict, List, Tuple, Union

from loguru import logger

from .errors import decode_output
from .grammar import parse_dependency_line, is_tree_glyph
from .models import (
    PackageAnalysis, DependencyAnalysis, ExternalDependency, LocalDependency,
    PackageIssue, VersionConflict, IssueType, Severity, SwiftPackageCommand,
    UNSPECIFIED,
)


_HEADER_MARKERS = ("Dependencies:", "Package:")
_PROBLEM_WORDS = ("error", "failed", "warning")
_BRANCH_WORDS = ("main", "master", "develop")
_CYCLE_WORDS = ("circular", "cycle", "loop")


class ShowDependenciesParser:
    """
    show-dependencies parser

    The parser holds no state between calls; ``parse`` is a pure function of
    its input.
    """

    def parse(self, output: Union[str, bytes]) -> PackageAnalysis:
        """Parse tree output into a PackageAnalysis"""
        text = decode_output(output)
        lines = text.splitlines()

        dependencies, local, issues = self._parse_tree(lines)
        conflicts, conflict_issues = self._check_versions(dependencies)
        issues.extend(conflict_issues)

        # Dependencies without any version information are path-like entries
        external: List[ExternalDependency] = []
        for dep in dependencies:
            if dep.url is not None or (dep.version and dep.version != UNSPECIFIED):
                external.append(dep)
            elif dep.version == UNSPECIFIED:
                local.append(LocalDependency(name=dep.name, path=dep.name))

        circular = self._check_circular(text, lines)
        if circular:
            issues.append(PackageIssue(
                type=IssueType.CIRCULAR_IMPORT,
                severity=Severity.ERROR,
                message="Circular dependency detected in package graph",
            ))

        logger.debug(
            "show-dependencies: {} lines, {} external, {} local, {} issues",
            len(lines), len(external), len(local), len(issues),
        )

        analysis = DependencyAnalysis(
            count=len(external) + len(local),
            external=external,
            local=local,
            circular_imports=circular,
            version_conflicts=conflicts,
        )
        has_errors = any(
            issue.severity in (Severity.ERROR, Severity.CRITICAL) for issue in issues
        )
        return PackageAnalysis(
            command=SwiftPackageCommand.SHOW_DEPENDENCIES,
            success=not has_errors,
            dependencies=analysis,
            issues=issues,
        )

    def _parse_tree(
        self, lines: List[str]
    ) -> Tuple[List[ExternalDependency], List[LocalDependency], List[PackageIssue]]:
        """Single pass: dependencies, local candidates, per-line issues"""
        dependencies: List[ExternalDependency] = []
        local: List[LocalDependency] = []
        issues: List[PackageIssue] = []

        for line in lines:
            trimmed = line.strip()
            lowered = trimmed.lower()

            if (not trimmed
                    or any(marker in trimmed for marker in _HEADER_MARKERS)
                    or "no dependencies" in lowered):
                continue

            if any(word in lowered for word in _PROBLEM_WORDS):
                issues.append(PackageIssue(
                    type=IssueType.DEPENDENCY_ERROR,
                    severity=Severity.ERROR if "error" in lowered else Severity.WARNING,
                    message=trimmed,
                ))
                continue

            dep = parse_dependency_line(trimmed)
            if dep is not None:
                dependencies.append(dep)
            # Only reached when the grammar rejects a line. The bare-name form accepts
            # any non-empty remainder, so path-like lines normally arrive here as
            # "unspecified" dependencies and become local in parse().
            elif not is_tree_glyph(trimmed[0]) and re.search(r"[/\\]", trimmed):
                local.append(LocalDependency(name=trimmed, path=trimmed))

        return dependencies, local, issues

    def _check_versions(
        self, dependencies: List[ExternalDependency]
    ) -> Tuple[List[VersionConflict], List[PackageIssue]]:
        """Multiple versions per name, and branch-pinned versions"""
        conflicts: List[VersionConflict] = []
        issues: List[PackageIssue] = []

        groups: Dict[str, List[ExternalDependency]] = {}
        for dep in dependencies:
            groups.setdefault(dep.name, []).append(dep)

        for name, deps in groups.items():
            versions = list(dict.fromkeys(d.version for d in deps))
            if len(versions) > 1:
                conflicts.append(VersionConflict(dependency=name, required_versions=versions))
                issues.append(PackageIssue(
                    type=IssueType.VERSION_CONFLICT,
                    severity=Severity.WARNING,
                    message=f"Multiple versions of {name}: {', '.join(versions)}",
                ))

            for dep in deps:
                lowered = dep.version.lower()
                if any(word in lowered for word in _BRANCH_WORDS):
                    issues.append(PackageIssue(
                        type=IssueType.VERSION_CONFLICT,
                        severity=Severity.INFO,
                        target=dep.name,
                        message=f"Using branch '{dep.version}' may cause instability",
                    ))

        return conflicts, issues

    def _check_circular(self, text: str, lines: List[str]) -> bool:
        """Keyword scan, then a repeated dependency name anywhere in the input"""
        lowered = text.lower()
        if any(word in lowered for word in _CYCLE_WORDS):
            logger.debug("circular keyword found in show-dependencies output")
            return True

        seen = set()
        for line in lines:
            dep = parse_dependency_line(line.strip())
            if dep is None:
                continue
            if dep.name in seen:
                logger.debug("dependency {} appears more than once", dep.name)
                return True
            seen.add(dep.name)
        return False


def parse_show_dependencies(output: Union[str, bytes]) -> PackageAnalysis:
    """Convenience wrapper around ShowDependenciesParser"""
    return ShowDependenciesParser().parse(output)


__all__ = [
    'ShowDependenciesParser',
    'parse_show_dependencies',
]
