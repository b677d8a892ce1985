"""
spmsift/models.py
=================
Shared diagnostic model

Every parser produces these types and every consumer (reporters, filters)
reads them. The wire format (``to_dict``) uses camelCase keys;
``from_dict`` reverses it losslessly.

Design rules:
- No imports from other spmsift modules (avoids import cycles)
- Entities are frozen once a parser returns them. The freeze is shallow:
  list fields stay plain lists, so the types are not hashable and callers
  derive new results with ``dataclasses.replace`` instead of editing lists
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any, Tuple


# =============================================================================
# Enums
# =============================================================================

class SwiftPackageCommand(Enum):
    """Sub-command that produced the analysed output"""
    DUMP_PACKAGE = "dump-package"
    SHOW_DEPENDENCIES = "show-dependencies"
    RESOLVE = "resolve"
    DESCRIBE = "describe"
    UPDATE = "update"
    UNKNOWN = "unknown"


class DependencyType(Enum):
    """How an external dependency is fetched"""
    SOURCE_CONTROL = "source-control"
    BINARY = "binary"
    REGISTRY = "registry"


class IssueType(Enum):
    """Issue taxonomy"""
    CIRCULAR_IMPORT = "circular_import"
    MISSING_TARGET = "missing_target"
    VERSION_CONFLICT = "version_conflict"
    PLATFORM_MISMATCH = "platform_mismatch"
    SYNTAX_ERROR = "syntax_error"
    DEPENDENCY_ERROR = "dependency_error"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class Severity(Enum):
    """Issue severity, totally ordered: info < warning < error < critical"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER.index(self)

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank


class ComplexityLevel(Enum):
    """Coarse size bucket used by metrics"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"


class OutputFormat(Enum):
    """CLI output format"""
    JSON = "json"
    SUMMARY = "summary"
    DETAILED = "detailed"


SEVERITY_ORDER: Tuple[Severity, ...] = (
    Severity.INFO, Severity.WARNING, Severity.ERROR, Severity.CRITICAL,
)

# Version placeholder for dependencies with no recoverable requirement
UNSPECIFIED = "unspecified"


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None values so optional fields are omitted on the wire"""
    return {k: v for k, v in data.items() if v is not None}


# =============================================================================
# Dependencies
# =============================================================================

@dataclass(frozen=True)
class ExternalDependency:
    """Dependency fetched from version control, a binary artifact or a registry"""
    name: str
    version: str
    type: DependencyType
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "name": self.name,
            "version": self.version,
            "type": self.type.value,
            "url": self.url,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExternalDependency":
        return cls(
            name=data["name"],
            version=data["version"],
            type=DependencyType(data["type"]),
            url=data.get("url"),
        )


@dataclass(frozen=True)
class LocalDependency:
    """Dependency resolved from a filesystem path"""
    name: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "path": self.path}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalDependency":
        return cls(name=data["name"], path=data["path"])


@dataclass(frozen=True)
class VersionConflict:
    """One dependency name seen with several version strings"""
    dependency: str
    required_versions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dependency": self.dependency,
            "requiredVersions": list(self.required_versions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionConflict":
        return cls(
            dependency=data["dependency"],
            required_versions=list(data.get("requiredVersions", [])),
        )


@dataclass(frozen=True)
class DependencyAnalysis:
    """
    Dependency summary

    ``count`` is external + local. ``circular_imports`` is a heuristic flag,
    never the result of a graph search.
    """
    count: int = 0
    external: List[ExternalDependency] = field(default_factory=list)
    local: List[LocalDependency] = field(default_factory=list)
    circular_imports: bool = False
    version_conflicts: List[VersionConflict] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "external": [d.to_dict() for d in self.external],
            "local": [d.to_dict() for d in self.local],
            "circularImports": self.circular_imports,
            "versionConflicts": [c.to_dict() for c in self.version_conflicts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DependencyAnalysis":
        return cls(
            count=data.get("count", 0),
            external=[ExternalDependency.from_dict(d) for d in data.get("external", [])],
            local=[LocalDependency.from_dict(d) for d in data.get("local", [])],
            circular_imports=data.get("circularImports", False),
            version_conflicts=[
                VersionConflict.from_dict(c) for c in data.get("versionConflicts", [])
            ],
        )


# =============================================================================
# Targets
# =============================================================================

@dataclass(frozen=True)
class TargetDetail:
    """Per-target detail: raw kind string, platform conditions, dependency names"""
    name: str
    type: str
    platforms: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "platforms": list(self.platforms),
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TargetDetail":
        return cls(
            name=data["name"],
            type=data["type"],
            platforms=list(data.get("platforms", [])),
            dependencies=list(data.get("dependencies", [])),
        )


@dataclass(frozen=True)
class TargetAnalysis:
    """Target summary of a manifest"""
    count: int
    has_test_targets: bool = False
    platforms: List[str] = field(default_factory=list)
    executables: List[str] = field(default_factory=list)
    libraries: List[str] = field(default_factory=list)
    filtered_target: Optional[str] = None
    targets: Optional[List[TargetDetail]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "count": self.count,
            "hasTestTargets": self.has_test_targets,
            "platforms": list(self.platforms),
            "executables": list(self.executables),
            "libraries": list(self.libraries),
            "filteredTarget": self.filtered_target,
            "targets": (
                [t.to_dict() for t in self.targets] if self.targets is not None else None
            ),
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TargetAnalysis":
        targets = data.get("targets")
        return cls(
            count=data["count"],
            has_test_targets=data.get("hasTestTargets", False),
            platforms=list(data.get("platforms", [])),
            executables=list(data.get("executables", [])),
            libraries=list(data.get("libraries", [])),
            filtered_target=data.get("filteredTarget"),
            targets=[TargetDetail.from_dict(t) for t in targets] if targets is not None else None,
        )


# =============================================================================
# Issues, metrics, result
# =============================================================================

@dataclass(frozen=True)
class PackageIssue:
    """A single diagnostic"""
    type: IssueType
    severity: Severity
    message: str
    target: Optional[str] = None
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "type": self.type.value,
            "severity": self.severity.value,
            "target": self.target,
            "message": self.message,
            "line": self.line,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageIssue":
        return cls(
            type=IssueType(data["type"]),
            severity=Severity(data["severity"]),
            message=data["message"],
            target=data.get("target"),
            line=data.get("line"),
        )


@dataclass(frozen=True)
class PackageMetrics:
    """Timing and size estimates attached by the CLI layer"""
    parse_time: float = 0.0
    complexity: ComplexityLevel = ComplexityLevel.UNKNOWN
    estimated_index_time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "parseTime": self.parse_time,
            "complexity": self.complexity.value,
            "estimatedIndexTime": self.estimated_index_time,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageMetrics":
        return cls(
            parse_time=data.get("parseTime", 0.0),
            complexity=ComplexityLevel(data.get("complexity", "unknown")),
            estimated_index_time=data.get("estimatedIndexTime"),
        )


@dataclass(frozen=True)
class PackageAnalysis:
    """
    Top-level result

    ``issues`` keeps detection order. Parsers never mutate a result after
    returning it; the CLI derives new instances with ``dataclasses.replace``
    to attach metrics, filter issues and echo the raw input.
    """
    command: SwiftPackageCommand
    success: bool
    targets: Optional[TargetAnalysis] = None
    dependencies: Optional[DependencyAnalysis] = None
    issues: List[PackageIssue] = field(default_factory=list)
    metrics: Optional[PackageMetrics] = None
    raw_output: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "command": self.command.value,
            "success": self.success,
            "targets": self.targets.to_dict() if self.targets else None,
            "dependencies": self.dependencies.to_dict() if self.dependencies else None,
            "issues": [i.to_dict() for i in self.issues],
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "rawOutput": self.raw_output,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageAnalysis":
        targets = data.get("targets")
        dependencies = data.get("dependencies")
        metrics = data.get("metrics")
        return cls(
            command=SwiftPackageCommand(data["command"]),
            success=data["success"],
            targets=TargetAnalysis.from_dict(targets) if targets is not None else None,
            dependencies=(
                DependencyAnalysis.from_dict(dependencies) if dependencies is not None else None
            ),
            issues=[PackageIssue.from_dict(i) for i in data.get("issues", [])],
            metrics=PackageMetrics.from_dict(metrics) if metrics is not None else None,
            raw_output=data.get("rawOutput"),
        )

    def has_severity(self, *severities: Severity) -> bool:
        """True when any issue carries one of the given severities"""
        return any(issue.severity in severities for issue in self.issues)


__all__ = [
    'SwiftPackageCommand', 'DependencyType', 'IssueType', 'Severity',
    'ComplexityLevel', 'OutputFormat', 'SEVERITY_ORDER', 'UNSPECIFIED',
    'ExternalDependency', 'LocalDependency', 'VersionConflict',
    'DependencyAnalysis', 'TargetDetail', 'TargetAnalysis',
    'PackageIssue', 'PackageMetrics', 'PackageAnalysis',
]
