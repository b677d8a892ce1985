"""
spmsift/manifest.py
===================
Extractor for ``swift package dump-package`` JSON

Two manifest schemas are in the wild:

- New schema: each package dependency is ``{"sourceControl": [ {...} ]}``
  (or ``fileSystem`` / ``registry``). Optional values are zero-or-one
  element arrays.
- Legacy schema: flat ``{"name", "url", "path", "requirement"}`` objects.

Array unwrapping happens only in the ``_json_*`` helpers and
``_read_dependency``; everything after that works on ``_ManifestDependency``
with plain optional fields.

Success rule: only a ``critical`` issue fails the manifest (show-dependencies
fails on error or critical).
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from loguru import logger

from .errors import InvalidManifestError, decode_output
from .models import (
    PackageAnalysis, TargetAnalysis, TargetDetail, DependencyAnalysis,
    ExternalDependency, LocalDependency, PackageIssue, IssueType, Severity,
    DependencyType, SwiftPackageCommand, UNSPECIFIED,
)


_LIBRARY_KINDS = ("library", "static-library", "dynamic-library")

# More dependencies than this sets the circular-dependency flag
CIRCULAR_DEPENDENCY_THRESHOLD = 20

REVISION_PREFIX_LENGTH = 7


# =============================================================================
# JSON boundary helpers
# =============================================================================

def _json_first(value: Any) -> Any:
    """Unwrap a zero-or-one element array into a value or None"""
    if isinstance(value, list) and value:
        return value[0]
    return None


def _json_object(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _json_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _json_objects(value: Any) -> Optional[List[Dict[str, Any]]]:
    """A list of objects, skipping anything else; None when not a list"""
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, dict)]


def _json_range_bounds(requirement: Optional[Dict[str, Any]]) -> Optional[str]:
    """``requirement.range[0]`` rendered as "lower - upper" """
    if requirement is None:
        return None
    bounds = _json_object(_json_first(requirement.get("range")))
    if bounds is None:
        return None
    lower = _json_string(bounds.get("lowerBound"))
    upper = _json_string(bounds.get("upperBound"))
    if lower is None or upper is None:
        return None
    return f"{lower} - {upper}"


@dataclass(frozen=True)
class _ManifestDependency:
    """A package dependency after schema normalisation"""
    name: str
    version: str = UNSPECIFIED
    url: Optional[str] = None
    path: Optional[str] = None
    dependency_type: Optional[DependencyType] = None


def _name_from_url(url: str) -> str:
    return url.rstrip("/").split("/")[-1].replace(".git", "") or "unknown"


def _name_from_path(path: str) -> str:
    return path.rstrip("/").split("/")[-1] or "unknown"


def _legacy_version(requirement: Optional[Dict[str, Any]]) -> str:
    """range, then branch, then revision, then exact"""
    if requirement is None:
        return UNSPECIFIED

    version_range = requirement.get("range")
    if (isinstance(version_range, list) and version_range
            and all(isinstance(v, str) for v in version_range)):
        return ", ".join(version_range)

    branch = _json_string(requirement.get("branch"))
    if branch is not None:
        return f"branch: {branch}"

    revision = _json_string(requirement.get("revision"))
    if revision is not None:
        return f"revision: {revision[:REVISION_PREFIX_LENGTH]}"

    exact = _json_string(requirement.get("exact"))
    if exact is not None:
        return exact

    return UNSPECIFIED


def _read_dependency(entry: Dict[str, Any]) -> _ManifestDependency:
    """Normalise one ``dependencies`` entry from either schema"""
    source_control = _json_object(_json_first(entry.get("sourceControl")))
    if source_control is not None:
        identity = _json_string(source_control.get("identity"))
        if identity:
            location = _json_object(source_control.get("location")) or {}
            remote = _json_object(_json_first(location.get("remote"))) or {}
            requirement = _json_object(source_control.get("requirement"))
            return _ManifestDependency(
                name=identity,
                version=_json_range_bounds(requirement) or UNSPECIFIED,
                url=_json_string(remote.get("urlString")),
            )

    file_system = _json_object(_json_first(entry.get("fileSystem")))
    if file_system is not None:
        identity = _json_string(file_system.get("identity"))
        path = _json_string(file_system.get("path"))
        if identity and path:
            return _ManifestDependency(name=identity, path=path)

    registry = _json_object(_json_first(entry.get("registry")))
    if registry is not None:
        identity = _json_string(registry.get("identity"))
        if identity:
            requirement = _json_object(registry.get("requirement"))
            return _ManifestDependency(
                name=identity,
                version=_json_range_bounds(requirement) or UNSPECIFIED,
                dependency_type=DependencyType.REGISTRY,
            )

    # Legacy flat object
    url = _json_string(entry.get("url"))
    path = _json_string(entry.get("path"))
    name = _json_string(entry.get("name"))
    if url is not None:
        return _ManifestDependency(
            name=name or _name_from_url(url),
            version=_legacy_version(_json_object(entry.get("requirement"))),
            url=url,
        )
    if path is not None:
        return _ManifestDependency(
            name=name or _name_from_path(path), path=path,
        )
    return _ManifestDependency(name="")


def classify_url(url: str) -> DependencyType:
    """Type of a URL-bearing dependency"""
    if url.endswith(".binary"):
        return DependencyType.BINARY
    if "@swift-package-registry" in url:
        return DependencyType.REGISTRY
    return DependencyType.SOURCE_CONTROL


def read_target_dependencies(target: Dict[str, Any]) -> Tuple[List[str], Set[str]]:
    """
    Resolve the dependency names of one target

    Handles plain name strings and ``{"product": [...]}`` /
    ``{"byName": [...]}`` objects.

    Returns:
        (product names in declaration order, owning package names)
    """
    products: List[str] = []
    packages: Set[str] = set()

    raw = target.get("dependencies")
    if not isinstance(raw, list):
        return products, packages

    for item in raw:
        if isinstance(item, str):
            products.append(item)
            packages.add(item)
            continue
        if not isinstance(item, dict):
            continue

        product = item.get("product")
        by_name = item.get("byName")
        if isinstance(product, list) and product and isinstance(product[0], str):
            products.append(product[0])
            if len(product) > 1 and isinstance(product[1], str):
                packages.add(product[1])
            else:
                packages.add(product[0])
        elif isinstance(by_name, list) and by_name and isinstance(by_name[0], str):
            products.append(by_name[0])
            packages.add(by_name[0])

    return products, packages


def read_target_platforms(target: Dict[str, Any]) -> List[str]:
    """Platform names from ``settings[].condition.platformNames``"""
    platforms: List[str] = []
    for setting in _json_objects(target.get("settings")) or []:
        condition = _json_object(setting.get("condition"))
        if condition is None:
            continue
        names = condition.get("platformNames")
        if isinstance(names, list):
            platforms.extend(n for n in names if isinstance(n, str))
    return platforms


# =============================================================================
# Parser
# =============================================================================

class DumpPackageParser:
    """
    dump-package parser

    Usage:
        result = DumpPackageParser().parse(json_text)
        result = DumpPackageParser().parse(json_text, target_filter="MyTarget")
    """

    def parse(
        self,
        output: Union[str, bytes],
        target_filter: Optional[str] = None,
    ) -> PackageAnalysis:
        """
        Parse dump-package JSON

        Args:
            output: manifest JSON text or UTF-8 bytes
            target_filter: restrict targets, dependencies and issues to one target

        Returns:
            PackageAnalysis. Malformed JSON yields success=False with a
            single syntax_error issue.

        Raises:
            InvalidEncodingError: bytes are not UTF-8
            InvalidManifestError: the JSON root is not an object
        """
        text = decode_output(output)
        try:
            manifest = json.loads(text)
        except (ValueError, RecursionError) as exc:
            logger.debug("dump-package JSON did not parse: {}", exc)
            return PackageAnalysis(
                command=SwiftPackageCommand.DUMP_PACKAGE,
                success=False,
                issues=[PackageIssue(
                    type=IssueType.SYNTAX_ERROR,
                    severity=Severity.ERROR,
                    message=f"Failed to parse Package.swift JSON: {exc}",
                )],
            )

        if not isinstance(manifest, dict):
            raise InvalidManifestError(type(manifest).__name__)

        return self._parse_manifest(manifest, target_filter)

    def _parse_manifest(
        self, manifest: Dict[str, Any], target_filter: Optional[str]
    ) -> PackageAnalysis:
        issues: List[PackageIssue] = []

        targets, target_issues = self._parse_targets(manifest, target_filter)
        issues.extend(target_issues)

        dependencies, dependency_issues = self._parse_dependencies(manifest, target_filter)
        issues.extend(dependency_issues)

        issues.extend(self._validate_package(manifest))

        if target_filter is not None:
            issues = [i for i in issues if i.target is None or i.target == target_filter]

        return PackageAnalysis(
            command=SwiftPackageCommand.DUMP_PACKAGE,
            success=all(i.severity != Severity.CRITICAL for i in issues),
            targets=targets,
            dependencies=dependencies,
            issues=issues,
        )

    # -------------------------------------------------------------------------
    # Targets
    # -------------------------------------------------------------------------

    def _parse_targets(
        self, manifest: Dict[str, Any], target_filter: Optional[str]
    ) -> Tuple[TargetAnalysis, List[PackageIssue]]:
        """Count and categorise targets"""
        raw_targets = _json_objects(manifest.get("targets"))
        if raw_targets is None:
            return TargetAnalysis(count=0), [PackageIssue(
                type=IssueType.MISSING_TARGET,
                severity=Severity.WARNING,
                message="No targets found in package",
            )]

        issues: List[PackageIssue] = []
        details: List[TargetDetail] = []
        executables: List[str] = []
        libraries: List[str] = []
        platforms: List[str] = []
        has_test_targets = False

        for target in raw_targets:
            name = _json_string(target.get("name"))
            if name is None:
                continue
            if target_filter is not None and name != target_filter:
                continue

            kind = _json_string(target.get("type")) or "unknown"
            target_platforms = read_target_platforms(target)
            products, _ = read_target_dependencies(target)
            details.append(TargetDetail(
                name=name,
                type=kind,
                platforms=target_platforms,
                dependencies=products,
            ))

            lowered = kind.lower()
            if lowered == "executable":
                executables.append(name)
            elif lowered in _LIBRARY_KINDS:
                libraries.append(name)
            elif lowered == "test":
                has_test_targets = True

            for platform in target_platforms:
                if platform not in platforms:
                    platforms.append(platform)

            issues.extend(self._validate_target(target, name))

        if target_filter is not None and not details:
            logger.debug("target filter {!r} matched no targets", target_filter)
            return TargetAnalysis(count=0, filtered_target=target_filter, targets=[]), []

        analysis = TargetAnalysis(
            count=len(details),
            has_test_targets=has_test_targets,
            platforms=platforms,
            executables=executables,
            libraries=libraries,
            filtered_target=target_filter,
            targets=details or None,
        )
        return analysis, issues

    def _validate_target(self, target: Dict[str, Any], name: str) -> List[PackageIssue]:
        """Non-test targets with an explicitly empty dependency list"""
        dependencies = target.get("dependencies")
        if isinstance(dependencies, list) and not dependencies and "test" not in name.lower():
            return [PackageIssue(
                type=IssueType.MISSING_TARGET,
                severity=Severity.INFO,
                target=name,
                message=f"Target '{name}' has no dependencies",
            )]
        return []

    # -------------------------------------------------------------------------
    # Dependencies
    # -------------------------------------------------------------------------

    def _parse_dependencies(
        self, manifest: Dict[str, Any], target_filter: Optional[str]
    ) -> Tuple[DependencyAnalysis, List[PackageIssue]]:
        """External and local package dependencies, optionally per target"""
        wanted: Optional[Set[str]] = None
        if target_filter is not None:
            wanted = self._target_dependency_names(manifest, target_filter)
            if not wanted:
                return DependencyAnalysis(), []

        entries = _json_objects(manifest.get("dependencies"))
        if entries is None:
            return DependencyAnalysis(), []

        issues: List[PackageIssue] = []
        external: List[ExternalDependency] = []
        local: List[LocalDependency] = []

        for entry in entries:
            dep = _read_dependency(entry)
            issues.extend(self._validate_dependency(entry))

            if not dep.name:
                continue
            if wanted is not None and dep.name not in wanted:
                continue

            if dep.url is not None:
                external.append(ExternalDependency(
                    name=dep.name,
                    version=dep.version,
                    type=classify_url(dep.url),
                    url=dep.url,
                ))
            elif dep.dependency_type is not None:
                external.append(ExternalDependency(
                    name=dep.name,
                    version=dep.version,
                    type=dep.dependency_type,
                ))
            elif dep.path is not None:
                local.append(LocalDependency(name=dep.name, path=dep.path))

        total = len(external) + len(local)
        circular = total > CIRCULAR_DEPENDENCY_THRESHOLD
        if circular:
            issues.append(PackageIssue(
                type=IssueType.CIRCULAR_IMPORT,
                severity=Severity.ERROR,
                message="Potential circular dependencies detected",
            ))

        logger.debug("dump-package: {} external, {} local dependencies", len(external), len(local))

        analysis = DependencyAnalysis(
            count=total,
            external=external,
            local=local,
            circular_imports=circular,
        )
        return analysis, issues

    def _target_dependency_names(self, manifest: Dict[str, Any], target_filter: str) -> Set[str]:
        """Product and package names a single target depends on"""
        for target in _json_objects(manifest.get("targets")) or []:
            if target.get("name") == target_filter:
                products, packages = read_target_dependencies(target)
                return set(products) | packages
        return set()

    def _validate_dependency(self, entry: Dict[str, Any]) -> List[PackageIssue]:
        """Structural checks on one raw dependency entry"""
        source_control = _json_object(_json_first(entry.get("sourceControl")))
        if source_control is not None:
            if "identity" not in source_control:
                return [PackageIssue(
                    type=IssueType.DEPENDENCY_ERROR,
                    severity=Severity.ERROR,
                    message="Source control dependency missing identity",
                )]
            return []

        if "fileSystem" in entry or "registry" in entry:
            return []

        issues: List[PackageIssue] = []
        if "url" not in entry and "path" not in entry:
            issues.append(PackageIssue(
                type=IssueType.DEPENDENCY_ERROR,
                severity=Severity.ERROR,
                message="Dependency has neither URL nor path",
            ))

        requirement = _json_object(entry.get("requirement")) or {}
        version_range = requirement.get("range")
        if isinstance(version_range, list) and len(version_range) > 2:
            issues.append(PackageIssue(
                type=IssueType.VERSION_CONFLICT,
                severity=Severity.WARNING,
                message="Complex version range may cause resolution issues",
            ))
        return issues

    # -------------------------------------------------------------------------
    # Whole manifest
    # -------------------------------------------------------------------------

    def _validate_package(self, manifest: Dict[str, Any]) -> List[PackageIssue]:
        issues: List[PackageIssue] = []
        if "name" not in manifest:
            issues.append(PackageIssue(
                type=IssueType.SYNTAX_ERROR,
                severity=Severity.CRITICAL,
                message="Package missing required 'name' field",
            ))
        if "products" not in manifest:
            issues.append(PackageIssue(
                type=IssueType.MISSING_TARGET,
                severity=Severity.WARNING,
                message="Package defines no products",
            ))
        return issues


def parse_dump_package(
    output: Union[str, bytes],
    target_filter: Optional[str] = None,
) -> PackageAnalysis:
    """Convenience wrapper around DumpPackageParser"""
    return DumpPackageParser().parse(output, target_filter=target_filter)


__all__ = [
    'DumpPackageParser',
    'parse_dump_package',
    'classify_url',
    'read_target_dependencies',
    'read_target_platforms',
    'CIRCULAR_DEPENDENCY_THRESHOLD',
]
