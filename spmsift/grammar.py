"""
spmsift/grammar.py
==================
Dependency-line grammar for ``swift package show-dependencies`` output

A line is matched against these forms, first match wins:

    1. name (1.2.3)              version in parentheses
    2. name@1.2.3                at-sign separator
    3. name [url]                bracketed source-control URL
    4. name<url@version>         angle-bracket span
    5. name                      bare name, version "unspecified"

The order matters: "pkg (1.0.0)" must never fall through to the bare-name
rule. An at-sign inside an angle-bracket span belongs to form 4.
"""

import re
from typing import Optional

from .models import ExternalDependency, DependencyType, UNSPECIFIED


# Box-drawing glyphs (plus space) used to draw the dependency tree
TREE_GLYPHS = frozenset("│├└─ ")

_LEADING_GLYPHS = re.compile(r"^[│├└─ ]+")
_PAREN_VERSION = re.compile(r" \(([^)]+)\)$")
_BRACKET_VALUE = re.compile(r" \[([^\]]+)\]$")
_ANGLE_SPAN = re.compile(r"<[^>]+>")
_REGISTRY_VERSION = re.compile(r"^[123]\.")

# Version given to form 3, which carries a URL instead of a version
SOURCE_CONTROL_VERSION = "source-control"


def is_tree_glyph(char: Optional[str]) -> bool:
    """True for a single tree-drawing character"""
    return bool(char) and char in TREE_GLYPHS


def classify_version(version: str) -> DependencyType:
    """Guess the dependency type from a version string (forms 1 and 2 only)"""
    if "registry" in version or _REGISTRY_VERSION.match(version):
        return DependencyType.REGISTRY
    if ".binary" in version or "xcframework" in version.lower():
        return DependencyType.BINARY
    return DependencyType.SOURCE_CONTROL


def _at_sign_outside_angles(text: str) -> int:
    """Index of the first '@' not inside a <...> span, or -1"""
    masked = _ANGLE_SPAN.sub(lambda m: " " * len(m.group(0)), text)
    return masked.find("@")


def parse_dependency_line(line: str) -> Optional[ExternalDependency]:
    """
    Parse one tree line into a dependency

    Args:
        line: a single line, already trimmed by the caller

    Returns:
        ExternalDependency, or None when nothing but tree glyphs remains
    """
    remainder = _LEADING_GLYPHS.sub("", line).strip()
    if not remainder:
        return None

    match = _PAREN_VERSION.search(remainder)
    if match:
        version = match.group(1)
        return ExternalDependency(
            name=remainder[:match.start()].strip(),
            version=version,
            type=classify_version(version),
        )

    at = _at_sign_outside_angles(remainder)
    if at >= 0:
        version = remainder[at + 1:]
        return ExternalDependency(
            name=remainder[:at],
            version=version,
            type=classify_version(version),
        )

    match = _BRACKET_VALUE.search(remainder)
    if match:
        return ExternalDependency(
            name=remainder[:match.start()].strip(),
            version=SOURCE_CONTROL_VERSION,
            type=DependencyType.SOURCE_CONTROL,
            url=match.group(1),
        )

    match = _ANGLE_SPAN.search(remainder)
    if match:
        payload = match.group(0)[1:-1]
        url, sep, version = payload.partition("@")
        return ExternalDependency(
            name=remainder[:match.start()].strip(),
            version=version if sep else UNSPECIFIED,
            type=DependencyType.SOURCE_CONTROL,
            url=url,
        )

    return ExternalDependency(
        name=remainder,
        version=UNSPECIFIED,
        type=DependencyType.SOURCE_CONTROL,
    )


__all__ = [
    'TREE_GLYPHS', 'SOURCE_CONTROL_VERSION',
    'is_tree_glyph', 'classify_version', 'parse_dependency_line',
]
