#!/usr/bin/env python3
"""
spmsift/tests.py
================
Integration tests

Run:
    python -m spmsift.tests
"""

import io
import json
import tempfile
import unittest
from dataclasses import FrozenInstanceError, replace
from pathlib import Path

from .models import (
    SwiftPackageCommand, DependencyType, IssueType, Severity, ComplexityLevel, OutputFormat,
    ExternalDependency, LocalDependency, VersionConflict, DependencyAnalysis,
    TargetDetail, TargetAnalysis, PackageIssue, PackageAnalysis, SEVERITY_ORDER,
)
from .errors import InvalidEncodingError, InvalidManifestError, ConfigError
from .grammar import parse_dependency_line, classify_version, is_tree_glyph
from .tree_parser import ShowDependenciesParser
from .manifest import DumpPackageParser
from .scanners import ResolveParser, DescribeParser, UpdateParser
from .detector import CommandDetector
from .analyzer import (
    analyze, parse_output, filter_issues, determine_complexity, estimate_index_time,
)
from .reporters import JsonReporter, SummaryReporter, DetailedReporter
from .config import SpmsiftConfig
from .cli import main, NO_INPUT_MESSAGE


SIMPLE_TREE = """\
Dependencies:
├─ SomeDependency (1.2.3)
└─ AnotherDependency (4.5.6)
"""

SIMPLE_MANIFEST = """\
{
    "name": "TestPackage",
    "platforms": {"iOS": "15.0", "macOS": "12.0"},
    "targets": [
        {"name": "TestTarget", "type": "executable", "dependencies": []}
    ],
    "dependencies": [],
    "products": [{"name": "test", "type": "executable"}]
}
"""

WORKSPACE_MANIFEST = {
    "name": "Workspace",
    "products": [],
    "targets": [
        {
            "name": "App",
            "type": "executable",
            "dependencies": [{"product": ["Logging", "swift-log", None, None]}],
        },
        {
            "name": "Core",
            "type": "library",
            "dependencies": [{"byName": ["swift-collections", None]}],
        },
        {"name": "Empty", "type": "library", "dependencies": []},
    ],
    "dependencies": [
        {"sourceControl": [{
            "identity": "swift-log",
            "location": {"remote": [{"urlString": "https://github.com/apple/swift-log.git"}]},
            "requirement": {"range": [{"lowerBound": "1.5.0", "upperBound": "2.0.0"}]},
        }]},
        {"sourceControl": [{
            "identity": "swift-collections",
            "location": {"remote": [{"urlString": "https://github.com/apple/swift-collections.git"}]},
            "requirement": {"range": [{"lowerBound": "1.0.0", "upperBound": "2.0.0"}]},
        }]},
    ],
}


# Valid JSON nested past the decoder depth limit
DEEP_MANIFEST = '{"name": "P", "products": [], "targets": ' + "[" * 100000 + "]" * 100000 + "}"


def _manifest(**overrides) -> str:
    data = {"name": "Pkg", "products": [], "targets": []}
    data.update(overrides)
    return json.dumps(data)


class _TtyInput(io.StringIO):
    def isatty(self):
        return True


# =============================================================================
# Grammar
# =============================================================================

class TestDependencyLineGrammar(unittest.TestCase):
    """show-dependencies line grammar"""

    def test_paren_version(self):
        """name (version)"""
        dep = parse_dependency_line("pkg (1.0.0)")
        self.assertEqual(dep.name, "pkg")
        self.assertEqual(dep.version, "1.0.0")
        self.assertEqual(dep.type, DependencyType.REGISTRY)
        self.assertIsNone(dep.url)

    def test_paren_wins_over_at_sign(self):
        """The parenthesised form is tried first"""
        dep = parse_dependency_line("pkg@main (4.5.6)")
        self.assertEqual(dep.name, "pkg@main")
        self.assertEqual(dep.version, "4.5.6")

    def test_tree_glyphs_stripped(self):
        dep = parse_dependency_line("│  └─ Nested (4.5.6)")
        self.assertEqual(dep.name, "Nested")
        self.assertEqual(dep.type, DependencyType.SOURCE_CONTROL)

    def test_at_sign(self):
        """name@version"""
        dep = parse_dependency_line("pkg@1.0.0")
        self.assertEqual(dep.name, "pkg")
        self.assertEqual(dep.version, "1.0.0")

    def test_bracket_url(self):
        """name [url]"""
        dep = parse_dependency_line("├─ SQLiteData [local]")
        self.assertEqual(dep.name, "SQLiteData")
        self.assertEqual(dep.url, "local")
        self.assertEqual(dep.version, "source-control")
        self.assertEqual(dep.type, DependencyType.SOURCE_CONTROL)

    def test_angle_span_with_version(self):
        """An at-sign inside <...> belongs to the angle form"""
        dep = parse_dependency_line("pkg<https://example.com/pkg@2.0.0>")
        self.assertEqual(dep.name, "pkg")
        self.assertEqual(dep.url, "https://example.com/pkg")
        self.assertEqual(dep.version, "2.0.0")
        self.assertEqual(dep.type, DependencyType.SOURCE_CONTROL)

    def test_angle_span_without_version(self):
        dep = parse_dependency_line("pkg<https://example.com/pkg>")
        self.assertEqual(dep.url, "https://example.com/pkg")
        self.assertEqual(dep.version, "unspecified")

    def test_bare_name(self):
        dep = parse_dependency_line("└─ LocalThing")
        self.assertEqual(dep.name, "LocalThing")
        self.assertEqual(dep.version, "unspecified")

    def test_glyph_only_line(self):
        """Lines with nothing but glyphs produce no dependency"""
        self.assertIsNone(parse_dependency_line("│  └─"))
        self.assertIsNone(parse_dependency_line(""))

    def test_classify_version(self):
        self.assertEqual(classify_version("2.0.0"), DependencyType.REGISTRY)
        self.assertEqual(classify_version("registry-1"), DependencyType.REGISTRY)
        self.assertEqual(classify_version("4.5.6"), DependencyType.SOURCE_CONTROL)
        self.assertEqual(classify_version("10.0.0"), DependencyType.SOURCE_CONTROL)
        self.assertEqual(classify_version("Foo.XCFramework"), DependencyType.BINARY)
        self.assertEqual(classify_version("lib.binary"), DependencyType.BINARY)

    def test_is_tree_glyph(self):
        self.assertTrue(is_tree_glyph("│"))
        self.assertTrue(is_tree_glyph("├"))
        self.assertFalse(is_tree_glyph("a"))
        self.assertFalse(is_tree_glyph(""))


# =============================================================================
# show-dependencies
# =============================================================================

class TestShowDependenciesParser(unittest.TestCase):
    """show-dependencies parser"""

    def setUp(self):
        self.parser = ShowDependenciesParser()

    def test_simple_tree(self):
        """Two top-level dependencies"""
        result = self.parser.parse(SIMPLE_TREE)

        self.assertEqual(result.command, SwiftPackageCommand.SHOW_DEPENDENCIES)
        self.assertTrue(result.success)
        self.assertEqual(result.dependencies.count, 2)
        names = sorted(d.name for d in result.dependencies.external)
        self.assertEqual(names, ["AnotherDependency", "SomeDependency"])
        self.assertEqual(result.issues, [])

    def test_version_formats(self):
        """at-sign, bracket and parenthesised forms all stay external"""
        output = (
            "├─ SwiftComposableArchitecture@1.23.1\n"
            "├─ SQLiteData [local]\n"
            "└─ Foundation (built-in)\n"
        )
        result = self.parser.parse(output)

        self.assertEqual(result.dependencies.count, 3)
        self.assertEqual(len(result.dependencies.external), 3)
        by_name = {d.name: d for d in result.dependencies.external}
        self.assertEqual(by_name["SwiftComposableArchitecture"].version, "1.23.1")
        self.assertEqual(by_name["SQLiteData"].url, "local")
        self.assertEqual(by_name["Foundation"].version, "built-in")

    def test_nested_tree(self):
        output = (
            "Dependencies:\n"
            "├─ TopLevel (1.0.0)\n"
            "│  ├─ Nested1 (2.0.0)\n"
            "│  └─ Nested2 (3.0.0)\n"
            "└─ AnotherTop (4.0.0)\n"
        )
        result = self.parser.parse(output)

        self.assertEqual(result.dependencies.count, 4)
        self.assertFalse(result.dependencies.circular_imports)
        self.assertTrue(result.success)

    def test_error_and_warning_lines(self):
        """Problem lines become issues, not dependencies"""
        output = (
            "Dependencies:\n"
            "error: Failed to resolve dependency ConflictingDep\n"
            "├─ ValidDep (1.0.0)\n"
            "warning: Some dependency has version conflicts\n"
        )
        result = self.parser.parse(output)

        self.assertFalse(result.success)
        self.assertEqual(result.dependencies.count, 1)
        self.assertEqual(len(result.issues), 2)
        self.assertTrue(all(i.type == IssueType.DEPENDENCY_ERROR for i in result.issues))
        self.assertEqual(
            [i.severity for i in result.issues], [Severity.ERROR, Severity.WARNING]
        )

    def test_no_dependencies(self):
        result = self.parser.parse("Dependencies:\nNo dependencies\n")

        self.assertTrue(result.success)
        self.assertEqual(result.dependencies.count, 0)
        self.assertEqual(result.issues, [])

    def test_version_conflict(self):
        """Same name with two versions"""
        output = (
            "├─ ConflictingDep (1.0.0)\n"
            "└─ ConflictingDep (2.0.0)\n"
        )
        result = self.parser.parse(output)

        self.assertEqual(
            result.dependencies.version_conflicts,
            [VersionConflict(dependency="ConflictingDep", required_versions=["1.0.0", "2.0.0"])],
        )
        messages = [i.message for i in result.issues if i.type == IssueType.VERSION_CONFLICT]
        self.assertEqual(messages, ["Multiple versions of ConflictingDep: 1.0.0, 2.0.0"])
        # the repeated name also trips the circular heuristic
        self.assertTrue(result.dependencies.circular_imports)
        self.assertFalse(result.success)

    def test_branch_pin(self):
        """main/master/develop versions give an info issue"""
        result = self.parser.parse("├─ Dep (main)\n└─ Other (1.0.0)\n")

        branch = [i for i in result.issues if i.severity == Severity.INFO]
        self.assertEqual(len(branch), 1)
        self.assertEqual(branch[0].target, "Dep")
        self.assertEqual(branch[0].message, "Using branch 'main' may cause instability")
        self.assertTrue(result.success)

    def test_circular_keyword(self):
        result = self.parser.parse("├─ A (1.0.0)\nCycle detected\n")

        self.assertTrue(result.dependencies.circular_imports)
        circular = [i for i in result.issues if i.type == IssueType.CIRCULAR_IMPORT]
        self.assertEqual(len(circular), 1)
        self.assertEqual(circular[0].severity, Severity.ERROR)
        self.assertEqual(circular[0].message, "Circular dependency detected in package graph")
        self.assertFalse(result.success)

    def test_repeated_name_is_circular(self):
        output = (
            "├─ A (1.0.0)\n"
            "│  └─ Shared (1.0.0)\n"
            "└─ B (1.0.0)\n"
            "   └─ Shared (1.0.0)\n"
        )
        result = self.parser.parse(output)

        self.assertTrue(result.dependencies.circular_imports)
        self.assertEqual(result.dependencies.version_conflicts, [])

    def test_bare_name_is_local(self):
        """Entries without any version become local dependencies"""
        result = self.parser.parse("└─ LocalThing\n")

        self.assertEqual(result.dependencies.external, [])
        self.assertEqual(
            result.dependencies.local, [LocalDependency(name="LocalThing", path="LocalThing")]
        )
        self.assertEqual(result.dependencies.count, 1)

    def test_path_like_line_is_local(self):
        """Path-like entries go through the bare-name form and end up local"""
        result = self.parser.parse("└─ ../LocalKit\n")

        self.assertEqual(result.dependencies.external, [])
        self.assertEqual(
            result.dependencies.local, [LocalDependency(name="../LocalKit", path="../LocalKit")]
        )

    def test_count_is_external_plus_local(self):
        result = self.parser.parse("├─ A (1.0.0)\n├─ B@2.0.0\n└─ Local\n")
        deps = result.dependencies

        self.assertEqual(deps.count, len(deps.external) + len(deps.local))
        self.assertEqual(deps.count, 3)

    def test_bytes_input(self):
        result = self.parser.parse(SIMPLE_TREE.encode("utf-8"))
        self.assertEqual(result.dependencies.count, 2)

    def test_invalid_utf8_raises(self):
        with self.assertRaises(InvalidEncodingError):
            self.parser.parse(b"\xff\xfe\xfd")


# =============================================================================
# dump-package
# =============================================================================

class TestDumpPackageParser(unittest.TestCase):
    """dump-package parser"""

    def setUp(self):
        self.parser = DumpPackageParser()

    def test_simple_package(self):
        result = self.parser.parse(SIMPLE_MANIFEST)

        self.assertEqual(result.command, SwiftPackageCommand.DUMP_PACKAGE)
        self.assertTrue(result.success)
        self.assertEqual(result.targets.count, 1)
        self.assertEqual(result.targets.executables, ["TestTarget"])
        self.assertEqual(result.dependencies.count, 0)
        self.assertEqual(result.issues, [])

    def test_legacy_range(self):
        """Legacy range requirements are joined with a comma"""
        output = _manifest(
            targets=[{"name": "Lib", "type": "library", "dependencies": ["TCA"]}],
            dependencies=[{
                "name": "swift-composable-architecture",
                "url": "https://github.com/pointfreeco/swift-composable-architecture",
                "requirement": {"range": ["1.0.0", "2.0.0"]},
            }],
        )
        result = self.parser.parse(output)

        self.assertEqual(result.dependencies.count, 1)
        dep = result.dependencies.external[0]
        self.assertEqual(dep.name, "swift-composable-architecture")
        self.assertEqual(dep.version, "1.0.0, 2.0.0")
        self.assertEqual(dep.type, DependencyType.SOURCE_CONTROL)

    def test_legacy_requirements(self):
        """branch, revision and exact requirements"""
        output = _manifest(dependencies=[
            {"url": "https://github.com/a/one.git", "requirement": {"branch": "develop"}},
            {"url": "https://github.com/a/two.git", "requirement": {"revision": "abcdef1234567"}},
            {"url": "https://github.com/a/three.git", "requirement": {"exact": "1.2.3"}},
            {"url": "https://github.com/a/four.git"},
        ])
        result = self.parser.parse(output)

        versions = {d.name: d.version for d in result.dependencies.external}
        self.assertEqual(versions, {
            "one": "branch: develop",
            "two": "revision: abcdef1",
            "three": "1.2.3",
            "four": "unspecified",
        })

    def test_legacy_local_and_url_kinds(self):
        output = _manifest(dependencies=[
            {"path": "../LocalKit/"},
            {"name": "Blob", "url": "https://example.com/Blob.binary"},
            {"name": "Acme", "url": "https://packages.example.com@swift-package-registry/acme"},
        ])
        result = self.parser.parse(output)

        self.assertEqual(result.dependencies.local, [LocalDependency(name="LocalKit", path="../LocalKit/")])
        types = {d.name: d.type for d in result.dependencies.external}
        self.assertEqual(types["Blob"], DependencyType.BINARY)
        self.assertEqual(types["Acme"], DependencyType.REGISTRY)
        self.assertEqual(result.dependencies.count, 3)

    def test_test_targets(self):
        output = _manifest(targets=[
            {"name": "Lib", "type": "library", "dependencies": ["Foo"]},
            {"name": "LibTests", "type": "test", "dependencies": ["Lib"]},
        ])
        result = self.parser.parse(output)

        self.assertEqual(result.targets.count, 2)
        self.assertTrue(result.targets.has_test_targets)
        self.assertEqual(result.targets.libraries, ["Lib"])

    def test_target_kinds(self):
        """Kind matching ignores case; unnamed targets are skipped"""
        output = _manifest(targets=[
            {"name": "Tool", "type": "Executable", "dependencies": ["A"]},
            {"name": "Static", "type": "static-library", "dependencies": ["A"]},
            {"name": "Dynamic", "type": "dynamic-library", "dependencies": ["A"]},
            {"type": "library"},
        ])
        result = self.parser.parse(output)

        self.assertEqual(result.targets.count, 3)
        self.assertEqual(result.targets.executables, ["Tool"])
        self.assertEqual(result.targets.libraries, ["Static", "Dynamic"])

    def test_target_platforms(self):
        output = _manifest(targets=[{
            "name": "App",
            "type": "executable",
            "dependencies": ["A"],
            "settings": [
                {"tool": "swift", "condition": {"platformNames": ["ios", "macos"]}},
                {"tool": "swift", "condition": {"platformNames": ["ios"]}},
                {"tool": "c"},
            ],
        }])
        result = self.parser.parse(output)

        self.assertEqual(result.targets.platforms, ["ios", "macos"])
        self.assertEqual(result.targets.targets[0].platforms, ["ios", "macos", "ios"])

    def test_target_without_dependencies(self):
        """Non-test targets with an empty list get an info issue"""
        result = self.parser.parse(_manifest(targets=[
            {"name": "Lonely", "type": "library", "dependencies": []},
            {"name": "LonelyTests", "type": "test", "dependencies": []},
        ]))

        self.assertEqual(len(result.issues), 1)
        issue = result.issues[0]
        self.assertEqual(issue.severity, Severity.INFO)
        self.assertEqual(issue.target, "Lonely")
        self.assertEqual(issue.message, "Target 'Lonely' has no dependencies")

    def test_invalid_json(self):
        for text in ("invalid json", '{"invalid": json'):
            result = self.parser.parse(text)
            self.assertFalse(result.success)
            self.assertEqual(len(result.issues), 1)
            self.assertEqual(result.issues[0].type, IssueType.SYNTAX_ERROR)
            self.assertEqual(result.issues[0].severity, Severity.ERROR)
            self.assertTrue(result.issues[0].message.startswith("Failed to parse Package.swift JSON"))
            self.assertIsNone(result.targets)
            self.assertIsNone(result.dependencies)

    def test_deeply_nested_json(self):
        """Nesting beyond the decoder's depth limit is a syntax error, not a crash"""
        result = self.parser.parse(DEEP_MANIFEST)

        self.assertFalse(result.success)
        self.assertEqual(len(result.issues), 1)
        self.assertEqual(result.issues[0].type, IssueType.SYNTAX_ERROR)
        self.assertEqual(result.issues[0].severity, Severity.ERROR)
        self.assertIsNone(result.targets)

        result = analyze(DEEP_MANIFEST)
        self.assertEqual(result.command, SwiftPackageCommand.DUMP_PACKAGE)
        self.assertFalse(result.success)

    def test_empty_package(self):
        """Name only: warnings but still a success"""
        result = self.parser.parse('{"name": "EmptyPackage"}')

        self.assertTrue(result.success)
        self.assertEqual(result.targets.count, 0)
        self.assertEqual(result.dependencies.count, 0)
        messages = [i.message for i in result.issues]
        self.assertIn("No targets found in package", messages)
        self.assertIn("Package defines no products", messages)

    def test_missing_name_is_critical(self):
        result = self.parser.parse('{"targets": [], "products": []}')

        self.assertFalse(result.success)
        critical = [i for i in result.issues if i.severity == Severity.CRITICAL]
        self.assertEqual(len(critical), 1)
        self.assertEqual(critical[0].type, IssueType.SYNTAX_ERROR)

    def test_non_object_root_raises(self):
        with self.assertRaises(InvalidManifestError):
            self.parser.parse("[1, 2, 3]")

    def test_invalid_utf8_raises(self):
        with self.assertRaises(InvalidEncodingError):
            self.parser.parse(b'{"name": "\xff"}')

    def test_new_schema_source_control(self):
        result = self.parser.parse(json.dumps(WORKSPACE_MANIFEST))

        dep = result.dependencies.external[0]
        self.assertEqual(dep.name, "swift-log")
        self.assertEqual(dep.version, "1.5.0 - 2.0.0")
        self.assertEqual(dep.url, "https://github.com/apple/swift-log.git")
        self.assertEqual(dep.type, DependencyType.SOURCE_CONTROL)
        self.assertEqual(result.dependencies.count, 2)

        app = result.targets.targets[0]
        self.assertEqual(app, TargetDetail(name="App", type="executable", dependencies=["Logging"]))

    def test_new_schema_without_range(self):
        output = _manifest(dependencies=[{"sourceControl": [{
            "identity": "swift-syntax",
            "location": {"remote": [{"urlString": "https://github.com/apple/swift-syntax"}]},
            "requirement": {"branch": ["main"]},
        }]}])
        result = self.parser.parse(output)

        self.assertEqual(result.dependencies.external[0].version, "unspecified")

    def test_new_schema_file_system_and_registry(self):
        output = _manifest(dependencies=[
            {"fileSystem": [{"identity": "localkit", "path": "/src/LocalKit"}]},
            {"registry": [{
                "identity": "acme.utils",
                "requirement": {"range": [{"lowerBound": "1.0.0", "upperBound": "2.0.0"}]},
            }]},
        ])
        result = self.parser.parse(output)

        self.assertEqual(result.dependencies.local, [LocalDependency(name="localkit", path="/src/LocalKit")])
        self.assertEqual(
            result.dependencies.external,
            [ExternalDependency(name="acme.utils", version="1.0.0 - 2.0.0", type=DependencyType.REGISTRY)],
        )
        self.assertEqual(result.issues, [])

    def test_missing_identity(self):
        """An error issue, but manifests only fail on critical"""
        output = _manifest(dependencies=[{"sourceControl": [{
            "location": {"remote": [{"urlString": "https://github.com/a/b"}]},
        }]}])
        result = self.parser.parse(output)

        self.assertTrue(result.success)
        self.assertEqual(result.dependencies.count, 0)
        self.assertEqual(result.issues[0].message, "Source control dependency missing identity")
        self.assertEqual(result.issues[0].severity, Severity.ERROR)

    def test_dependency_without_url_or_path(self):
        result = self.parser.parse(_manifest(dependencies=[{"name": "Ghost"}]))

        self.assertEqual(result.dependencies.count, 0)
        self.assertEqual(
            [i.message for i in result.issues], ["Dependency has neither URL nor path"]
        )

    def test_complex_range(self):
        output = _manifest(dependencies=[{
            "url": "https://github.com/a/b.git",
            "requirement": {"range": ["1.0.0", "1.5.0", "2.0.0"]},
        }])
        result = self.parser.parse(output)

        self.assertEqual(result.issues[0].type, IssueType.VERSION_CONFLICT)
        self.assertEqual(result.issues[0].severity, Severity.WARNING)
        self.assertEqual(result.dependencies.external[0].version, "1.0.0, 1.5.0, 2.0.0")

    def test_many_dependencies_flag_circular(self):
        """More than 20 dependencies sets the circular flag"""
        deps = [{"url": f"https://github.com/example/pkg{i}.git"} for i in range(21)]
        result = self.parser.parse(_manifest(dependencies=deps))

        self.assertEqual(result.dependencies.count, 21)
        self.assertTrue(result.dependencies.circular_imports)
        self.assertEqual(result.issues[-1].message, "Potential circular dependencies detected")
        self.assertTrue(result.success)

        result = self.parser.parse(_manifest(dependencies=deps[:20]))
        self.assertFalse(result.dependencies.circular_imports)


class TestTargetFilter(unittest.TestCase):
    """dump-package with a single-target filter"""

    def setUp(self):
        self.output = json.dumps(WORKSPACE_MANIFEST)
        self.parser = DumpPackageParser()

    def test_unfiltered(self):
        result = self.parser.parse(self.output)

        self.assertEqual(result.targets.count, 3)
        self.assertIsNone(result.targets.filtered_target)
        self.assertEqual(result.targets.executables, ["App"])
        self.assertEqual(result.targets.libraries, ["Core", "Empty"])
        self.assertEqual(result.dependencies.count, 2)
        self.assertEqual([i.target for i in result.issues], ["Empty"])

    def test_filter_by_product(self):
        """Product dependencies match through their owning package"""
        result = self.parser.parse(self.output, target_filter="App")

        self.assertEqual(result.targets.count, 1)
        self.assertEqual(result.targets.filtered_target, "App")
        self.assertEqual([t.name for t in result.targets.targets], ["App"])
        self.assertEqual([d.name for d in result.dependencies.external], ["swift-log"])
        self.assertEqual(result.issues, [])

    def test_filter_by_name(self):
        result = self.parser.parse(self.output, target_filter="Core")
        self.assertEqual([d.name for d in result.dependencies.external], ["swift-collections"])

    def test_filter_keeps_own_issues(self):
        result = self.parser.parse(self.output, target_filter="Empty")

        self.assertEqual(result.targets.count, 1)
        self.assertEqual(result.dependencies.count, 0)
        self.assertEqual([i.target for i in result.issues], ["Empty"])

    def test_filter_no_match(self):
        """Unknown target: empty analysis, no missing-targets warning"""
        result = self.parser.parse(self.output, target_filter="Nope")

        self.assertEqual(result.targets, TargetAnalysis(count=0, filtered_target="Nope", targets=[]))
        self.assertEqual(result.dependencies.count, 0)
        self.assertEqual(result.issues, [])
        self.assertTrue(result.success)


# =============================================================================
# Detector / scanners
# =============================================================================

class TestCommandDetector(unittest.TestCase):
    """Command classification and error pre-check"""

    def test_detect_dump_package(self):
        output = '{"name": "ExamplePackage", "targets": [{"name": "T", "type": "executable"}]}'
        self.assertEqual(CommandDetector.detect_command_type(output), SwiftPackageCommand.DUMP_PACKAGE)

    def test_detect_show_dependencies(self):
        self.assertEqual(
            CommandDetector.detect_command_type(SIMPLE_TREE), SwiftPackageCommand.SHOW_DEPENDENCIES
        )

    def test_detect_resolve(self):
        output = "Resolving dependencies...\nFetching https://github.com/example/repo.git\nResolved\n"
        self.assertEqual(CommandDetector.detect_command_type(output), SwiftPackageCommand.RESOLVE)

    def test_detect_describe(self):
        output = "Package Name: MyPkg\nPackage Version: 1.0.0\n"
        self.assertEqual(CommandDetector.detect_command_type(output), SwiftPackageCommand.DESCRIBE)

    def test_detect_update(self):
        output = "Updated swift-argument-parser\n"
        self.assertEqual(CommandDetector.detect_command_type(output), SwiftPackageCommand.UPDATE)

    def test_detect_unknown(self):
        self.assertEqual(CommandDetector.detect_command_type("hello world"), SwiftPackageCommand.UNKNOWN)

    def test_error_detection(self):
        output = "error: Invalid package manifest\nwarning: Deprecated syntax\n"

        self.assertTrue(CommandDetector.has_error_output(output))
        self.assertEqual(
            CommandDetector.extract_error_messages(output), ["error: Invalid package manifest"]
        )
        self.assertFalse(CommandDetector.has_error_output(SIMPLE_TREE))


class TestScanners(unittest.TestCase):
    """resolve / describe / update parsers"""

    def test_resolve_completed(self):
        output = (
            "Fetching https://github.com/apple/swift-argument-parser\n"
            "Resolved swift-argument-parser (1.3.0)\n"
            "Resolve completed in 2.5 seconds\n"
        )
        result = ResolveParser().parse(output)

        self.assertTrue(result.success)
        self.assertEqual(result.issues, [])
        self.assertEqual(
            result.dependencies.external,
            [ExternalDependency(name="swift-argument-parser", version="resolved",
                                type=DependencyType.SOURCE_CONTROL)],
        )
        self.assertEqual(result.metrics.estimated_index_time, "2.5s")

    def test_resolve_incomplete(self):
        result = ResolveParser().parse("Fetched in 1500ms\n")

        self.assertTrue(result.success)
        self.assertEqual(result.metrics.estimated_index_time, "1.5s")
        self.assertEqual(
            [i.message for i in result.issues], ["Resolution may not have completed successfully"]
        )
        self.assertEqual(result.issues[0].severity, Severity.INFO)

    def test_resolve_error(self):
        result = ResolveParser().parse("error: swift-foo could not be resolved\n")

        self.assertFalse(result.success)
        self.assertEqual([d.name for d in result.dependencies.external], ["swift-foo"])
        self.assertEqual([i.type for i in result.issues], [IssueType.DEPENDENCY_ERROR])
        self.assertIsNone(result.metrics.estimated_index_time)

    def test_resolve_network(self):
        result = ResolveParser().parse("Connection timeout while fetching\n")
        self.assertIn(IssueType.NETWORK_ERROR, [i.type for i in result.issues])

    def test_describe(self):
        result = DescribeParser().parse("Package Name: MyPkg\nPackage Version: 1.0.0\nPlatforms: ios\n")

        self.assertEqual(result.command, SwiftPackageCommand.DESCRIBE)
        self.assertTrue(result.success)
        self.assertEqual(result.issues, [])

    def test_describe_without_name(self):
        self.assertFalse(DescribeParser().parse("Nothing useful here\n").success)

    def test_describe_version_alone_is_not_success(self):
        result = DescribeParser().parse("Package Version: 1.0.0\nPlatforms: ios\n")
        self.assertFalse(result.success)
        self.assertEqual(result.issues, [])

    def test_update(self):
        output = "Updating https://github.com/a/b.git\nUpdated b (1.2.0)\n"
        result = UpdateParser().parse(output)

        self.assertTrue(result.success)
        self.assertEqual(
            [d.name for d in result.dependencies.external], ["https://github.com/a/b.git", "b"]
        )
        self.assertTrue(all(d.version == "updated" for d in result.dependencies.external))

    def test_update_failure(self):
        result = UpdateParser().parse("error: cannot update dependencies\n")
        self.assertFalse(result.success)
        self.assertEqual(result.dependencies.count, 0)


# =============================================================================
# Analyzer
# =============================================================================

class TestAnalyzer(unittest.TestCase):
    """Dispatcher and post-processing"""

    def test_dispatch_tree(self):
        result = parse_output(SIMPLE_TREE)
        self.assertEqual(result.command, SwiftPackageCommand.SHOW_DEPENDENCIES)
        self.assertEqual(result.dependencies.count, 2)

    def test_error_precheck(self):
        """Error words short-circuit every structural parser"""
        result = parse_output("error: Invalid package manifest\nwarning: Deprecated syntax\n")

        self.assertFalse(result.success)
        self.assertEqual(len(result.issues), 1)
        self.assertEqual(result.issues[0].type, IssueType.UNKNOWN)
        self.assertEqual(result.issues[0].severity, Severity.ERROR)
        self.assertEqual(result.issues[0].message, "error: Invalid package manifest")

    def test_unknown_output(self):
        result = parse_output("hello world")

        self.assertEqual(result.command, SwiftPackageCommand.UNKNOWN)
        self.assertFalse(result.success)
        self.assertEqual(result.issues[0].message, "Unknown command output format")
        self.assertEqual(result.issues[0].severity, Severity.WARNING)

    def test_explicit_command_and_target(self):
        result = parse_output(json.dumps(WORKSPACE_MANIFEST),
                              command=SwiftPackageCommand.DUMP_PACKAGE, target="Core")
        self.assertEqual(result.targets.filtered_target, "Core")

    def test_malformed_manifest(self):
        result = parse_output('{"name": "X", "targets": [')

        self.assertEqual(result.command, SwiftPackageCommand.DUMP_PACKAGE)
        self.assertFalse(result.success)
        self.assertEqual(result.issues[0].type, IssueType.SYNTAX_ERROR)

    def test_hard_failures_become_results(self):
        """Parser exceptions are turned into syntax_error results"""
        result = parse_output(b"\xff\xfe")
        self.assertFalse(result.success)
        self.assertEqual(result.issues[0].type, IssueType.SYNTAX_ERROR)

        result = parse_output("[1, 2]", command=SwiftPackageCommand.DUMP_PACKAGE)
        self.assertEqual(result.command, SwiftPackageCommand.DUMP_PACKAGE)
        self.assertFalse(result.success)
        self.assertIn("list", result.issues[0].message)

    def test_severity_filter(self):
        output = "├─ Dep (main)\n└─ Other (1.0.0)\n"

        self.assertEqual(len(analyze(output).issues), 1)
        self.assertEqual(analyze(output, min_severity=Severity.WARNING).issues, [])

    def test_filter_issues_keeps_order(self):
        issues = [
            PackageIssue(type=IssueType.UNKNOWN, severity=Severity.CRITICAL, message="c"),
            PackageIssue(type=IssueType.UNKNOWN, severity=Severity.INFO, message="i"),
            PackageIssue(type=IssueType.UNKNOWN, severity=Severity.WARNING, message="w"),
            PackageIssue(type=IssueType.UNKNOWN, severity=Severity.ERROR, message="e"),
        ]
        self.assertEqual([i.message for i in filter_issues(issues, Severity.WARNING)], ["c", "w", "e"])
        self.assertEqual(filter_issues(issues, Severity.INFO), issues)

    def test_metrics(self):
        result = analyze(SIMPLE_TREE, include_metrics=True)

        self.assertIsNotNone(result.metrics)
        self.assertEqual(result.metrics.complexity, ComplexityLevel.LOW)
        self.assertEqual(result.metrics.estimated_index_time, "5-15s")
        self.assertGreaterEqual(result.metrics.parse_time, 0.0)

        self.assertIsNone(analyze(SIMPLE_TREE).metrics)

    def test_raw_output(self):
        self.assertEqual(analyze(SIMPLE_TREE, include_raw=True).raw_output, SIMPLE_TREE)
        self.assertIsNone(analyze(SIMPLE_TREE).raw_output)

    def test_complexity_buckets(self):
        def result(targets, dependencies, issues):
            return PackageAnalysis(
                command=SwiftPackageCommand.DUMP_PACKAGE,
                success=True,
                targets=TargetAnalysis(count=targets),
                dependencies=DependencyAnalysis(count=dependencies),
                issues=[PackageIssue(type=IssueType.UNKNOWN, severity=Severity.INFO, message="x")] * issues,
            )

        self.assertEqual(determine_complexity(result(3, 2, 0)), ComplexityLevel.LOW)
        self.assertEqual(determine_complexity(result(12, 6, 3)), ComplexityLevel.MEDIUM)
        self.assertEqual(determine_complexity(result(40, 0, 0)), ComplexityLevel.HIGH)
        # between the two buckets
        self.assertEqual(determine_complexity(result(8, 8, 0)), ComplexityLevel.HIGH)

    def test_estimate_index_time(self):
        def result(targets, dependencies):
            return PackageAnalysis(
                command=SwiftPackageCommand.DUMP_PACKAGE,
                success=True,
                targets=TargetAnalysis(count=targets),
                dependencies=DependencyAnalysis(count=dependencies),
            )

        self.assertEqual(estimate_index_time(result(5, 5)), "5-15s")
        self.assertEqual(estimate_index_time(result(5, 10)), "15-45s")
        self.assertEqual(estimate_index_time(result(20, 20)), "45-90s")
        self.assertEqual(estimate_index_time(result(50, 25)), "90s+")


# =============================================================================
# Models / reporters
# =============================================================================

class TestModels(unittest.TestCase):
    """Model ordering and wire format"""

    def test_severity_order(self):
        self.assertEqual(list(SEVERITY_ORDER), list(Severity))
        self.assertTrue(Severity.INFO < Severity.WARNING < Severity.ERROR < Severity.CRITICAL)
        self.assertEqual(
            sorted([Severity.CRITICAL, Severity.INFO, Severity.ERROR]),
            [Severity.INFO, Severity.ERROR, Severity.CRITICAL],
        )

    def test_optional_fields_omitted(self):
        issue = PackageIssue(type=IssueType.UNKNOWN, severity=Severity.INFO, message="m")
        self.assertEqual(issue.to_dict(), {"type": "unknown", "severity": "info", "message": "m"})

        result = PackageAnalysis(command=SwiftPackageCommand.UNKNOWN, success=False)
        self.assertEqual(result.to_dict(), {"command": "unknown", "success": False, "issues": []})

    def test_camel_case_keys(self):
        data = ShowDependenciesParser().parse("├─ A (1.0.0)\n└─ A (2.0.0)\n").to_dict()
        self.assertIn("circularImports", data["dependencies"])
        self.assertEqual(data["dependencies"]["versionConflicts"][0]["requiredVersions"], ["1.0.0", "2.0.0"])

    def test_json_round_trip(self):
        results = [
            analyze(json.dumps(WORKSPACE_MANIFEST), include_metrics=True, include_raw=True),
            DumpPackageParser().parse(json.dumps(WORKSPACE_MANIFEST), target_filter="Nope"),
            ShowDependenciesParser().parse("├─ A (1.0.0)\n├─ A (main)\n└─ B [https://x/b]\n"),
            ResolveParser().parse("Resolved foo\nResolve completed in 1 second\n"),
        ]
        for result in results:
            decoded = PackageAnalysis.from_dict(json.loads(json.dumps(result.to_dict())))
            self.assertEqual(decoded, result)

    def test_entities_are_frozen(self):
        """Fields cannot be reassigned; replace() derives a new result"""
        result = ShowDependenciesParser().parse(SIMPLE_TREE)

        with self.assertRaises(FrozenInstanceError):
            result.success = False
        with self.assertRaises(FrozenInstanceError):
            result.dependencies.count = 0

        filtered = replace(result, issues=[])
        self.assertIsNot(filtered, result)
        self.assertEqual(result.dependencies.count, 2)

    def test_has_severity(self):
        result = DumpPackageParser().parse('{"targets": []}')
        self.assertTrue(result.has_severity(Severity.CRITICAL))
        self.assertFalse(result.has_severity(Severity.INFO))


class TestReporters(unittest.TestCase):
    """Output formats"""

    def setUp(self):
        self.result = DumpPackageParser().parse(SIMPLE_MANIFEST)

    def test_json(self):
        out = io.StringIO()
        JsonReporter(out).report(self.result)
        self.assertEqual(json.loads(out.getvalue()), self.result.to_dict())

    def test_detailed_matches_json(self):
        json_out, detailed_out = io.StringIO(), io.StringIO()
        JsonReporter(json_out).report(self.result)
        DetailedReporter(detailed_out).report(self.result)
        self.assertEqual(json_out.getvalue(), detailed_out.getvalue())

    def test_summary(self):
        out = io.StringIO()
        SummaryReporter(out).report(self.result)
        self.assertEqual(json.loads(out.getvalue()), {
            "command": "dump-package", "success": True, "targets": 1, "dependencies": 0,
        })

    def test_summary_omits_absent_sections(self):
        summary = SummaryReporter.summarize(parse_output("hello world"))
        self.assertEqual(summary, {"command": "unknown", "success": False, "issues": 1})


# =============================================================================
# Config / CLI
# =============================================================================

class TestConfig(unittest.TestCase):
    """YAML configuration"""

    def test_defaults_without_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            self.assertEqual(SpmsiftConfig.load(directory=Path(tmpdir)), SpmsiftConfig())

    def test_save_and_load(self):
        config = SpmsiftConfig(
            format=OutputFormat.SUMMARY,
            severity=Severity.WARNING,
            metrics=True,
            command=SwiftPackageCommand.DUMP_PACKAGE,
            target="App",
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            path = config.save(Path(tmpdir))
            self.assertTrue(path.exists())
            self.assertEqual(SpmsiftConfig.load(directory=Path(tmpdir)), config)
            self.assertEqual(SpmsiftConfig.load(path=path), config)

    def test_unusable_implicit_config_falls_back(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_dir = Path(tmpdir) / ".spmsift"
            config_dir.mkdir()
            (config_dir / "config.yaml").write_text("format: [unclosed\n", encoding="utf-8")
            self.assertEqual(SpmsiftConfig.load(directory=Path(tmpdir)), SpmsiftConfig())

    def test_explicit_config_errors(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ConfigError):
                SpmsiftConfig.load(path=Path(tmpdir) / "missing.yaml")

            bad_value = Path(tmpdir) / "bad.yaml"
            bad_value.write_text("format: xml\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                SpmsiftConfig.load(path=bad_value)

            not_mapping = Path(tmpdir) / "list.yaml"
            not_mapping.write_text("- json\n", encoding="utf-8")
            with self.assertRaises(ConfigError):
                SpmsiftConfig.load(path=not_mapping)

    def test_non_string_values(self):
        """target and log_file must be strings"""
        with tempfile.TemporaryDirectory() as tmpdir:
            for content in ("target: 5\n", "log_file: [a, b]\n"):
                path = Path(tmpdir) / "config.yaml"
                path.write_text(content, encoding="utf-8")
                with self.assertRaises(ConfigError):
                    SpmsiftConfig.load(path=path)

            path.write_text("target: App\nlog_file: spmsift.log\n", encoding="utf-8")
            config = SpmsiftConfig.load(path=path)
            self.assertEqual(config.target, "App")
            self.assertEqual(config.log_file, "spmsift.log")



class TestCLI(unittest.TestCase):
    """Command line entry point"""

    def run_cli(self, argv, stdin_text=""):
        stdout = io.StringIO()
        code = main(argv, stdin=io.StringIO(stdin_text), stdout=stdout)
        return code, stdout.getvalue()

    def test_default_json_from_stdin(self):
        code, out = self.run_cli([], SIMPLE_TREE)

        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["command"], "show-dependencies")
        self.assertEqual(data["dependencies"]["count"], 2)

    def test_summary_format(self):
        code, out = self.run_cli(["--format", "summary"], SIMPLE_TREE)

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out), {
            "command": "show-dependencies", "success": True, "dependencies": 2,
        })

    def test_failed_analysis_still_exits_zero(self):
        code, out = self.run_cli(["analyze"], "error: something broke\n")

        self.assertEqual(code, 0)
        self.assertFalse(json.loads(out)["success"])

    def test_file_input_with_target(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            manifest = Path(tmpdir) / "manifest.json"
            manifest.write_text(json.dumps(WORKSPACE_MANIFEST), encoding="utf-8")
            code, out = self.run_cli(["analyze", str(manifest), "--target", "App"])

        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["targets"]["filteredTarget"], "App")
        self.assertEqual([d["name"] for d in data["dependencies"]["external"]], ["swift-log"])

    def test_missing_file(self):
        code, out = self.run_cli(["analyze", "/nonexistent/spmsift/input.json"])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")

    def test_options(self):
        code, out = self.run_cli(["--severity", "error", "--metrics", "--verbose"],
                                 "├─ Dep (main)\n")
        data = json.loads(out)

        self.assertEqual(data["issues"], [])
        self.assertEqual(data["metrics"]["complexity"], "low")
        self.assertEqual(data["rawOutput"], "├─ Dep (main)\n")

    def test_explicit_command(self):
        code, out = self.run_cli(["--command", "dump-package"], "[1]")
        data = json.loads(out)

        self.assertEqual(code, 0)
        self.assertEqual(data["command"], "dump-package")
        self.assertEqual(data["issues"][0]["type"], "syntax_error")

    def test_deeply_nested_manifest(self):
        code, out = self.run_cli([], DEEP_MANIFEST)

        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertFalse(data["success"])
        self.assertEqual(data["issues"][0]["type"], "syntax_error")

    def test_empty_input(self):
        code, out = self.run_cli([], "")
        self.assertEqual(code, 1)
        self.assertEqual(out, '{"error": "No input received"}\n')

    def test_terminal_stdin(self):
        stdout = io.StringIO()
        code = main([], stdin=_TtyInput(), stdout=stdout)
        self.assertEqual(code, 1)
        self.assertEqual(stdout.getvalue(), NO_INPUT_MESSAGE + "\n")

    def test_config_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = Path(tmpdir) / "config.yaml"
            config.write_text("format: summary\n", encoding="utf-8")
            code, out = self.run_cli(["--config", str(config)], SIMPLE_TREE)

            self.assertEqual(code, 0)
            self.assertNotIn("external", json.loads(out))

            # flags win over the file
            code, out = self.run_cli(["--config", str(config), "--format", "json"], SIMPLE_TREE)
            self.assertIn("external", json.loads(out)["dependencies"])

    def test_bad_config_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            code, out = self.run_cli(["--config", str(Path(tmpdir) / "missing.yaml")], SIMPLE_TREE)
        self.assertEqual(code, 1)
        self.assertEqual(out, "")

    def test_init_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            code, out = self.run_cli(["init-config", tmpdir])

            self.assertEqual(code, 0)
            path = Path(tmpdir) / ".spmsift" / "config.yaml"
            self.assertTrue(path.exists())
            self.assertEqual(SpmsiftConfig.load(path=path), SpmsiftConfig())
            self.assertIn(str(path), out)


def run_tests():
    """Run the suite"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestDependencyLineGrammar))
    suite.addTests(loader.loadTestsFromTestCase(TestShowDependenciesParser))
    suite.addTests(loader.loadTestsFromTestCase(TestDumpPackageParser))
    suite.addTests(loader.loadTestsFromTestCase(TestTargetFilter))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandDetector))
    suite.addTests(loader.loadTestsFromTestCase(TestScanners))
    suite.addTests(loader.loadTestsFromTestCase(TestAnalyzer))
    suite.addTests(loader.loadTestsFromTestCase(TestModels))
    suite.addTests(loader.loadTestsFromTestCase(TestReporters))
    suite.addTests(loader.loadTestsFromTestCase(TestConfig))
    suite.addTests(loader.loadTestsFromTestCase(TestCLI))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    raise SystemExit(run_tests())
