#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Tests for ckmetrics.impact module (PR diff impact analysis)."""

import os
import sys
from pathlib import Path
from typing import Dict

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ckmetrics.analysis import analyze_classes
from ckmetrics.constants import DiffInputError, EmptyCorpusError
from ckmetrics.diff_parser import parse_unified_diff
from ckmetrics.diff_types import DEV_NULL, ChangeKind, FileChange
from ckmetrics.fact_store import SnapshotEntry, SnapshotFactProvider, SourceFile
from ckmetrics.facts import DependencyKind, block, branch
from ckmetrics.file_utils import FileResolver
from ckmetrics.impact import (
    BeforeVersion,
    DependencyImpact,
    DirectoryBeforeSource,
    GitBeforeSource,
    ImpactSeverity,
    MethodChange,
    MethodImpact,
    MethodImpactType,
    NoBeforeSource,
    PRDiffAnalyzer,
    ResolvedFileChange,
    analyze_pr_diff,
    build_before_corpus,
    changed_class_names,
    compare_reports,
    compute_impact,
    detect_method_changes,
    metric_change,
    overall_impact,
    resolve_changes,
    separate_versions,
)
from ckmetrics.metrics_types import DiagnosticKind
from fact_builders import B_AFTER, B_BEFORE, SIGNATURE_DIFF, impact_versions, make_class, method, snapshot_entry, write_files

ADDED_DIFF = """diff --git a/src/D.kt b/src/D.kt
new file mode 100644
--- /dev/null
+++ b/src/D.kt
@@ -0,0 +1 @@
+class D
"""

DELETED_DIFF = """diff --git a/src/Old.kt b/src/Old.kt
deleted file mode 100644
--- a/src/Old.kt
+++ /dev/null
@@ -1 +0,0 @@
-class Old
"""

OTHER_DIFF = """diff --git a/README.md b/README.md
--- a/README.md
+++ b/README.md
@@ -1 +1 @@
-old
+new
diff --git a/src/test/BTest.kt b/src/test/BTest.kt
--- a/src/test/BTest.kt
+++ b/src/test/BTest.kt
@@ -1 +1 @@
-class BTest
+class BTest {}
diff --git a/src/Ghost.kt b/src/Ghost.kt
--- a/src/Ghost.kt
+++ b/src/Ghost.kt
@@ -1 +1 @@
-class Ghost
+class Ghost {}
"""


class TestBeforeSources:
    """Tests for BeforeVersion and the before sources."""

    def test_before_version(self) -> None:
        available = BeforeVersion.available(SourceFile("A.kt", "class A"))
        unavailable = BeforeVersion.unavailable("file added")
        assert available.is_available
        assert not unavailable.is_available
        assert unavailable.reason == "file added"

    def test_no_before_source(self) -> None:
        assert not NoBeforeSource().load("src/A.kt").is_available

    def test_directory_before_source(self, temp_dir: str) -> None:
        write_files(temp_dir, {"src/B.kt": B_BEFORE})
        source = DirectoryBeforeSource(temp_dir)
        version = source.load("src/B.kt")
        assert version.is_available
        assert version.source.text == B_BEFORE
        assert version.source.path == "src/B.kt"
        assert not source.load("src/Missing.kt").is_available
        assert not source.load("../outside.kt").is_available

    def test_git_before_source(self, git_project: Dict[str, str]) -> None:
        """Paths are relative to the project, which is a subdirectory of the repository."""
        source = GitBeforeSource(git_project["project"], git_project["base"])
        assert source.commit == git_project["base"]
        version = source.load("src/B.kt")
        assert version.is_available
        assert version.source.path == "src/B.kt"
        assert version.source.text == B_BEFORE
        assert not source.load("src/Missing.kt").is_available

    def test_git_before_source_unknown_revision(self, git_project: Dict[str, str]) -> None:
        source = GitBeforeSource(git_project["project"], "no-such-branch")
        assert source.commit is None
        version = source.load("src/B.kt")
        assert not version.is_available
        assert "no-such-branch" in version.reason

    def test_git_before_source_outside_repository(self, temp_dir: str) -> None:
        version = GitBeforeSource(temp_dir, "HEAD").load("src/B.kt")
        assert not version.is_available
        assert "git" in version.reason


class TestResolveChanges:
    """Tests for resolve_changes and build_before_corpus."""

    def test_modified_file(self, impact_project: Dict[str, str]) -> None:
        resolver = FileResolver(impact_project["project"])
        resolved, diagnostics = resolve_changes(parse_unified_diff(SIGNATURE_DIFF), resolver, DirectoryBeforeSource(impact_project["baseline"]))
        assert diagnostics == []
        assert len(resolved) == 1
        assert resolved[0].path == "src/B.kt"
        assert resolved[0].before.source.text == B_BEFORE
        assert resolved[0].after.text != B_BEFORE

    def test_missing_before_is_explicit(self, impact_project: Dict[str, str]) -> None:
        resolver = FileResolver(impact_project["project"])
        resolved, diagnostics = resolve_changes(parse_unified_diff(SIGNATURE_DIFF), resolver, NoBeforeSource())
        assert not resolved[0].before.is_available
        assert [d.kind for d in diagnostics] == [DiagnosticKind.BEFORE_UNAVAILABLE]

    def test_added_and_deleted_files(self, temp_dir: str) -> None:
        """Added files have no before side; deleted files no after side. Neither is a diagnostic."""
        project = os.path.join(temp_dir, "project")
        baseline = os.path.join(temp_dir, "baseline")
        write_files(project, {"src/D.kt": "class D"})
        write_files(baseline, {"src/Old.kt": "class Old"})
        resolved, diagnostics = resolve_changes(
            parse_unified_diff(ADDED_DIFF + DELETED_DIFF), FileResolver(project), DirectoryBeforeSource(baseline)
        )
        assert diagnostics == []
        added, deleted = resolved
        assert added.after.path == "src/D.kt"
        assert not added.before.is_available
        assert deleted.after is None
        assert deleted.before.source.path == "src/Old.kt"
        assert deleted.path == "src/Old.kt"

    def test_skipped_entries(self, impact_project: Dict[str, str]) -> None:
        """Non-source and test files are skipped; unknown files become diagnostics."""
        resolver = FileResolver(impact_project["project"])
        resolved, diagnostics = resolve_changes(parse_unified_diff(OTHER_DIFF), resolver, NoBeforeSource())
        assert resolved == []
        assert [(d.kind, d.subject) for d in diagnostics] == [(DiagnosticKind.UNRESOLVED_PATH, "src/Ghost.kt")]

    def test_build_before_corpus(self) -> None:
        """Changed files are swapped for their before versions; added files are left out."""
        a, b_new, c = SourceFile("A.kt", "a"), SourceFile("B.kt", "new"), SourceFile("C.kt", "c")
        change = FileChange("B.kt", "B.kt", ChangeKind.MODIFIED)
        swapped = ResolvedFileChange(change, BeforeVersion.available(SourceFile("B.kt", "old")), b_new)
        assert [s.text for s in build_before_corpus([a, b_new, c], [swapped])] == ["a", "old", "c"]

        added = ResolvedFileChange(FileChange(DEV_NULL, "B.kt", ChangeKind.ADDED), BeforeVersion.unavailable("file added"), b_new)
        assert [s.path for s in build_before_corpus([a, b_new, c], [added])] == ["A.kt", "C.kt"]

    def test_separate_versions(self) -> None:
        """A changed file answered by one unhashed entry loses its before side."""
        change = FileChange("B.kt", "B.kt", ChangeKind.MODIFIED)
        old, new = SourceFile("B.kt", "old"), SourceFile("B.kt", "new")
        resolved = [ResolvedFileChange(change, BeforeVersion.available(old), new)]

        unhashed = SnapshotFactProvider([SnapshotEntry("B.kt", None, (make_class("B"),))])
        separated, diagnostics = separate_versions(resolved, unhashed)
        assert not separated[0].before.is_available
        assert [d.kind for d in diagnostics] == [DiagnosticKind.BEFORE_UNAVAILABLE]

        hashed = SnapshotFactProvider([snapshot_entry("B.kt", "old", [make_class("B")]), snapshot_entry("B.kt", "new", [make_class("B")])])
        separated, diagnostics = separate_versions(resolved, hashed)
        assert separated[0].before.source == old
        assert diagnostics == []

    def test_before_corpus_keeps_unavailable_modified_file(self) -> None:
        """A modified file with no before version stays so dependents keep their coupling."""
        a, b_new = SourceFile("A.kt", "a"), SourceFile("B.kt", "new")
        missing = ResolvedFileChange(FileChange("B.kt", "B.kt", ChangeKind.MODIFIED), BeforeVersion.unavailable("no baseline configured"), b_new)
        assert [s.text for s in build_before_corpus([a, b_new], [missing])] == ["a", "new"]


class TestDetectMethodChanges:
    """Tests for detect_method_changes."""

    def test_change_kinds(self) -> None:
        before = make_class(
            "S",
            [
                method("gone"),
                method("resize", param_types=("Int",)),
                method("hide"),
                method("compute", body_text="a + b"),
                method("same", body_text="x"),
            ],
        )
        after = make_class(
            "S",
            [
                method("resize", param_types=("Int", "Int")),
                method("hide", visibility="private"),
                method("compute", body_text="a - b"),
                method("same", body_text="x"),
            ],
        )
        changes = {c.method_name: c.impact_type for c in detect_method_changes(before, after)}
        assert changes == {
            "gone": MethodImpactType.REMOVAL,
            "resize": MethodImpactType.SIGNATURE_CHANGE,
            "hide": MethodImpactType.VISIBILITY_CHANGE,
            "compute": MethodImpactType.BEHAVIOR_CHANGE,
        }

    def test_control_flow_change_is_behavior(self) -> None:
        before = make_class("S", [method("run", body=block())])
        after = make_class("S", [method("run", body=block(branch()))])
        assert detect_method_changes(before, after) == [MethodChange("S", "run", MethodImpactType.BEHAVIOR_CHANGE)]

    def test_overload_order_does_not_matter(self) -> None:
        first = method("put", param_types=("Int",))
        second = method("put", param_types=("String",))
        assert detect_method_changes(make_class("S", [first, second]), make_class("S", [second, first])) == []

    def test_find_method_returns_overloads(self) -> None:
        first, second = method("put", param_types=("Int",)), method("put", param_types=("String",))
        cls = make_class("S", [first, method("get"), second])
        assert cls.find_method("put") == [first, second]
        assert cls.find_method("missing") == []

    def test_added_overload_is_signature_change(self) -> None:
        before = make_class("S", [method("put", param_types=("Int",))])
        after = make_class("S", [method("put", param_types=("Int",)), method("put", param_types=("String",))])
        assert detect_method_changes(before, after)[0].impact_type == MethodImpactType.SIGNATURE_CHANGE


class TestComputeImpact:
    """Tests for compute_impact."""

    def test_propagation_depths(self) -> None:
        """B changes; A uses B; D extends A."""
        report = analyze_classes(
            [
                make_class("B", [method("work")]),
                make_class("A", [method("run", body_text="B().work()")]),
                make_class("D", supertypes=["A"]),
            ]
        )
        impact = compute_impact(report, ["B.kt"])
        assert impact.dependency_impacts == (
            DependencyImpact("A.kt", "A", DependencyKind.USAGE, "B", ImpactSeverity.LOW, 1),
            DependencyImpact("D.kt", "D", DependencyKind.INHERITANCE, "A", ImpactSeverity.HIGH, 2),
        )
        assert impact.directly_affected_files == ("B.kt",)
        assert impact.indirectly_affected_files == ("A.kt", "D.kt")
        assert impact.impact_metrics.total_affected == 3
        assert impact.impact_metrics.impact_percentage == 100.0
        assert impact.impact_metrics.risk_level == "HIGH"
        assert impact.impact_metrics.severity_distribution == {"LOW": 1, "HIGH": 1}

    def test_isolated_change(self) -> None:
        report = analyze_classes([make_class(f"C{i}") for i in range(25)])
        impact = compute_impact(report, ["C0.kt"])
        assert impact.dependency_impacts == ()
        assert impact.impact_metrics.impact_percentage == 4.0
        assert impact.impact_metrics.risk_level == "MINIMAL"

    def test_method_impacts(self) -> None:
        """Behavior changes need a textual mention; breaking changes reach every dependent."""
        report = analyze_classes(
            [
                make_class("B", [method("work"), method("idle")]),
                make_class("A", [method("run", body_text="B().work()")]),
            ]
        )
        changes = [
            MethodChange("B", "work", MethodImpactType.BEHAVIOR_CHANGE),
            MethodChange("B", "idle", MethodImpactType.BEHAVIOR_CHANGE),
            MethodChange("B", "reset", MethodImpactType.REMOVAL),
        ]
        impact = compute_impact(report, ["B.kt"], changes)
        assert impact.method_impacts == (
            MethodImpact("A.kt", "A", "work", "B", MethodImpactType.BEHAVIOR_CHANGE, ImpactSeverity.LOW),
            MethodImpact("A.kt", "A", "reset", "B", MethodImpactType.REMOVAL, ImpactSeverity.HIGH),
        )

    def test_removed_class_dependents(self) -> None:
        """Dependents of a class deleted by the change are found in the before graph."""
        before = analyze_classes(
            [
                make_class("Keep", file_path="Lib.kt"),
                make_class("Gone", file_path="Lib.kt"),
                make_class("User", [method("run", body_text="Gone()")]),
            ]
        )
        after = analyze_classes([make_class("Keep", file_path="Lib.kt"), make_class("User", [method("run", body_text="Gone()")])])
        impact = compute_impact(after, ["Lib.kt"], before_report=before)
        assert impact.dependency_impacts == (DependencyImpact("User.kt", "User", DependencyKind.USAGE, "Gone", ImpactSeverity.LOW, 1),)
        assert impact.indirectly_affected_files == ("User.kt",)


class TestCompare:
    """Tests for metric_change, overall_impact and compare_reports."""

    def test_metric_change(self) -> None:
        change = metric_change("A", "wmc", 10, 12, False, 5.0)
        assert (change.delta, change.percentage_change, change.improvement, change.significant) == (2, 20.0, False, True)

    def test_metric_change_from_zero(self) -> None:
        change = metric_change("A", "cbo", 0, 3, False, 5.0)
        assert change.percentage_change is None
        assert change.significant

    def test_metric_change_insignificant(self) -> None:
        change = metric_change("A", "quality_score", 8.0, 8.2, True, 5.0)
        assert change.improvement
        assert not change.significant

    @pytest.mark.parametrize(
        "improvements,regressions,net,level",
        [(0, 0, 0, "MINIMAL"), (1, 0, 1, "LOW"), (3, 0, 3, "MEDIUM"), (5, 0, 5, "MEDIUM"), (6, 0, 6, "HIGH"), (0, 1, -1, "HIGH"), (2, 2, 0, "MINIMAL")],
    )
    def test_overall_impact(self, improvements: int, regressions: int, net: int, level: str) -> None:
        result = overall_impact(improvements, regressions)
        assert (result.net_impact, result.impact_level) == (net, level)

    def test_compare_reports(self) -> None:
        before = analyze_classes([make_class("A", [method("a")])])
        after = analyze_classes([make_class("A", [method("a"), method("b")]), make_class("N")])
        comparison = compare_reports(before, after)
        assert {c.metric for c in comparison.regressions} >= {"wmc", "rfc", "cyclomatic_complexity"}
        assert comparison.improvements == ()
        assert comparison.added_classes == ("N",)
        assert comparison.removed_classes == ()
        assert comparison.overall.net_impact < 0
        assert comparison.overall.impact_level == "HIGH"

    def test_not_measured_is_never_compared(self) -> None:
        before = analyze_classes([make_class("A", [method("a")])])
        after = analyze_classes([make_class("A", [method("a"), method("b")])])
        comparison = compare_reports(before, after, not_measured=["A"])
        assert comparison.regressions == ()
        assert comparison.not_measured == ("A",)
        assert comparison.overall.impact_level == "MINIMAL"

    def test_scope(self) -> None:
        before = analyze_classes([make_class("A", [method("a")]), make_class("B", [method("a")])])
        after = analyze_classes([make_class("A", [method("a"), method("b")]), make_class("B", [method("a"), method("b")])])
        comparison = compare_reports(before, after, scope={"B"})
        assert {c.class_name for c in comparison.regressions} == {"B"}


class TestPRDiffAnalyzer:
    """End-to-end runs of the review stages."""

    def test_signature_change_with_baseline(self, impact_project: Dict[str, str]) -> None:
        provider = SnapshotFactProvider.from_file(impact_project["facts"])
        result = analyze_pr_diff(
            impact_project["diff"], impact_project["project"], provider, DirectoryBeforeSource(impact_project["baseline"])
        )
        assert result.method_changes == (MethodChange("B", "process", MethodImpactType.SIGNATURE_CHANGE),)
        impact = result.impact
        assert impact.directly_affected_files == ("src/B.kt",)
        assert impact.indirectly_affected_files == ("src/A.kt",)
        assert impact.dependency_impacts == (DependencyImpact("src/A.kt", "A", DependencyKind.USAGE, "B", ImpactSeverity.LOW, 1),)
        assert impact.method_impacts == (
            MethodImpact("src/A.kt", "A", "process", "B", MethodImpactType.SIGNATURE_CHANGE, ImpactSeverity.HIGH),
        )
        assert impact.impact_metrics.total_affected == 2
        assert impact.impact_metrics.impact_percentage == 66.67
        assert impact.impact_metrics.risk_level == "HIGH"
        assert result.comparison.not_measured == ()
        assert result.comparison.overall.net_impact == 0
        assert result.comparison.overall.impact_level == "MINIMAL"
        assert result.before_report is not None
        assert changed_class_names(result) == frozenset({"B"})

    def test_without_before_source(self, impact_project: Dict[str, str]) -> None:
        """The changed class is reported as not measured instead of compared with itself."""
        provider = SnapshotFactProvider.from_file(impact_project["facts"])
        result = analyze_pr_diff(impact_project["diff"], impact_project["project"], provider)
        assert DiagnosticKind.BEFORE_UNAVAILABLE in {d.kind for d in result.diagnostics}
        assert result.method_changes == (MethodChange("B", "process", MethodImpactType.BEHAVIOR_CHANGE),)
        assert result.impact.method_impacts[0].severity == ImpactSeverity.LOW
        assert "B" in result.comparison.not_measured
        assert all(c.class_name != "B" for c in result.comparison.regressions + result.comparison.improvements)
        assert result.comparison.regressions == ()
        assert result.comparison.overall.impact_level == "MINIMAL"

    def test_facts_without_content_hash_are_not_measured(self, impact_project: Dict[str, str]) -> None:
        """One version-less entry for B.kt cannot describe both sides, so B is not measured."""
        versions = impact_versions()
        entries = [snapshot_entry(path, text, classes) for path, text, classes in versions if path != "src/B.kt"]
        b_after = next(classes for path, text, classes in versions if text == B_AFTER)
        provider = SnapshotFactProvider(entries + [SnapshotEntry("src/B.kt", None, tuple(b_after))])
        result = analyze_pr_diff(
            impact_project["diff"], impact_project["project"], provider, DirectoryBeforeSource(impact_project["baseline"])
        )
        assert result.comparison.not_measured == ("B",)
        assert result.comparison.regressions == ()
        assert result.method_changes == (MethodChange("B", "process", MethodImpactType.BEHAVIOR_CHANGE),)
        assert DiagnosticKind.BEFORE_UNAVAILABLE in {d.kind for d in result.diagnostics}

    def test_git_baseline(self, git_project: Dict[str, str]) -> None:
        """Diff paths relative to the repository root resolve inside the project."""
        diff_text = (
            "diff --git a/app/src/B.kt b/app/src/B.kt\n--- a/app/src/B.kt\n+++ b/app/src/B.kt\n"
            + SIGNATURE_DIFF.split("+++ b/src/B.kt\n", 1)[1]
        )
        provider = SnapshotFactProvider.from_file(git_project["facts"])
        analyzer = PRDiffAnalyzer(git_project["project"], provider, GitBeforeSource(git_project["project"], git_project["base"]))
        result = analyzer.analyze(parse_unified_diff(diff_text))
        assert result.impact.directly_affected_files == ("src/B.kt",)
        assert result.method_changes == (MethodChange("B", "process", MethodImpactType.SIGNATURE_CHANGE),)
        assert result.impact.impact_metrics.risk_level == "HIGH"

    def test_empty_diff(self, impact_project: Dict[str, str]) -> None:
        provider = SnapshotFactProvider.from_file(impact_project["facts"])
        result = PRDiffAnalyzer(impact_project["project"], provider).analyze(parse_unified_diff(""))
        assert result.resolved_files == ()
        assert result.impact.impact_metrics.total_affected == 0
        assert result.comparison.overall.impact_level == "MINIMAL"

    def test_missing_diff_file(self, impact_project: Dict[str, str]) -> None:
        provider = SnapshotFactProvider.from_file(impact_project["facts"])
        with pytest.raises(DiffInputError):
            analyze_pr_diff(os.path.join(impact_project["project"], "missing.diff"), impact_project["project"], provider)

    def test_empty_project(self, temp_dir: str) -> None:
        diff = os.path.join(temp_dir, "change.diff")
        with open(diff, "w", encoding="utf-8") as f:
            f.write(SIGNATURE_DIFF)
        with pytest.raises(EmptyCorpusError):
            analyze_pr_diff(diff, temp_dir, SnapshotFactProvider([]))
