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
"""Diff impact analysis for PR review.

A review runs as a fixed sequence of stages:

    RESOLVE      map diff entries to files on disk (after) and a baseline (before)
    RECONSTRUCT  build the before corpus; missing before sides stay explicit
    IMPACT       propagate the change over incoming dependency edges
    COMPARE      diff CK metrics and quality of classes measured on both sides
    SUMMARIZE    reduce improvements and regressions to one impact level

The before and after corpora are analyzed concurrently. A file whose before
version cannot be obtained is never compared against itself; its classes are
reported as not measured.
"""

import enum
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional, Protocol, Sequence, Set, Tuple

from .analysis import analyze_sources
from .config import AnalysisOptions
from .constants import (
    IMPACT_RISK_FLOOR,
    IMPACT_RISK_LADDER,
    NET_IMPACT_LADDER,
    NET_IMPACT_NEGATIVE,
    NET_IMPACT_ZERO,
    EmptyCorpusError,
    lookup_ladder,
    optional_ratio,
)
from .coupling import searchable_text
from .diff_parser import parse_diff_file
from .diff_types import DEV_NULL, ChangeKind, FileChange, ParsedDiff
from .fact_store import FactProvider, SnapshotFactProvider, SourceFile, normalize_path
from .facts import ClassFact, DependencyKind, MethodFact
from .file_utils import FileResolver, clean_diff_path, detect_language, discover_source_files, is_source_file, is_test_path
from .git_utils import find_git_repo, get_commit_hash, read_file_at_ref
from .metrics_types import METRIC_NAMES, Diagnostic, DiagnosticKind, ProjectReport

logger = logging.getLogger(__name__)


class ImpactSeverity(enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    MINIMAL = "MINIMAL"


SEVERITY_BY_KIND = {
    DependencyKind.INHERITANCE: ImpactSeverity.HIGH,
    DependencyKind.COMPOSITION: ImpactSeverity.MEDIUM,
    DependencyKind.USAGE: ImpactSeverity.LOW,
    DependencyKind.ASSOCIATION: ImpactSeverity.MINIMAL,
}


class MethodImpactType(enum.Enum):
    SIGNATURE_CHANGE = "signature_change"
    BEHAVIOR_CHANGE = "behavior_change"
    VISIBILITY_CHANGE = "visibility_change"
    REMOVAL = "removal"


SEVERITY_BY_METHOD_IMPACT = {
    MethodImpactType.REMOVAL: ImpactSeverity.HIGH,
    MethodImpactType.SIGNATURE_CHANGE: ImpactSeverity.HIGH,
    MethodImpactType.VISIBILITY_CHANGE: ImpactSeverity.MEDIUM,
    MethodImpactType.BEHAVIOR_CHANGE: ImpactSeverity.LOW,
}

# Impact types that break callers even when the method name cannot be found in their text
_BREAKING_IMPACTS = frozenset({MethodImpactType.SIGNATURE_CHANGE, MethodImpactType.REMOVAL})


# =============================================================================
# RESOLVE / RECONSTRUCT
# =============================================================================


@dataclass(frozen=True)
class BeforeVersion:
    """The before side of a changed file: either available or explicitly unavailable."""

    source: Optional[SourceFile] = None
    reason: str = ""

    @staticmethod
    def available(source: SourceFile) -> "BeforeVersion":
        return BeforeVersion(source=source)

    @staticmethod
    def unavailable(reason: str) -> "BeforeVersion":
        return BeforeVersion(source=None, reason=reason)

    @property
    def is_available(self) -> bool:
        return self.source is not None


class BeforeSource(Protocol):
    """Supplies the pre-change content of a file."""

    def load(self, path: str) -> BeforeVersion: ...


class NoBeforeSource:
    """No baseline configured: every before side is unavailable."""

    def load(self, path: str) -> BeforeVersion:
        return BeforeVersion.unavailable("no baseline configured")


class DirectoryBeforeSource:
    """Before versions read from a checkout of the base revision.

    Args:
        baseline_root: Root directory of the baseline checkout
    """

    def __init__(self, baseline_root: str):
        self.baseline_root = os.path.abspath(baseline_root)

    def load(self, path: str) -> BeforeVersion:
        rel_path = normalize_path(path)
        full = os.path.abspath(os.path.join(self.baseline_root, rel_path))
        if not full.startswith(self.baseline_root + os.sep):
            return BeforeVersion.unavailable(f"{path} lies outside the baseline")
        if not os.path.isfile(full):
            return BeforeVersion.unavailable(f"{path} not present in baseline")
        try:
            with open(full, "r", encoding="utf-8", errors="replace") as f:
                text = f.read()
        except OSError as e:
            return BeforeVersion.unavailable(f"cannot read baseline file: {e}")
        return BeforeVersion.available(SourceFile(rel_path, text, detect_language(rel_path)))


class GitBeforeSource:
    """Before versions read from a git revision.

    The revision is resolved to a commit once, so every file is read from the
    same commit even if the ref moves during the run.

    Args:
        project_root: Project root (may be a subdirectory of the repository)
        base_ref: Base revision of the change
    """

    def __init__(self, project_root: str, base_ref: str):
        self.project_root = os.path.abspath(project_root)
        self.base_ref = base_ref
        self.repo_dir = find_git_repo(self.project_root)
        self.commit = get_commit_hash(self.repo_dir, base_ref) if self.repo_dir is not None else None

    def load(self, path: str) -> BeforeVersion:
        if self.repo_dir is None:
            return BeforeVersion.unavailable("project is not inside a git repository")
        if self.commit is None:
            return BeforeVersion.unavailable(f"unknown revision {self.base_ref}")
        rel_path = normalize_path(path)
        prefix = normalize_path(os.path.relpath(os.path.realpath(self.project_root), os.path.realpath(self.repo_dir)))
        candidates = [rel_path] if prefix == "." else [f"{prefix}/{rel_path}", rel_path]
        for repo_rel in candidates:
            text = read_file_at_ref(self.repo_dir, self.commit, repo_rel)
            if text is None:
                continue
            project_rel = repo_rel[len(prefix) + 1 :] if prefix != "." and repo_rel.startswith(prefix + "/") else rel_path
            return BeforeVersion.available(SourceFile(project_rel, text, detect_language(project_rel)))
        return BeforeVersion.unavailable(f"{path} does not exist at {self.base_ref}")


@dataclass(frozen=True)
class ResolvedFileChange:
    """A diff entry mapped to its before and after sources."""

    change: FileChange
    before: BeforeVersion
    after: Optional[SourceFile]

    @property
    def path(self) -> str:
        """Project-relative path of the file after the change (before path for deletions)."""
        if self.after is not None:
            return self.after.path
        if self.before.source is not None:
            return self.before.source.path
        return clean_diff_path(self.change.effective_path)


def resolve_changes(
    diff: ParsedDiff, resolver: FileResolver, before_source: BeforeSource, include_tests: bool = False
) -> Tuple[List[ResolvedFileChange], List[Diagnostic]]:
    """RESOLVE and RECONSTRUCT: map diff entries to sources.

    Returns:
        Tuple of (resolved changes, diagnostics for dropped entries and missing before sides)
    """
    resolved: List[ResolvedFileChange] = []
    diagnostics: List[Diagnostic] = []

    for change in diff.file_changes:
        paths = [p for p in (change.original_path, change.new_path) if p and p != DEV_NULL]
        if not any(is_source_file(p) for p in paths):
            continue
        if not include_tests and any(is_test_path(clean_diff_path(p)) for p in paths):
            logger.debug("Skipping test file %s", change.effective_path)
            continue

        after: Optional[SourceFile] = None
        if change.change_kind != ChangeKind.DELETED:
            after_path = resolver.resolve(change.new_path)
            if after_path is not None:
                try:
                    after = resolver.read(after_path)
                except OSError as e:
                    logger.warning("Cannot read %s: %s", after_path, e)

        if change.change_kind == ChangeKind.ADDED:
            before = BeforeVersion.unavailable("file added")
        elif change.change_kind == ChangeKind.MODIFIED and after is not None:
            before = before_source.load(after.path)
        else:
            before = before_source.load(clean_diff_path(change.original_path))

        if after is None and not before.is_available:
            logger.warning("Could not resolve %s on either side of the change; skipping", change.effective_path)
            diagnostics.append(Diagnostic(DiagnosticKind.UNRESOLVED_PATH, change.effective_path, "not found before or after the change"))
            continue

        if not before.is_available and change.change_kind != ChangeKind.ADDED:
            logger.warning("No before version of %s: %s", change.effective_path, before.reason)
            diagnostics.append(Diagnostic(DiagnosticKind.BEFORE_UNAVAILABLE, change.effective_path, before.reason))

        resolved.append(ResolvedFileChange(change, before, after))

    logger.info("Resolved %d of %d changed files", len(resolved), len(diff))
    return resolved, diagnostics


def separate_versions(changes: Sequence[ResolvedFileChange], provider: FactProvider) -> Tuple[List[ResolvedFileChange], List[Diagnostic]]:
    """RECONSTRUCT: drop before sides whose facts would be the after facts.

    A snapshot entry recorded without a content hash answers every version of
    its path, so a changed file covered only by such an entry has no
    measurable before side.
    """
    if not isinstance(provider, SnapshotFactProvider):
        return list(changes), []

    result: List[ResolvedFileChange] = []
    diagnostics: List[Diagnostic] = []
    for resolved in changes:
        before, after = resolved.before.source, resolved.after
        if before is not None and after is not None and before.text != after.text and provider.serves_same_entry(before, after):
            reason = "recorded facts are not tied to a file version"
            logger.warning("No before version of %s: %s", after.path, reason)
            diagnostics.append(Diagnostic(DiagnosticKind.BEFORE_UNAVAILABLE, after.path, reason))
            resolved = replace(resolved, before=BeforeVersion.unavailable(reason))
        result.append(resolved)
    return result, diagnostics


def build_before_corpus(after_corpus: Sequence[SourceFile], changes: Sequence[ResolvedFileChange]) -> List[SourceFile]:
    """The project as it was: changed files swapped for their before versions.

    Added files are left out. A changed file without an available before
    version keeps its after text so its dependents are measured against the
    same classes on both sides; its own classes are reported as not measured.
    """
    corpus: Dict[str, SourceFile] = {source.path: source for source in after_corpus}
    for resolved in changes:
        if resolved.before.source is not None:
            if resolved.after is not None:
                corpus.pop(resolved.after.path, None)
            corpus[resolved.before.source.path] = resolved.before.source
        elif resolved.change.change_kind == ChangeKind.ADDED and resolved.after is not None:
            corpus.pop(resolved.after.path, None)
    return [corpus[path] for path in sorted(corpus)]


# =============================================================================
# IMPACT
# =============================================================================


@dataclass(frozen=True)
class MethodChange:
    """A change to a method of a changed class."""

    class_name: str
    method_name: str
    impact_type: MethodImpactType


@dataclass(frozen=True)
class DependencyImpact:
    """A dependent reached while propagating a change.

    Attributes:
        affected_file: File of the dependent class
        affected_class: Dependent class
        dependency_kind: Kind of the traversed edge
        dependency_name: Class the dependent depends on
        severity: Severity derived from the dependency kind
        depth: Hops from the changed class (1 = direct dependent)
    """

    affected_file: str
    affected_class: str
    dependency_kind: DependencyKind
    dependency_name: str
    severity: ImpactSeverity
    depth: int


@dataclass(frozen=True)
class MethodImpact:
    """A dependent that uses a changed method."""

    affected_file: str
    affected_class: str
    method_name: str
    class_name: str
    impact_type: MethodImpactType
    severity: ImpactSeverity


@dataclass(frozen=True)
class ImpactMetrics:
    total_affected: int
    impact_percentage: float
    risk_level: str
    severity_distribution: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ImpactAnalysis:
    directly_affected_files: Tuple[str, ...]
    indirectly_affected_files: Tuple[str, ...]
    dependency_impacts: Tuple[DependencyImpact, ...]
    method_impacts: Tuple[MethodImpact, ...]
    impact_metrics: ImpactMetrics


def _signature_key(method: MethodFact) -> Tuple[int, Tuple[str, ...], str]:
    return (method.parameter_count, method.parameter_types, method.return_type)


def detect_method_changes(before: ClassFact, after: ClassFact) -> List[MethodChange]:
    """Compare the methods of two versions of a class, grouped by name.

    A vanished name is a REMOVAL; a different set of (arity, parameter types,
    return type) among the overloads is a SIGNATURE_CHANGE; otherwise a
    different visibility is a VISIBILITY_CHANGE and a different body a
    BEHAVIOR_CHANGE.
    """
    changes = []
    for name in sorted(before.method_names):
        old = before.find_method(name)
        new = after.find_method(name)
        if not new:
            impact = MethodImpactType.REMOVAL
        elif sorted(_signature_key(m) for m in old) != sorted(_signature_key(m) for m in new):
            impact = MethodImpactType.SIGNATURE_CHANGE
        elif sorted(m.visibility for m in old) != sorted(m.visibility for m in new):
            impact = MethodImpactType.VISIBILITY_CHANGE
        elif sorted((m.body_text, m.line_count) for m in old) != sorted((m.body_text, m.line_count) for m in new) or [
            m.body for m in sorted(old, key=_signature_key)
        ] != [m.body for m in sorted(new, key=_signature_key)]:
            impact = MethodImpactType.BEHAVIOR_CHANGE
        else:
            continue
        changes.append(MethodChange(after.qualified_name, name, impact))
    return changes


def _changed_line_text(change: FileChange) -> str:
    return "\n".join(line.content for hunk in change.hunks for line in hunk.added_lines + hunk.removed_lines)


def _mentions(text: str, name: str) -> bool:
    return re.search(rf"(?<![A-Za-z0-9_$]){re.escape(name)}(?![A-Za-z0-9_$])", text) is not None


def collect_method_changes(
    changes: Sequence[ResolvedFileChange], before_report: Optional[ProjectReport], after_report: ProjectReport
) -> List[MethodChange]:
    """Method changes of every changed class.

    With a before version the two fact sheets are compared. Without one, the
    methods whose names occur on changed diff lines are reported as behavior
    changes. Classes of deleted files report every method as removed.
    """
    result: List[MethodChange] = []
    for resolved in changes:
        after_classes = [a.fact for a in after_report.classes if resolved.after is not None and a.file_path == resolved.after.path]
        before_classes: List[ClassFact] = []
        if before_report is not None and resolved.before.source is not None:
            before_classes = [a.fact for a in before_report.classes if a.file_path == resolved.before.source.path]
        before_by_name = {c.qualified_name: c for c in before_classes}

        if resolved.before.is_available:
            for cls in after_classes:
                old = before_by_name.get(cls.qualified_name)
                if old is not None:
                    result.extend(detect_method_changes(old, cls))
            after_names = {c.qualified_name for c in after_classes}
            for name, old in sorted(before_by_name.items()):
                if name not in after_names:
                    result.extend(MethodChange(name, m, MethodImpactType.REMOVAL) for m in sorted(old.method_names))
        elif resolved.change.change_kind != ChangeKind.ADDED:
            changed_text = _changed_line_text(resolved.change)
            for cls in after_classes:
                for name in sorted(cls.method_names):
                    if _mentions(changed_text, name):
                        result.append(MethodChange(cls.qualified_name, name, MethodImpactType.BEHAVIOR_CHANGE))
    return result


def compute_impact(
    after_report: ProjectReport,
    changed_files: Sequence[str],
    method_changes: Sequence[MethodChange] = (),
    before_report: Optional[ProjectReport] = None,
) -> ImpactAnalysis:
    """IMPACT: propagate a change through the dependency graph.

    Dependents are found breadth-first over incoming edges of the after graph,
    one hop per round, until no new class is reached. Classes removed by the
    change are looked up in the before graph.

    Args:
        after_report: Report of the changed project
        changed_files: Project-relative paths of the changed files
        method_changes: Method changes of the changed classes
        before_report: Report of the project before the change, if available

    Returns:
        ImpactAnalysis
    """
    direct_files = set(changed_files)
    after_graph = after_report.dependency_graph
    file_of: Dict[str, str] = {a.class_name: a.file_path for a in after_report.classes}
    text_of: Dict[str, str] = {a.class_name: searchable_text(a.fact) for a in after_report.classes}

    seeds = sorted(a.class_name for a in after_report.classes if a.file_path in direct_files)
    removed: List[str] = []
    if before_report is not None:
        removed = sorted(a.class_name for a in before_report.classes if a.file_path in direct_files and a.class_name not in file_of)

    visited: Set[str] = set(seeds) | set(removed)
    dependency_impacts: List[DependencyImpact] = []

    def dependents(class_name: str) -> List[Tuple[str, DependencyKind]]:
        if class_name in file_of:
            return [(dep, after_graph.edge_kind(dep, class_name)) for dep in after_graph.dependents_of(class_name)]
        if before_report is not None:
            before_graph = before_report.dependency_graph
            # Dependents of a removed class that still exist after the change
            return [(dep, before_graph.edge_kind(dep, class_name)) for dep in before_graph.dependents_of(class_name) if dep in file_of]
        return []

    frontier = seeds + removed
    depth = 1
    while frontier:
        next_frontier: List[str] = []
        for class_name in frontier:
            for dependent, kind in dependents(class_name):
                if file_of[dependent] in direct_files:
                    continue
                dependency_impacts.append(
                    DependencyImpact(file_of[dependent], dependent, kind, class_name, SEVERITY_BY_KIND[kind], depth)
                )
                if dependent not in visited:
                    visited.add(dependent)
                    next_frontier.append(dependent)
        frontier = sorted(next_frontier)
        depth += 1

    indirect_files = sorted({file_of[name] for name in visited if name in file_of} - direct_files)

    method_impacts: List[MethodImpact] = []
    for change in method_changes:
        for dependent, _ in dependents(change.class_name):
            if dependent == change.class_name:
                continue
            if _mentions(text_of[dependent], change.method_name) or change.impact_type in _BREAKING_IMPACTS:
                method_impacts.append(
                    MethodImpact(
                        file_of[dependent],
                        dependent,
                        change.method_name,
                        change.class_name,
                        change.impact_type,
                        SEVERITY_BY_METHOD_IMPACT[change.impact_type],
                    )
                )

    total_affected = len(direct_files) + len(indirect_files)
    ratio = optional_ratio(total_affected, after_report.file_count)
    percentage = round(min(100.0, ratio * 100), 2) if ratio is not None else 0.0

    distribution: Dict[str, int] = {}
    for impact in dependency_impacts:
        distribution[impact.severity.value] = distribution.get(impact.severity.value, 0) + 1

    metrics = ImpactMetrics(
        total_affected=total_affected,
        impact_percentage=percentage,
        risk_level=lookup_ladder(percentage, IMPACT_RISK_LADDER, IMPACT_RISK_FLOOR, strict=True),
        severity_distribution=distribution,
    )
    logger.info("Impact: %d direct, %d indirect files (%.1f%%, %s)", len(direct_files), len(indirect_files), percentage, metrics.risk_level)

    return ImpactAnalysis(
        directly_affected_files=tuple(sorted(direct_files)),
        indirectly_affected_files=tuple(indirect_files),
        dependency_impacts=tuple(dependency_impacts),
        method_impacts=tuple(method_impacts),
        impact_metrics=metrics,
    )


# =============================================================================
# COMPARE / SUMMARIZE
# =============================================================================


@dataclass(frozen=True)
class MetricChange:
    """A metric that differs between the before and after version of a class.

    Attributes:
        class_name: Qualified class name
        metric: Metric name (CK metric name or "quality_score")
        before: Value before the change
        after: Value after the change
        delta: after - before
        percentage_change: delta / before * 100, None when before is 0
        improvement: True when the change makes the class better
        significant: False when |percentage_change| is below the configured threshold
    """

    class_name: str
    metric: str
    before: float
    after: float
    delta: float
    percentage_change: Optional[float]
    improvement: bool
    significant: bool = True


@dataclass(frozen=True)
class OverallImpact:
    total_improvements: int
    total_regressions: int
    net_impact: int
    impact_level: str


@dataclass(frozen=True)
class MetricsComparison:
    """Result of comparing two reports.

    Attributes:
        improvements: Significant improvements
        regressions: Significant regressions
        insignificant: Changes below the improvement threshold (not counted)
        not_measured: Classes whose before version was unavailable
        added_classes: Classes that only exist after the change
        removed_classes: Classes that only existed before the change
        overall: Net summary
    """

    improvements: Tuple[MetricChange, ...]
    regressions: Tuple[MetricChange, ...]
    insignificant: Tuple[MetricChange, ...]
    not_measured: Tuple[str, ...]
    added_classes: Tuple[str, ...]
    removed_classes: Tuple[str, ...]
    overall: OverallImpact


def overall_impact(improvements: int, regressions: int) -> OverallImpact:
    """SUMMARIZE: net = improvements - regressions mapped onto the net impact ladder."""
    net = improvements - regressions
    if net < 0:
        level = NET_IMPACT_NEGATIVE
    elif net == 0:
        level = NET_IMPACT_ZERO
    else:
        level = lookup_ladder(net, NET_IMPACT_LADDER, NET_IMPACT_ZERO, strict=True)
    return OverallImpact(improvements, regressions, net, level)


def metric_change(class_name: str, metric: str, before: float, after: float, higher_is_better: bool, threshold: float) -> MetricChange:
    delta = after - before
    ratio = optional_ratio(delta, before)
    percentage = round(ratio * 100, 2) if ratio is not None else None
    improvement = delta > 0 if higher_is_better else delta < 0
    significant = percentage is None or abs(percentage) >= threshold
    return MetricChange(class_name, metric, before, after, round(delta, 4), percentage, improvement, significant)


def compare_reports(
    before_report: Optional[ProjectReport],
    after_report: ProjectReport,
    scope: Optional[Set[str]] = None,
    not_measured: Sequence[str] = (),
    min_improvement_threshold: float = 5.0,
) -> MetricsComparison:
    """COMPARE: diff the metrics of classes present in both reports.

    Args:
        before_report: Report before the change (None when nothing could be measured)
        after_report: Report after the change
        scope: Class names to compare; every class when None
        not_measured: Classes whose before version was unavailable (excluded from comparison)
        min_improvement_threshold: Percent change below which a change is insignificant

    Returns:
        MetricsComparison
    """
    skipped = set(not_measured)
    after_classes = {a.class_name: a for a in after_report.classes if scope is None or a.class_name in scope}
    before_classes = {}
    if before_report is not None:
        before_classes = {a.class_name: a for a in before_report.classes if scope is None or a.class_name in scope}

    improvements: List[MetricChange] = []
    regressions: List[MetricChange] = []
    insignificant: List[MetricChange] = []

    for name in sorted(set(after_classes) & set(before_classes) - skipped):
        old, new = before_classes[name], after_classes[name]
        changes = [
            metric_change(name, metric, getattr(old.metrics, metric), getattr(new.metrics, metric), False, min_improvement_threshold)
            for metric in METRIC_NAMES
            if getattr(old.metrics, metric) != getattr(new.metrics, metric)
        ]
        if old.quality.overall != new.quality.overall:
            changes.append(metric_change(name, "quality_score", old.quality.overall, new.quality.overall, True, min_improvement_threshold))

        for change in changes:
            if not change.significant:
                insignificant.append(change)
            elif change.improvement:
                improvements.append(change)
            else:
                regressions.append(change)

    added = sorted(set(after_classes) - set(before_classes) - skipped)
    removed = sorted(set(before_classes) - set(after_classes))

    return MetricsComparison(
        improvements=tuple(improvements),
        regressions=tuple(regressions),
        insignificant=tuple(insignificant),
        not_measured=tuple(sorted(skipped & set(after_classes))),
        added_classes=tuple(added),
        removed_classes=tuple(removed),
        overall=overall_impact(len(improvements), len(regressions)),
    )


# =============================================================================
# Driver
# =============================================================================


@dataclass(frozen=True)
class PRDiffResult:
    """Everything produced by a PR review run."""

    parsed_diff: ParsedDiff
    resolved_files: Tuple[ResolvedFileChange, ...]
    before_report: Optional[ProjectReport]
    after_report: ProjectReport
    method_changes: Tuple[MethodChange, ...]
    impact: ImpactAnalysis
    comparison: MetricsComparison
    diagnostics: Tuple[Diagnostic, ...]
    options: AnalysisOptions


class PRDiffAnalyzer:
    """Runs the review stages for one project.

    Args:
        project_root: Root of the changed project (the after side)
        provider: Fact provider for both sides
        before_source: Supplier of before versions (none when None)
        options: Run options
    """

    def __init__(
        self,
        project_root: str,
        provider: FactProvider,
        before_source: Optional[BeforeSource] = None,
        options: Optional[AnalysisOptions] = None,
    ):
        self.project_root = os.path.abspath(project_root)
        self.provider = provider
        self.before_source: BeforeSource = before_source if before_source is not None else NoBeforeSource()
        self.options = options if options is not None else AnalysisOptions()
        self.resolver = FileResolver(self.project_root)

    def _after_corpus(self) -> List[SourceFile]:
        paths = discover_source_files(self.project_root, self.options.include_tests)
        if not paths:
            raise EmptyCorpusError(f"No Kotlin or Java source files found under {self.project_root}")
        corpus = []
        for path in paths:
            try:
                corpus.append(self.resolver.read(path))
            except OSError as e:
                logger.warning("Cannot read %s: %s", path, e)
        return corpus

    def analyze(self, diff: ParsedDiff) -> PRDiffResult:
        """Run RESOLVE, RECONSTRUCT, IMPACT, COMPARE and SUMMARIZE on a diff."""
        resolved, diagnostics = resolve_changes(diff, self.resolver, self.before_source, self.options.include_tests)
        resolved, version_diagnostics = separate_versions(resolved, self.provider)
        diagnostics.extend(version_diagnostics)

        after_corpus = self._after_corpus()
        for item in resolved:
            if item.after is not None and item.after.path not in {s.path for s in after_corpus}:
                after_corpus.append(item.after)
        before_corpus = build_before_corpus(after_corpus, resolved)
        has_before = bool(before_corpus)

        with ThreadPoolExecutor(max_workers=2) as executor:
            after_future = executor.submit(analyze_sources, after_corpus, self.provider, self.options)
            before_future = executor.submit(analyze_sources, before_corpus, self.provider, self.options) if has_before else None
            after_report = after_future.result()
            before_report = before_future.result() if before_future is not None else None

        changed_files = sorted({item.path for item in resolved})
        method_changes = collect_method_changes(resolved, before_report, after_report)
        impact = compute_impact(after_report, changed_files, method_changes, before_report)

        unavailable_files = {item.path for item in resolved if not item.before.is_available and item.change.change_kind != ChangeKind.ADDED}
        not_measured = [a.class_name for a in after_report.classes if a.file_path in unavailable_files]
        changed_classes = {a.class_name for a in after_report.classes if a.file_path in changed_files}
        if before_report is not None:
            changed_classes |= {a.class_name for a in before_report.classes if a.file_path in changed_files}
        scope = changed_classes | {d.affected_class for d in impact.dependency_impacts}

        comparison = compare_reports(before_report, after_report, scope, not_measured, self.options.min_improvement_threshold)
        logger.info(
            "Comparison: %d improvements, %d regressions, %d not measured",
            len(comparison.improvements),
            len(comparison.regressions),
            len(comparison.not_measured),
        )

        return PRDiffResult(
            parsed_diff=diff,
            resolved_files=tuple(resolved),
            before_report=before_report,
            after_report=after_report,
            method_changes=tuple(method_changes),
            impact=impact,
            comparison=comparison,
            diagnostics=tuple(diagnostics) + after_report.diagnostics,
            options=self.options,
        )


def analyze_pr_diff(
    diff_path: str,
    project_root: str,
    provider: FactProvider,
    before_source: Optional[BeforeSource] = None,
    options: Optional[AnalysisOptions] = None,
) -> PRDiffResult:
    """Read a diff file and review it against a project.

    Raises:
        DiffInputError: If the diff file is missing or unreadable
        EmptyCorpusError: If the project has no source files
    """
    diff = parse_diff_file(diff_path)
    return PRDiffAnalyzer(project_root, provider, before_source, options).analyze(diff)


def changed_class_names(result: PRDiffResult) -> FrozenSet[str]:
    """Classes declared in the changed files after the change."""
    changed = set(result.impact.directly_affected_files)
    return frozenset(a.class_name for a in result.after_report.classes if a.file_path in changed)
