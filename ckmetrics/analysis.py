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
"""Analysis pipeline: source files -> class facts -> ProjectReport.

Per-class calculations that need only the class itself (complexity, LCOM)
may run on a thread pool. Inheritance and coupling need the complete corpus
and start once every fact has been collected.
"""

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .cohesion import calculate_lcom
from .complexity import class_complexity
from .config import AnalysisOptions
from .constants import EmptyCorpusError
from .coupling import CouplingIndex, calculate_ca, calculate_cbo, calculate_ce, calculate_rfc
from .dependency_graph import DependencyGraph, build_dependency_graph, layer_dependency_stats
from .fact_store import FactProvider, ParseError, SourceFile
from .facts import ClassFact
from .file_utils import discover_source_files, read_source_file
from .inheritance import InheritanceIndex, calculate_dit, calculate_noc
from .metrics_types import ClassAnalysis, CkMetrics, ComplexityAnalysis, Diagnostic, DiagnosticKind, ProjectReport, RiskPriority
from .patterns import architecture_score, best_pattern, find_entity_names
from .quality import assess_risk, calculate_project_score, calculate_quality_score, generate_suggestions

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def _map(func: Callable[[T], R], items: Sequence[T], workers: int) -> List[R]:
    """Order-preserving map, on a thread pool when workers > 1."""
    if workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(func, items))


def collect_facts(sources: Iterable[SourceFile], provider: FactProvider) -> Tuple[List[ClassFact], List[Diagnostic], int]:
    """Ask the provider for the facts of every source file.

    Parse failures are recorded as diagnostics and the file is skipped.

    Args:
        sources: Source files to analyze
        provider: Fact provider

    Returns:
        Tuple of (class facts, diagnostics, number of files that produced facts)
    """
    classes: List[ClassFact] = []
    diagnostics: List[Diagnostic] = []
    file_count = 0
    for source in sources:
        result = provider.produce_facts(source)
        if isinstance(result, ParseError):
            logger.warning("Failed to parse %s: %s", result.path, result.message)
            diagnostics.append(Diagnostic(DiagnosticKind.PARSE_FAILURE, result.path, result.message))
            continue
        file_count += 1
        for cls in result:
            if not cls.file_path:
                cls = dataclasses.replace(cls, file_path=source.path)
            classes.append(cls)
    return classes, diagnostics, file_count


def _deduplicate(classes: Sequence[ClassFact], diagnostics: List[Diagnostic]) -> List[ClassFact]:
    seen: Dict[str, ClassFact] = {}
    for cls in classes:
        if cls.qualified_name in seen:
            logger.warning("Duplicate class %s in %s and %s", cls.qualified_name, seen[cls.qualified_name].file_path, cls.file_path)
            diagnostics.append(
                Diagnostic(DiagnosticKind.PARSE_FAILURE, cls.file_path, f"duplicate class {cls.qualified_name} ignored")
            )
            continue
        seen[cls.qualified_name] = cls
    return sorted(seen.values(), key=lambda c: c.qualified_name)


def analyze_classes(
    classes: Sequence[ClassFact],
    options: Optional[AnalysisOptions] = None,
    diagnostics: Sequence[Diagnostic] = (),
    file_count: Optional[int] = None,
) -> ProjectReport:
    """Compute the full report for a set of class facts.

    Args:
        classes: Class facts of the corpus
        options: Run options (defaults when None)
        diagnostics: Diagnostics collected before analysis (parse failures)
        file_count: Number of files that produced facts (distinct fact paths when None)

    Returns:
        Immutable ProjectReport
    """
    if options is None:
        options = AnalysisOptions()
    all_diagnostics = list(diagnostics)
    facts = _deduplicate(classes, all_diagnostics)
    logger.info("Analyzing %d classes", len(facts))

    complexities: List[ComplexityAnalysis] = _map(lambda c: class_complexity(c.methods), facts, options.workers)
    lcoms: List[int] = _map(calculate_lcom, facts, options.workers)

    # Barrier: the indexes need every fact
    inheritance = InheritanceIndex(facts)
    coupling = CouplingIndex(facts)

    metrics_list: List[CkMetrics] = []
    in_cycle: List[bool] = []
    reported_cycles = set()
    for class_id, cls in enumerate(facts):
        dit = calculate_dit(inheritance, class_id)
        for raw in inheritance.unresolved[class_id]:
            logger.debug("Unresolved supertype %s of %s treated as external", raw, cls.qualified_name)
            all_diagnostics.append(Diagnostic(DiagnosticKind.UNRESOLVED_REFERENCE, cls.qualified_name, f"supertype {raw} is external"))
        if dit.has_cycle:
            members = tuple(sorted(facts[i].qualified_name for i in dit.cycle))
            if members not in reported_cycles:
                reported_cycles.add(members)
                logger.warning("Inheritance cycle: %s", " -> ".join(members))
                all_diagnostics.append(Diagnostic(DiagnosticKind.CYCLE_DETECTED, members[0], "inheritance cycle: " + ", ".join(members)))
        in_cycle.append(dit.has_cycle and class_id in dit.cycle)

        total = complexities[class_id].total
        metrics_list.append(
            CkMetrics(
                wmc=total,
                dit=dit.depth,
                noc=calculate_noc(inheritance, class_id),
                cbo=calculate_cbo(coupling, cls),
                rfc=calculate_rfc(cls),
                ca=calculate_ca(coupling, cls),
                ce=calculate_ce(coupling, cls),
                lcom=lcoms[class_id],
                cyclomatic_complexity=total,
            )
        )

    entity_names = find_entity_names(facts)
    patterns = {cls.qualified_name: best_pattern(cls, entity_names) for cls in facts}
    roles = {name: (match.kind.value if match else None) for name, match in patterns.items()}

    graph: DependencyGraph = build_dependency_graph(facts, coupling.all_references(), roles)
    for cycle in graph.cycles:
        all_diagnostics.append(
            Diagnostic(DiagnosticKind.CYCLE_DETECTED, cycle.nodes[0], f"{cycle.severity} dependency cycle: " + " -> ".join(cycle.nodes))
        )

    layers = {node.id: node.layer for node in graph.nodes}
    layer_stats = layer_dependency_stats(graph.graph, layers)

    analyses: List[ClassAnalysis] = []
    for class_id, cls in enumerate(facts):
        metrics = metrics_list[class_id]
        complexity = complexities[class_id]
        match = patterns[cls.qualified_name]
        valid, total_deps = layer_stats.get(cls.qualified_name, (0, 0))
        arch = architecture_score(valid, total_deps, match.confidence if match else 0.0)
        quality = calculate_quality_score(metrics, arch, complexity.average)
        risk = assess_risk(metrics, quality, options.thresholds)
        analyses.append(
            ClassAnalysis(
                fact=cls,
                metrics=metrics,
                complexity=complexity,
                quality=quality,
                risk=risk,
                suggestions=generate_suggestions(cls, metrics, complexity, options.thresholds),
                role=roles[cls.qualified_name],
                layer=layers.get(cls.qualified_name),
                in_inheritance_cycle=in_cycle[class_id],
            )
        )

    summary = {
        "total_classes": len(analyses),
        "critical_risk": sum(1 for a in analyses if a.risk.priority == RiskPriority.CRITICAL),
        "high_risk": sum(1 for a in analyses if a.risk.priority == RiskPriority.HIGH),
        "medium_risk": sum(1 for a in analyses if a.risk.priority == RiskPriority.MEDIUM),
        "low_risk": sum(1 for a in analyses if a.risk.priority == RiskPriority.LOW),
        "complex_methods": sum(len(a.complexity.complex_methods) for a in analyses),
        "dependency_cycles": len(graph.cycles),
        "inheritance_cycles": len(reported_cycles),
        "layer_violations": len(graph.layer_violations),
        "parse_failures": sum(1 for d in all_diagnostics if d.kind == DiagnosticKind.PARSE_FAILURE),
    }

    return ProjectReport(
        timestamp=datetime.now().isoformat(timespec="seconds"),
        classes=tuple(analyses),
        dependency_graph=graph,
        project_quality=calculate_project_score([a.quality for a in analyses]),
        diagnostics=tuple(all_diagnostics),
        file_count=file_count if file_count is not None else len({c.file_path for c in facts}),
        summary=summary,
    )


def analyze_sources(sources: Sequence[SourceFile], provider: FactProvider, options: Optional[AnalysisOptions] = None) -> ProjectReport:
    """Collect facts for the given files and analyze them."""
    classes, diagnostics, file_count = collect_facts(sources, provider)
    return analyze_classes(classes, options, diagnostics, file_count)


def analyze_project(project_root: str, provider: FactProvider, options: Optional[AnalysisOptions] = None) -> ProjectReport:
    """Discover, parse and analyze every source file of a project.

    Args:
        project_root: Project root directory
        provider: Fact provider
        options: Run options

    Returns:
        ProjectReport

    Raises:
        ValidationError: If project_root is not a directory
        EmptyCorpusError: If no supported source file is found
    """
    if options is None:
        options = AnalysisOptions()
    paths = discover_source_files(project_root, options.include_tests)
    if not paths:
        raise EmptyCorpusError(f"No Kotlin or Java source files found under {project_root}")

    sources = []
    diagnostics = []
    for path in paths:
        try:
            sources.append(read_source_file(project_root, path))
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            diagnostics.append(Diagnostic(DiagnosticKind.PARSE_FAILURE, path, f"unreadable: {e}"))

    classes, parse_diagnostics, file_count = collect_facts(sources, provider)
    return analyze_classes(classes, options, diagnostics + parse_diagnostics, file_count)


def ordered_classes(report: ProjectReport, options: Optional[AnalysisOptions] = None) -> List[ClassAnalysis]:
    """Classes in display order: by risk, or by the metric family the options focus on."""
    if options is not None and options.focus_on_complexity:
        return sorted(report.classes, key=lambda a: (-a.metrics.wmc, -a.complexity.max, a.class_name))
    if options is not None and options.focus_on_coupling:
        return sorted(report.classes, key=lambda a: (-(a.metrics.cbo + a.metrics.ca), a.class_name))
    return report.classes_by_priority()
