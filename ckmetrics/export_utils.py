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
"""Export utilities for writing analysis results to various file formats.

Reports are written as JSON documents carrying a `_schema_version` field and
sorted keys so that identical runs produce identical files. Dependency graphs
are written through NetworkX (GraphML, GEXF or node-link JSON).
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import networkx as nx
from networkx.readwrite import json_graph

from .constants import SUPPORTED_GRAPH_FORMATS, ValidationError
from .dependency_graph import DependencyGraph
from .impact import MetricChange, PRDiffResult
from .metrics_types import ClassAnalysis, Diagnostic, ProjectReport

logger = logging.getLogger(__name__)

REPORT_SCHEMA_VERSION = "1.0"


def _diagnostic_to_dict(diagnostic: Diagnostic) -> Dict[str, str]:
    return {"kind": diagnostic.kind.value, "subject": diagnostic.subject, "message": diagnostic.message}


def class_analysis_to_dict(analysis: ClassAnalysis) -> Dict[str, Any]:
    """Convert a ClassAnalysis into JSON-compatible data."""
    return {
        "class_name": analysis.class_name,
        "file_path": analysis.file_path,
        "language": analysis.fact.language.value,
        "metrics": analysis.metrics.as_dict(),
        "complexity": {
            "total": analysis.complexity.total,
            "average": analysis.complexity.average,
            "max": analysis.complexity.max,
            "complex_methods": [m.name for m in analysis.complexity.complex_methods],
        },
        "quality": analysis.quality.as_dict(),
        "quality_level": analysis.quality.quality_level,
        "risk": {
            "priority": analysis.risk.priority.name,
            "reasons": list(analysis.risk.reasons),
            "impact": analysis.risk.impact,
        },
        "suggestions": [{"category": s.category, "message": s.message, "detail": s.detail} for s in analysis.suggestions],
        "role": analysis.role,
        "layer": analysis.layer,
        "in_inheritance_cycle": analysis.in_inheritance_cycle,
    }


def dependency_graph_to_dict(graph: DependencyGraph) -> Dict[str, Any]:
    """Convert a DependencyGraph into JSON-compatible data (without the NetworkX graph)."""
    return {
        "nodes": [
            {
                "id": n.id,
                "name": n.name,
                "file_path": n.file_path,
                "package": n.package,
                "node_type": n.node_type.value,
                "layer": n.layer,
                "role": n.role,
                "language": n.language.value,
            }
            for n in graph.nodes
        ],
        "edges": [{"from": e.from_id, "to": e.to_id, "kind": e.kind.value, "strength": e.strength} for e in graph.edges],
        "cycles": [{"nodes": list(c.nodes), "severity": c.severity, "has_inheritance": c.has_inheritance} for c in graph.cycles],
        "packages": [
            {
                "name": p.name,
                "classes": list(p.classes),
                "dependencies": list(p.dependencies),
                "layer": p.layer,
                "cohesion": p.cohesion,
                "coupling": p.coupling,
            }
            for p in graph.packages
        ],
        "layer_violations": [
            {"from": v.from_class, "to": v.to_class, "from_layer": v.from_layer, "to_layer": v.to_layer, "kind": v.kind.value}
            for v in graph.layer_violations
        ],
        "architecture_pattern": graph.architecture_pattern,
    }


def project_report_to_dict(report: ProjectReport) -> Dict[str, Any]:
    """Convert a ProjectReport into JSON-compatible data."""
    return {
        "timestamp": report.timestamp,
        "file_count": report.file_count,
        "summary": dict(report.summary),
        "project_quality": report.project_quality.as_dict(),
        "classes": [class_analysis_to_dict(a) for a in report.classes],
        "dependency_graph": dependency_graph_to_dict(report.dependency_graph),
        "diagnostics": [_diagnostic_to_dict(d) for d in report.diagnostics],
    }


def _metric_change_to_dict(change: MetricChange) -> Dict[str, Any]:
    return {
        "class_name": change.class_name,
        "metric": change.metric,
        "before": change.before,
        "after": change.after,
        "delta": change.delta,
        "percentage_change": change.percentage_change,
        "improvement": change.improvement,
    }


def impact_result_to_dict(result: PRDiffResult) -> Dict[str, Any]:
    """Convert a PRDiffResult into JSON-compatible data."""
    impact = result.impact
    comparison = result.comparison
    return {
        "changed_files": [
            {
                "path": r.path,
                "change_kind": r.change.change_kind.value,
                "added_lines": r.change.added_count,
                "removed_lines": r.change.removed_count,
                "before_available": r.before.is_available,
                "before_reason": r.before.reason or None,
            }
            for r in result.resolved_files
        ],
        "impact": {
            "directly_affected_files": list(impact.directly_affected_files),
            "indirectly_affected_files": list(impact.indirectly_affected_files),
            "dependency_impacts": [
                {
                    "affected_file": d.affected_file,
                    "affected_class": d.affected_class,
                    "dependency_kind": d.dependency_kind.value,
                    "dependency_name": d.dependency_name,
                    "severity": d.severity.value,
                    "depth": d.depth,
                }
                for d in impact.dependency_impacts
            ],
            "method_impacts": [
                {
                    "affected_file": m.affected_file,
                    "affected_class": m.affected_class,
                    "class_name": m.class_name,
                    "method_name": m.method_name,
                    "impact_type": m.impact_type.value,
                    "severity": m.severity.value,
                }
                for m in impact.method_impacts
            ],
            "metrics": {
                "total_affected": impact.impact_metrics.total_affected,
                "impact_percentage": impact.impact_metrics.impact_percentage,
                "risk_level": impact.impact_metrics.risk_level,
                "severity_distribution": dict(impact.impact_metrics.severity_distribution),
            },
        },
        "method_changes": [{"class_name": c.class_name, "method_name": c.method_name, "impact_type": c.impact_type.value} for c in result.method_changes],
        "comparison": {
            "improvements": [_metric_change_to_dict(c) for c in comparison.improvements],
            "regressions": [_metric_change_to_dict(c) for c in comparison.regressions],
            "insignificant": [_metric_change_to_dict(c) for c in comparison.insignificant],
            "not_measured": list(comparison.not_measured),
            "added_classes": list(comparison.added_classes),
            "removed_classes": list(comparison.removed_classes),
            "overall": {
                "total_improvements": comparison.overall.total_improvements,
                "total_regressions": comparison.overall.total_regressions,
                "net_impact": comparison.overall.net_impact,
                "impact_level": comparison.overall.impact_level,
            },
        },
        "diagnostics": [_diagnostic_to_dict(d) for d in result.diagnostics],
    }


def _write_json(data: Dict[str, Any], filename: str, kind: str) -> None:
    document = {"_schema_version": REPORT_SCHEMA_VERSION, "_report": kind, "exported_at": datetime.now().isoformat()}
    document.update(data)
    try:
        with open(filename, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2, sort_keys=True)
    except OSError as e:
        raise ValidationError(f"Failed to export {kind} to {filename}: {e}") from e
    logger.info("Exported %s to %s", kind, filename)


def export_project_report(report: ProjectReport, filename: str) -> None:
    """Write a ProjectReport as JSON.

    Raises:
        ValidationError: If the file cannot be written
    """
    _write_json(project_report_to_dict(report), filename, "project_report")


def export_impact_report(result: PRDiffResult, filename: str) -> None:
    """Write a PR review result (impact, comparison, after-side project quality) as JSON.

    Raises:
        ValidationError: If the file cannot be written
    """
    data = impact_result_to_dict(result)
    data["project_quality"] = result.after_report.project_quality.as_dict()
    _write_json(data, filename, "impact_report")


def export_dependency_graph(filename: str, report: ProjectReport, changed_classes: Optional[List[str]] = None) -> str:
    """Export the project dependency graph with per-class metrics as node attributes.

    Supports: GraphML (.graphml), GEXF (.gexf), JSON (.json). Unknown
    extensions fall back to GraphML with ".graphml" appended.

    Node attributes:
        - label, file, package, kind, layer, role: class description
        - wmc, dit, noc, cbo, rfc, ca, ce, lcom: CK metrics
        - quality, risk: overall quality score and risk priority
        - in_cycle: Whether the class lies in a structural dependency cycle
        - changed: Whether the class was changed (when changed_classes is given)

    Args:
        filename: Output filename (extension determines format)
        report: Report whose dependency graph is exported
        changed_classes: Classes to flag as changed

    Returns:
        The filename actually written

    Raises:
        ValidationError: If the file cannot be written
    """
    ext = os.path.splitext(filename)[1].lower()
    graph = report.dependency_graph
    G = graph.graph.copy()
    in_cycle = graph.cycle_members()
    changed = set(changed_classes or [])
    analyses = {a.class_name: a for a in report.classes}

    for node in graph.nodes:
        attrs = G.nodes[node.id]
        attrs["label"] = node.name
        attrs["file"] = node.file_path
        attrs["package"] = node.package
        attrs["kind"] = node.node_type.value
        # GraphML has no null type
        attrs["layer"] = node.layer or ""
        attrs["role"] = node.role or ""
        attrs["in_cycle"] = node.id in in_cycle
        attrs["changed"] = node.id in changed
        analysis = analyses.get(node.id)
        if analysis is not None:
            for name, value in analysis.metrics.as_dict().items():
                if name != "cyclomatic_complexity":
                    attrs[name] = value
            attrs["quality"] = analysis.quality.overall
            attrs["risk"] = analysis.risk.priority.name

    if ext not in SUPPORTED_GRAPH_FORMATS:
        logger.warning("Unsupported graph format: %s. Defaulting to GraphML.", ext)
        filename = filename + ".graphml"
        ext = ".graphml"

    try:
        if ext == ".graphml":
            nx.write_graphml(G, filename)
        elif ext == ".gexf":
            nx.write_gexf(G, filename)
        else:
            data = json_graph.node_link_data(G)
            with open(filename, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
    except OSError as e:
        raise ValidationError(f"Failed to export graph to {filename}: {e}") from e

    logger.info("Exported dependency graph to %s", filename)
    return filename
