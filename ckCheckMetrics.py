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
"""
CK Metrics Analysis Tool

PURPOSE:
    Computes Chidamber-Kemerer metrics (WMC, DIT, NOC, CBO, RFC, CA, CE, LCOM,
    cyclomatic complexity) for every Kotlin and Java class of a project, derives
    a quality score and risk priority per class, and builds the project
    dependency graph with cycle detection and architectural role inference.

WHAT IT DOES:
    - Discovers source files under the project root (test sources optional)
    - Reads class facts for each file from a fact snapshot produced by the
      language adapters (--facts)
    - Calculates CK metrics, quality scores (0-10) and risk priorities
    - Detects inheritance cycles and structural dependency cycles
    - Infers layers and DDD roles (entity, value object, service, ...)
    - Prints the riskiest classes with improvement suggestions

USE CASES:
    - "Which classes are the hardest to maintain?"
    - "Where are the dependency cycles?"
    - "Does the package layering hold?"

OUTPUT:
    1. Summary: classes, risk distribution, cycles, layer violations
    2. Project quality: mean category scores
    3. Class table ordered by risk (or complexity / coupling with --focus)
    4. Cycles, layer violations and diagnostics

REQUIREMENTS:
    - Python 3.8+
    - networkx, colorama, packaging

EXAMPLES:
    # Analyze a project
    ./ckCheckMetrics.py ../my-app --facts facts.json.gz

    # Strict thresholds, complexity first, JSON report and GraphML graph
    ./ckCheckMetrics.py ../my-app --facts facts.json.gz --strictness strict --focus complexity \\
        --export report.json --export-graph deps.graphml
"""
__version__ = "1.0.0"

import argparse
import logging
import sys

from ckmetrics.analysis import analyze_project, ordered_classes
from ckmetrics.color_utils import (
    Colors,
    color_severity,
    configure_color,
    format_table_row,
    get_severity_color,
    print_error,
    print_header,
    print_success,
    print_warning,
)
from ckmetrics.config import AnalysisOptions, ScoreThresholds, Strictness
from ckmetrics.constants import (
    EXIT_INVALID_ARGS,
    EXIT_KEYBOARD_INTERRUPT,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    MAX_CLASSES_DISPLAY,
    MAX_CYCLES_DISPLAY,
    MetricsCheckError,
)
from ckmetrics.export_utils import export_dependency_graph, export_project_report
from ckmetrics.fact_store import SnapshotFactProvider
from ckmetrics.metrics_types import DiagnosticKind, ProjectReport
from ckmetrics.package_verification import CheckPackagesAction, require_package
from ckmetrics.patterns import layer_summary


def setup_logging(log_level_str: str) -> None:
    """Configure logging settings.

    Args:
        log_level_str: Logging level as string (DEBUG, INFO, etc.)
    """
    logging.basicConfig(level=getattr(logging, log_level_str), format="%(asctime)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


def build_options(args: argparse.Namespace) -> AnalysisOptions:
    """Translate command line arguments into AnalysisOptions."""
    return AnalysisOptions(
        include_tests=args.include_tests,
        focus_on_complexity=args.focus == "complexity",
        focus_on_coupling=args.focus == "coupling",
        workers=args.workers,
        thresholds=ScoreThresholds.for_strictness(Strictness(args.strictness)),
    )


def display_summary(report: ProjectReport) -> None:
    summary = report.summary
    levels = (("critical_risk", "critical"), ("high_risk", "high"), ("medium_risk", "medium"), ("low_risk", "low"))
    risk_counts = ", ".join(color_severity(f"{summary.get(key, 0)} {label}", label) for key, label in levels)
    print(f"  Files analyzed:        {report.file_count}")
    print(f"  Classes:               {summary.get('total_classes', 0)}")
    print(f"  Risk:                  {risk_counts}")
    print(f"  Complex methods:       {summary.get('complex_methods', 0)}")
    print(f"  Dependency cycles:     {summary.get('dependency_cycles', 0)}")
    print(f"  Inheritance cycles:    {summary.get('inheritance_cycles', 0)}")
    print(f"  Layer violations:      {summary.get('layer_violations', 0)}")
    print(f"  Architecture pattern:  {report.dependency_graph.architecture_pattern}")

    quality = report.project_quality
    label = f"{quality.overall:.2f} ({quality.quality_level})"
    print(f"\n{Colors.BRIGHT}Project quality:{Colors.RESET} {color_severity(label, quality.quality_level)}")
    for name, value in quality.categories().items():
        print(f"  {name:<14} {value:5.2f}")


def display_classes(report: ProjectReport, options: AnalysisOptions, top_n: int, verbose: bool = False) -> None:
    """Print the class table, most relevant classes first."""
    classes = ordered_classes(report, options)
    if not classes:
        print_warning("No classes found", prefix=False)
        return

    shown = classes[:top_n] if top_n > 0 else classes
    print(f"\n{Colors.BRIGHT}Classes ({len(shown)} of {len(classes)}):{Colors.RESET}")
    widths = [48, 9, 6, 5, 4, 4, 4, 5, 5, 14]
    print(format_table_row(["Class", "Risk", "Score", "WMC", "DIT", "NOC", "CBO", "RFC", "LCOM", "Role"], widths))
    for analysis in shown:
        m = analysis.metrics
        priority = analysis.risk.priority.name
        columns = [analysis.class_name[-48:], priority, f"{analysis.quality.overall:.2f}", m.wmc, m.dit, m.noc, m.cbo, m.rfc, m.lcom, analysis.role or "-"]
        colors = ["", get_severity_color(priority)[0]] + [""] * 8
        print(format_table_row(columns, widths, colors))
        if verbose:
            for reason in analysis.risk.reasons:
                print(f"      - {reason}")
            for suggestion in analysis.suggestions:
                print(f"      > {suggestion.message}: {suggestion.detail}")


def display_structure(report: ProjectReport) -> None:
    """Print layers, dependency cycles, layer violations and files that failed to parse."""
    graph = report.dependency_graph
    layers = layer_summary({a.class_name: a.layer for a in report.classes})
    print(f"\n{Colors.BRIGHT}Layers:{Colors.RESET} " + ", ".join(f"{name} {count}" for name, count in sorted(layers.items())))

    if graph.cycles:
        print(f"\n{Colors.BRIGHT}Dependency cycles:{Colors.RESET}")
        for cycle in graph.cycles[:MAX_CYCLES_DISPLAY]:
            print(f"  {color_severity(cycle.severity.ljust(6), cycle.severity)} {' -> '.join(cycle.nodes)} -> {cycle.nodes[0]}")

    if graph.layer_violations:
        print(f"\n{Colors.BRIGHT}Layer violations:{Colors.RESET}")
        for violation in graph.layer_violations[:MAX_CYCLES_DISPLAY]:
            print(f"  {violation.from_class} ({violation.from_layer}) -> {violation.to_class} ({violation.to_layer})")

    failures = [d for d in report.diagnostics if d.kind == DiagnosticKind.PARSE_FAILURE]
    if failures:
        print_warning(f"{len(failures)} file(s) could not be analyzed", prefix=False)
        for diagnostic in failures[:MAX_CYCLES_DISPLAY]:
            print(f"  {diagnostic.subject}: {diagnostic.message}")


def main() -> int:
    """Main entry point for the CK metrics tool.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = argparse.ArgumentParser(
        description="Chidamber-Kemerer metrics, quality scores and dependency cycles for Kotlin/Java projects.",
        epilog="""
Class facts are read from a fact snapshot (--facts) written by the language
adapters. Files without facts are reported as parse failures and skipped.

Strictness levels:
  lenient   only clearly problematic classes are flagged
  standard  balanced classification (default)
  strict    borderline classes are flagged as well
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}", help="Show version and exit")
    parser.add_argument("--check-packages", action=CheckPackagesAction, help="Show the status of the required Python packages and exit")
    parser.add_argument("project_root", metavar="PROJECT_ROOT", help="Root directory of the project to analyze")
    parser.add_argument("--facts", required=True, metavar="FILE.json[.gz]", help="Fact snapshot with the class facts of the project")
    parser.add_argument(
        "--strictness", choices=[s.value for s in Strictness], default=Strictness.STANDARD.value, help="Risk threshold level (default: standard)"
    )
    parser.add_argument("--focus", choices=["risk", "complexity", "coupling"], default="risk", help="Order of the class table (default: risk)")
    parser.add_argument("--top", type=int, default=MAX_CLASSES_DISPLAY, help=f"Number of classes to show, 0 for all (default: {MAX_CLASSES_DISPLAY})")
    parser.add_argument("--include-tests", action="store_true", help="Analyze test sources as well")
    parser.add_argument("--workers", type=int, default=1, help="Threads for per-class calculations (default: 1)")
    parser.add_argument("--export", metavar="FILE.json", help="Write the full report as JSON")
    parser.add_argument("--export-graph", metavar="FILE", help="Write the dependency graph (.graphml, .gexf or .json)")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show risk reasons and suggestions, enable debug logging")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="WARNING", help="Logging level (default: WARNING)")

    args = parser.parse_args()
    setup_logging("DEBUG" if args.verbose else args.log_level)
    configure_color(no_color=args.no_color)
    require_package("networkx", "dependency graph analysis")

    if args.workers < 1:
        print_error("--workers must be at least 1")
        return EXIT_INVALID_ARGS

    options = build_options(args)
    try:
        provider = SnapshotFactProvider.from_file(args.facts)
        report = analyze_project(args.project_root, provider, options)

        print_header("CK METRICS ANALYSIS")
        display_summary(report)
        display_classes(report, options, args.top, args.verbose)
        display_structure(report)

        if args.export:
            export_project_report(report, args.export)
            print_success(f"Exported report to {args.export}")
        if args.export_graph:
            written = export_dependency_graph(args.export_graph, report)
            print_success(f"Exported dependency graph to {written}")

    except MetricsCheckError as e:
        logging.error("%s", e)
        print_error(str(e))
        return e.exit_code

    return EXIT_SUCCESS


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user", prefix=False)
        sys.exit(EXIT_KEYBOARD_INTERRUPT)
    except MetricsCheckError as e:
        logging.error(str(e))
        print_error(str(e))
        sys.exit(e.exit_code)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logging.critical("Unexpected error: %s", e, exc_info=True)
        print_error(f"Fatal error: {e}")
        sys.exit(EXIT_RUNTIME_ERROR)
