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
PR Diff Impact Analysis Tool

PURPOSE:
    Estimates the blast radius of a change set and the CK metric changes it
    introduces. The diff is read from a unified diff file or computed from git,
    the before version of each changed file comes from a baseline checkout or
    a git revision, and the impact is propagated over the project dependency
    graph.

WHAT IT DOES:
    - Parses the diff and maps every changed Kotlin/Java file to the project
    - Rebuilds the project as it was before the change (files without a
      before version are reported as "not measured", never as unchanged)
    - Finds direct and transitive dependents of the changed classes
    - Flags dependents of changed method signatures, removals and behavior
      changes
    - Compares CK metrics and quality scores before and after the change
    - Reduces the comparison to an overall impact level

USE CASES:
    - "Who else is affected by this PR?"
    - "Does this PR make the code better or worse?"
    - "Which callers have to follow a signature change?"

OUTPUT:
    1. Changed files with their before-version status
    2. Impact: affected files, risk level, dependency and method impacts
    3. Metric comparison: improvements, regressions, not-measured classes
    4. Overall impact level

REQUIREMENTS:
    - Python 3.8+
    - networkx, GitPython, colorama, packaging

EXAMPLES:
    # Diff file plus baseline checkout
    ./ckCheckImpact.py ../my-app --facts facts.json.gz --diff pr.diff --baseline-dir ../my-app-main

    # Diff and before versions from git
    ./ckCheckImpact.py ../my-app --facts facts.json.gz --git-base origin/main

    # Diff file, before versions from a git revision, JSON export
    ./ckCheckImpact.py ../my-app --facts facts.json.gz --diff pr.diff --before-ref HEAD~1 --export impact.json
"""
__version__ = "1.0.0"

import argparse
import logging
import sys
from typing import Optional

from ckmetrics.color_utils import Colors, color_severity, configure_color, print_error, print_header, print_success, print_warning
from ckmetrics.config import AnalysisOptions, ScoreThresholds, Strictness
from ckmetrics.constants import (
    DEFAULT_CONTEXT_LINES,
    DEFAULT_MIN_IMPROVEMENT_THRESHOLD,
    EXIT_INVALID_ARGS,
    EXIT_KEYBOARD_INTERRUPT,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    MAX_IMPACTS_DISPLAY,
    MetricsCheckError,
)
from ckmetrics.diff_parser import parse_diff_file
from ckmetrics.diff_types import ParsedDiff
from ckmetrics.export_utils import export_dependency_graph, export_impact_report
from ckmetrics.fact_store import SnapshotFactProvider
from ckmetrics.git_utils import find_git_repo, parsed_diff_from_git
from ckmetrics.impact import BeforeSource, DirectoryBeforeSource, GitBeforeSource, MetricChange, PRDiffAnalyzer, PRDiffResult, changed_class_names
from ckmetrics.package_verification import CheckPackagesAction, require_package


def setup_logging(log_level_str: str) -> None:
    """Configure logging settings.

    Args:
        log_level_str: Logging level as string (DEBUG, INFO, etc.)
    """
    logging.basicConfig(level=getattr(logging, log_level_str), format="%(asctime)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


def validate_args(args: argparse.Namespace) -> None:
    """Reject contradictory option combinations.

    Raises:
        ValueError: If options contradict each other
    """
    if bool(args.diff) == bool(args.git_base):
        raise ValueError("Exactly one of --diff or --git-base is required")
    if args.baseline_dir and args.before_ref:
        raise ValueError("Cannot use both --baseline-dir and --before-ref")
    if args.git_head and not args.git_base:
        raise ValueError("--git-head requires --git-base")
    if args.context_lines < 0:
        raise ValueError("--context-lines must be non-negative")
    if args.min_improvement < 0:
        raise ValueError("--min-improvement must be non-negative")


def build_options(args: argparse.Namespace) -> AnalysisOptions:
    return AnalysisOptions(
        include_tests=args.include_tests,
        context_lines=args.context_lines,
        ignore_whitespace=not args.keep_whitespace,
        min_improvement_threshold=args.min_improvement,
        thresholds=ScoreThresholds.for_strictness(Strictness(args.strictness)),
    )


def load_diff(args: argparse.Namespace, options: AnalysisOptions) -> ParsedDiff:
    """Read the diff from a file or compute it with git."""
    if args.diff:
        return parse_diff_file(args.diff)

    repo_dir = find_git_repo(args.project_root)
    if repo_dir is None:
        raise ValueError(f"{args.project_root} is not inside a git repository (required for --git-base)")
    return parsed_diff_from_git(repo_dir, args.git_base, args.git_head, options.context_lines, options.ignore_whitespace)


def select_before_source(args: argparse.Namespace) -> Optional[BeforeSource]:
    """Baseline directory, explicit revision, or the --git-base revision."""
    if args.baseline_dir:
        return DirectoryBeforeSource(args.baseline_dir)
    ref = args.before_ref or args.git_base
    if ref:
        require_package("GitPython", "reading before versions from git")
        return GitBeforeSource(args.project_root, ref)
    return None


def describe_before_source(source: Optional[BeforeSource]) -> str:
    if isinstance(source, DirectoryBeforeSource):
        return f"baseline directory {source.baseline_root}"
    if isinstance(source, GitBeforeSource):
        commit = source.commit[:12] if source.commit else "unresolved"
        return f"git revision {source.base_ref} ({commit})"
    return "none"


def _format_change(change: MetricChange) -> str:
    percentage = "n/a" if change.percentage_change is None else f"{change.percentage_change:+.1f}%"
    return f"{change.class_name}.{change.metric}: {change.before:g} -> {change.after:g} ({percentage})"


def display_result(result: PRDiffResult, verbose: bool = False, before_label: str = "none") -> None:
    """Print a PR review result to the console."""
    print_header("PR DIFF IMPACT ANALYSIS")
    print(f"Before versions: {before_label}")

    print(f"\n{Colors.BRIGHT}Changed files ({len(result.resolved_files)}):{Colors.RESET}")
    for resolved in result.resolved_files:
        status = "" if resolved.before.is_available else f" {Colors.YELLOW}[before: {resolved.before.reason}]{Colors.RESET}"
        print(f"  {resolved.change.change_kind.value:<9} {resolved.path} (+{resolved.change.added_count}/-{resolved.change.removed_count}){status}")

    impact = result.impact
    metrics = impact.impact_metrics
    print(f"\n{Colors.BRIGHT}Impact:{Colors.RESET}")
    print(f"  Directly affected files:   {len(impact.directly_affected_files)}")
    print(f"  Indirectly affected files: {len(impact.indirectly_affected_files)}")
    print(f"  Affected share of project: {metrics.impact_percentage:.1f}%")
    print(f"  Risk level:                {color_severity(metrics.risk_level, metrics.risk_level)}")
    for path in impact.indirectly_affected_files[:MAX_IMPACTS_DISPLAY]:
        print(f"    {Colors.MAGENTA}{path}{Colors.RESET}")

    if impact.method_impacts:
        print(f"\n{Colors.BRIGHT}Method impacts:{Colors.RESET}")
        for method_impact in impact.method_impacts[:MAX_IMPACTS_DISPLAY]:
            severity = method_impact.severity.value
            print(
                f"  {color_severity(severity.ljust(7), severity)} {method_impact.affected_class} uses "
                f"{method_impact.class_name}.{method_impact.method_name} ({method_impact.impact_type.value})"
            )

    if verbose and impact.dependency_impacts:
        print(f"\n{Colors.BRIGHT}Dependency impacts:{Colors.RESET}")
        for dependency in impact.dependency_impacts[:MAX_IMPACTS_DISPLAY]:
            severity = dependency.severity.value
            print(
                f"  {color_severity(severity.ljust(7), severity)} {dependency.affected_class} -> {dependency.dependency_name} "
                f"({dependency.dependency_kind.value}, depth {dependency.depth})"
            )

    comparison = result.comparison
    print(f"\n{Colors.BRIGHT}Metric comparison:{Colors.RESET}")
    for change in comparison.improvements[:MAX_IMPACTS_DISPLAY]:
        print(f"  {Colors.GREEN}+ {_format_change(change)}{Colors.RESET}")
    for change in comparison.regressions[:MAX_IMPACTS_DISPLAY]:
        print(f"  {Colors.RED}- {_format_change(change)}{Colors.RESET}")
    if comparison.added_classes:
        print(f"  New classes: {', '.join(comparison.added_classes)}")
    if comparison.removed_classes:
        print(f"  Removed classes: {', '.join(comparison.removed_classes)}")
    if comparison.not_measured:
        print_warning(f"Not measured (no before version): {', '.join(comparison.not_measured)}", prefix=False)
    if verbose and comparison.insignificant:
        print(f"  {len(comparison.insignificant)} change(s) below the {result.options.min_improvement_threshold:g}% threshold")

    overall = comparison.overall
    print(
        f"\n{Colors.BRIGHT}Overall impact:{Colors.RESET} {color_severity(overall.impact_level, overall.impact_level)} "
        f"({overall.total_improvements} improvements, {overall.total_regressions} regressions, net {overall.net_impact:+d})"
    )


def main() -> int:
    """Main entry point for the PR impact tool.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = argparse.ArgumentParser(
        description="Impact of a change set on a Kotlin/Java project: affected dependents and CK metric changes.",
        epilog="""
The diff comes from --diff (unified diff file) or --git-base (git diff against
the working tree, or against --git-head). Before versions come from
--baseline-dir, --before-ref, or the --git-base revision. Without any of
these, changed classes are reported as not measured.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}", help="Show version and exit")
    parser.add_argument("--check-packages", action=CheckPackagesAction, help="Show the status of the required Python packages and exit")
    parser.add_argument("project_root", metavar="PROJECT_ROOT", help="Root directory of the changed project")
    parser.add_argument("--facts", required=True, metavar="FILE.json[.gz]", help="Fact snapshot covering both versions of the changed files")
    parser.add_argument("--diff", metavar="FILE", help="Unified diff file describing the change")
    parser.add_argument("--git-base", metavar="REF", help="Compute the diff with git against this revision")
    parser.add_argument("--git-head", metavar="REF", help="Head revision for --git-base (default: working tree)")
    parser.add_argument("--baseline-dir", metavar="DIR", help="Checkout of the base revision supplying before versions")
    parser.add_argument("--before-ref", metavar="REF", help="Git revision supplying before versions")
    parser.add_argument("--context-lines", type=int, default=DEFAULT_CONTEXT_LINES, help=f"Diff context lines (default: {DEFAULT_CONTEXT_LINES})")
    parser.add_argument("--keep-whitespace", action="store_true", help="Do not ignore whitespace-only changes in git diffs")
    parser.add_argument(
        "--min-improvement",
        type=float,
        default=DEFAULT_MIN_IMPROVEMENT_THRESHOLD,
        help=f"Percent change below which a metric change is ignored (default: {DEFAULT_MIN_IMPROVEMENT_THRESHOLD:g})",
    )
    parser.add_argument(
        "--strictness", choices=[s.value for s in Strictness], default=Strictness.STANDARD.value, help="Risk threshold level (default: standard)"
    )
    parser.add_argument("--include-tests", action="store_true", help="Include test sources")
    parser.add_argument("--export", metavar="FILE.json", help="Write the impact report as JSON")
    parser.add_argument("--export-graph", metavar="FILE", help="Write the after-change dependency graph with changed classes flagged")
    parser.add_argument("--fail-on-regression", action="store_true", help="Exit with code 1 when the change has a net regression")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show dependency impacts, enable debug logging")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="WARNING", help="Logging level (default: WARNING)")

    args = parser.parse_args()
    setup_logging("DEBUG" if args.verbose else args.log_level)
    configure_color(no_color=args.no_color)
    require_package("networkx", "dependency graph analysis")

    try:
        validate_args(args)
        options = build_options(args)
        diff = load_diff(args, options)
        provider = SnapshotFactProvider.from_file(args.facts)
        before_source = select_before_source(args)
        analyzer = PRDiffAnalyzer(args.project_root, provider, before_source, options)
        result = analyzer.analyze(diff)

        display_result(result, args.verbose, describe_before_source(before_source))

        if args.export:
            export_impact_report(result, args.export)
            print_success(f"Exported impact report to {args.export}")
        if args.export_graph:
            written = export_dependency_graph(args.export_graph, result.after_report, sorted(changed_class_names(result)))
            print_success(f"Exported dependency graph to {written}")

    except ValueError as e:
        logging.error("Validation error: %s", e)
        print_error(str(e))
        return EXIT_INVALID_ARGS
    except MetricsCheckError as e:
        logging.error("%s", e)
        print_error(str(e))
        return e.exit_code

    if args.fail_on_regression and result.comparison.overall.net_impact < 0:
        print_warning("Change has a net metric regression", prefix=False)
        return 1
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
