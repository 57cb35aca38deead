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
"""Type definitions for metric, quality and report results.

This module contains the immutable value objects produced by the calculators
and consumed by the report renderer and the impact analyzer.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .constants import MAX_SCORE, MIN_SCORE, QUALITY_LEVEL_FLOOR, QUALITY_LEVEL_LADDER, lookup_descending
from .facts import ClassFact


@dataclass(frozen=True)
class CkMetrics:
    """Chidamber-Kemerer metrics for a single class.

    Attributes:
        wmc: Weighted Methods per Class (sum of method cyclomatic complexity)
        dit: Depth of Inheritance Tree
        noc: Number of Children
        cbo: Coupling Between Objects
        rfc: Response For a Class
        ca: Afferent coupling (classes referencing this class)
        ce: Efferent coupling (classes this class references)
        lcom: Lack of Cohesion of Methods (connected components)
        cyclomatic_complexity: Total cyclomatic complexity of the class
    """

    wmc: int = 0
    dit: int = 0
    noc: int = 0
    cbo: int = 0
    rfc: int = 0
    ca: int = 0
    ce: int = 0
    lcom: int = 0
    cyclomatic_complexity: int = 0

    def __post_init__(self) -> None:
        """Validate all metric values are non-negative."""
        for name in METRIC_NAMES:
            assert getattr(self, name) >= 0, f"{name} must be non-negative"

    def as_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in METRIC_NAMES}


METRIC_NAMES: Tuple[str, ...] = ("wmc", "dit", "noc", "cbo", "rfc", "ca", "ce", "lcom", "cyclomatic_complexity")


@dataclass(frozen=True)
class MethodComplexity:
    """Cyclomatic complexity of one method."""

    name: str
    cyclomatic_complexity: int
    line_count: int


@dataclass(frozen=True)
class ComplexityAnalysis:
    """Complexity summary of a class.

    Attributes:
        methods: Per-method complexity
        total: Sum of method complexities (the class WMC)
        average: Mean method complexity (0.0 for a class without methods)
        max: Highest method complexity (0 for a class without methods)
        complex_methods: Methods above COMPLEX_METHOD_THRESHOLD
    """

    methods: Tuple[MethodComplexity, ...]
    total: int
    average: float
    max: int
    complex_methods: Tuple[MethodComplexity, ...]


@dataclass(frozen=True)
class QualityScore:
    """Category scores in [0, 10] and their weighted overall score."""

    cohesion: float
    complexity: float
    coupling: float
    inheritance: float
    architecture: float
    overall: float

    def __post_init__(self) -> None:
        """Validate every score lies in the score range."""
        for name in SCORE_CATEGORIES + ("overall",):
            value = getattr(self, name)
            assert MIN_SCORE <= value <= MAX_SCORE, f"{name} score {value} outside [{MIN_SCORE}, {MAX_SCORE}]"

    @property
    def quality_level(self) -> str:
        """Descriptive label for the overall score."""
        return lookup_descending(self.overall, QUALITY_LEVEL_LADDER, QUALITY_LEVEL_FLOOR)

    def categories(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in SCORE_CATEGORIES}

    def as_dict(self) -> Dict[str, float]:
        result = self.categories()
        result["overall"] = self.overall
        return result


SCORE_CATEGORIES: Tuple[str, ...] = ("cohesion", "complexity", "coupling", "inheritance", "architecture")


class RiskPriority(enum.IntEnum):
    """Risk priority, ordered so that max() picks the most severe."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


@dataclass(frozen=True)
class RiskAssessment:
    """Categorical risk judgment for a class."""

    priority: RiskPriority
    reasons: Tuple[str, ...]
    impact: str


@dataclass(frozen=True)
class Suggestion:
    """Actionable improvement hint attached to a class analysis."""

    category: str
    message: str
    detail: str


class DiagnosticKind(enum.Enum):
    """Non-fatal conditions surfaced in the report's diagnostics section."""

    PARSE_FAILURE = "parse_failure"
    UNRESOLVED_REFERENCE = "unresolved_reference"
    CYCLE_DETECTED = "cycle_detected"
    UNRESOLVED_PATH = "unresolved_path"
    BEFORE_UNAVAILABLE = "before_unavailable"


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable problem recorded during a run."""

    kind: DiagnosticKind
    subject: str
    message: str


@dataclass(frozen=True)
class ClassAnalysis:
    """Everything computed for one class.

    Attributes:
        fact: The class fact sheet the analysis was computed from
        metrics: CK metrics
        complexity: Per-method complexity breakdown
        quality: Quality score
        risk: Risk assessment
        suggestions: Improvement hints
        role: Inferred architectural role (e.g. "entity"), None if no pattern is confident
        layer: Inferred architectural layer, None if unknown
        in_inheritance_cycle: Whether DIT traversal hit a cycle for this class
    """

    fact: ClassFact
    metrics: CkMetrics
    complexity: ComplexityAnalysis
    quality: QualityScore
    risk: RiskAssessment
    suggestions: Tuple[Suggestion, ...] = ()
    role: Optional[str] = None
    layer: Optional[str] = None
    in_inheritance_cycle: bool = False

    @property
    def class_name(self) -> str:
        return self.fact.qualified_name

    @property
    def file_path(self) -> str:
        return self.fact.file_path


@dataclass(frozen=True)
class ProjectReport:
    """Top-level result of an analysis run, handed read-only to renderers.

    Attributes:
        timestamp: ISO timestamp of the run
        classes: Per-class analyses sorted by qualified name
        dependency_graph: Project dependency graph (see dependency_graph.DependencyGraph)
        project_quality: Mean quality score across classes
        diagnostics: Recoverable problems met during the run
        file_count: Number of source files that produced facts
        summary: Aggregate counts (classes per risk priority, cycles, ...)
    """

    timestamp: str
    classes: Tuple[ClassAnalysis, ...]
    dependency_graph: Any
    project_quality: QualityScore
    diagnostics: Tuple[Diagnostic, ...] = ()
    file_count: int = 0
    summary: Dict[str, int] = field(default_factory=dict)

    def find_class(self, qualified_name: str) -> Optional[ClassAnalysis]:
        """Look up a class analysis by qualified name."""
        for analysis in self.classes:
            if analysis.class_name == qualified_name:
                return analysis
        return None

    def classes_by_priority(self) -> List[ClassAnalysis]:
        """Classes ordered from most to least risky, then by overall score."""
        return sorted(self.classes, key=lambda a: (-int(a.risk.priority), a.quality.overall, a.class_name))
