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
"""Quality scoring, risk assessment and improvement suggestions.

Each CK metric family is mapped to a category score in [0, 10] through the
ordered threshold tables of constants.py; the overall score is their weighted
sum. Risk priority is read off the overall score and then adjusted by the
weakest-link rule: a category below the low-quality threshold escalates the
class to at least HIGH, and CRITICAL is reserved for classes that have such a
category.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from .cohesion import find_method_groups, find_unused_fields
from .config import ScoreThresholds, Strictness
from .constants import (
    COHESION_FLOOR,
    COHESION_LADDER,
    COMPLEX_METHOD_THRESHOLD,
    COMPLEXITY_FLOOR,
    COMPLEXITY_LADDER,
    COUPLING_FLOOR,
    COUPLING_LADDER,
    INHERITANCE_FLOOR,
    INHERITANCE_LADDER,
    MAX_SCORE,
    MIN_SCORE,
    NEUTRAL_ARCHITECTURE_SCORE,
    RFC_COUPLING_DIVISOR,
    WEIGHT_ARCHITECTURE,
    WEIGHT_COHESION,
    WEIGHT_COMPLEXITY,
    WEIGHT_COUPLING,
    WEIGHT_INHERITANCE,
    WMC_PENALTY_STEP,
    WMC_PENALTY_THRESHOLD,
    lookup_ladder,
)
from .facts import ClassFact
from .metrics_types import SCORE_CATEGORIES, CkMetrics, ComplexityAnalysis, QualityScore, RiskAssessment, RiskPriority, Suggestion

logger = logging.getLogger(__name__)

RISK_IMPACT = {
    RiskPriority.CRITICAL: "Severe impact on maintainability and reliability",
    RiskPriority.HIGH: "High impact on code quality and development velocity",
    RiskPriority.MEDIUM: "Moderate impact on maintainability",
    RiskPriority.LOW: "Minimal impact on code quality",
}

MAX_SUGGESTIONS = 5
VERY_COMPLEX_METHOD_THRESHOLD = 20
MAX_METHODS_PER_CLASS = 20


def _clamp(value: float) -> float:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def cohesion_score(lcom: int) -> float:
    return lookup_ladder(lcom, COHESION_LADDER, COHESION_FLOOR)


def complexity_score(average_complexity: float, wmc: int) -> float:
    """Score the average method complexity, one step lower for very heavy classes."""
    score = lookup_ladder(average_complexity, COMPLEXITY_LADDER, COMPLEXITY_FLOOR)
    if wmc > WMC_PENALTY_THRESHOLD:
        score = max(COMPLEXITY_FLOOR, score - WMC_PENALTY_STEP)
    return score


def coupling_score(cbo: int, rfc: int, ca: int, ce: int) -> float:
    total = cbo + rfc // RFC_COUPLING_DIVISOR + ca + ce
    return lookup_ladder(total, COUPLING_LADDER, COUPLING_FLOOR)


def inheritance_score(dit: int, noc: int) -> float:
    for max_dit, max_noc, score in INHERITANCE_LADDER:
        if dit <= max_dit and noc <= max_noc:
            return score
    return INHERITANCE_FLOOR


def calculate_quality_score(
    metrics: CkMetrics, architecture_score: Optional[float] = None, average_complexity: Optional[float] = None
) -> QualityScore:
    """Calculate the category scores and the weighted overall score of a class.

    Args:
        metrics: CK metrics of the class
        architecture_score: Architecture compliance score in [0, 10]; neutral 7.0 when None
        average_complexity: Mean method complexity; when None the WMC is used as-is
            (a class whose method count is unknown is scored as one method)

    Returns:
        QualityScore with every score clamped to [0, 10]
    """
    if average_complexity is None:
        average_complexity = float(metrics.wmc)
    if architecture_score is None:
        architecture_score = NEUTRAL_ARCHITECTURE_SCORE

    cohesion = cohesion_score(metrics.lcom)
    complexity = complexity_score(average_complexity, metrics.wmc)
    coupling = coupling_score(metrics.cbo, metrics.rfc, metrics.ca, metrics.ce)
    inheritance = inheritance_score(metrics.dit, metrics.noc)
    architecture = _clamp(architecture_score)

    overall = (
        cohesion * WEIGHT_COHESION
        + complexity * WEIGHT_COMPLEXITY
        + coupling * WEIGHT_COUPLING
        + inheritance * WEIGHT_INHERITANCE
        + architecture * WEIGHT_ARCHITECTURE
    )

    return QualityScore(
        cohesion=cohesion,
        complexity=complexity,
        coupling=coupling,
        inheritance=inheritance,
        architecture=architecture,
        overall=round(_clamp(overall), 4),
    )


def assess_risk(metrics: CkMetrics, score: QualityScore, thresholds: Optional[ScoreThresholds] = None) -> RiskAssessment:
    """Classify the risk of a class.

    Args:
        metrics: CK metrics of the class
        score: Quality score of the class
        thresholds: Risk thresholds (STANDARD strictness when None)

    Returns:
        RiskAssessment with priority, reasons and impact description
    """
    if thresholds is None:
        thresholds = ScoreThresholds.for_strictness(Strictness.STANDARD)

    reasons: List[str] = []
    if metrics.lcom > thresholds.lcom_threshold:
        reasons.append(f"Very poor cohesion (LCOM: {metrics.lcom})")
    if metrics.wmc > thresholds.wmc_threshold:
        reasons.append(f"Extremely high complexity (WMC: {metrics.wmc})")
    if metrics.cbo > thresholds.cbo_threshold:
        reasons.append(f"Excessive coupling (CBO: {metrics.cbo})")
    if metrics.dit > thresholds.dit_threshold:
        reasons.append(f"Deep inheritance (DIT: {metrics.dit})")

    if score.overall < thresholds.critical_overall:
        priority = RiskPriority.CRITICAL
    elif score.overall < thresholds.high_overall:
        priority = RiskPriority.HIGH
    elif score.overall < thresholds.medium_overall:
        priority = RiskPriority.MEDIUM
    else:
        priority = RiskPriority.LOW

    weak_categories = [name for name, value in score.categories().items() if value < thresholds.low_quality_threshold]
    if weak_categories:
        if priority < RiskPriority.HIGH:
            logger.debug("Escalating risk to HIGH, weak categories: %s", weak_categories)
            priority = RiskPriority.HIGH
        reasons.extend(f"Low {name} score ({getattr(score, name):.1f})" for name in weak_categories)
    elif priority == RiskPriority.CRITICAL:
        priority = RiskPriority.HIGH

    return RiskAssessment(priority=priority, reasons=tuple(reasons), impact=RISK_IMPACT[priority])


def calculate_project_score(scores: Sequence[QualityScore]) -> QualityScore:
    """Mean of every category and the overall score across classes (all 0.0 for no classes)."""
    if not scores:
        return QualityScore(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    count = len(scores)
    means = {name: round(sum(getattr(s, name) for s in scores) / count, 4) for name in SCORE_CATEGORIES + ("overall",)}
    return QualityScore(**{name: _clamp(value) for name, value in means.items()})


def generate_suggestions(
    cls: ClassFact, metrics: CkMetrics, complexity: ComplexityAnalysis, thresholds: Optional[ScoreThresholds] = None
) -> Tuple[Suggestion, ...]:
    """Generate improvement hints for a class, most important first.

    Args:
        cls: Class fact
        metrics: CK metrics of the class
        complexity: Complexity breakdown of the class
        thresholds: Risk thresholds used for the coupling and inheritance hints

    Returns:
        At most MAX_SUGGESTIONS suggestions
    """
    if thresholds is None:
        thresholds = ScoreThresholds.for_strictness(Strictness.STANDARD)

    suggestions: List[Suggestion] = []
    lcom = metrics.lcom
    average = complexity.average

    if lcom == 0:
        suggestions.append(Suggestion("cohesion", "Perfect cohesion", "All methods share common fields."))
    elif lcom <= 2:
        suggestions.append(Suggestion("cohesion", "Good cohesion", "Methods are well related and share common data."))
    elif lcom <= 5:
        suggestions.append(
            Suggestion("cohesion", "Consider refactoring", "Look for groups of methods that could be extracted into separate classes.")
        )
    elif lcom <= 10:
        suggestions.append(Suggestion("cohesion", "Refactoring recommended", "Consider splitting this class into smaller, focused classes."))
        unused = find_unused_fields(cls)
        if unused:
            suggestions.append(Suggestion("cohesion", "Remove unused fields", f"Fields not used by any method: {', '.join(unused)}"))
        groups = find_method_groups(cls)
        if len(groups) > 1:
            detail = "; ".join(", ".join(group) for group in groups)
            suggestions.append(Suggestion("cohesion", f"Split into {len(groups)} classes", f"Method groups sharing fields: {detail}"))
    else:
        suggestions.append(
            Suggestion("cohesion", "Critical refactoring needed", f"Very high LCOM ({lcom}) indicates the class has several responsibilities.")
        )

    if complexity.complex_methods:
        very_complex = [m.name for m in complexity.methods if m.cyclomatic_complexity > VERY_COMPLEX_METHOD_THRESHOLD]
        if very_complex:
            suggestions.append(
                Suggestion(
                    "complexity",
                    f"{len(very_complex)} very complex methods",
                    f"Methods with CC > {VERY_COMPLEX_METHOD_THRESHOLD}: {', '.join(very_complex)}",
                )
            )
        else:
            names = ", ".join(m.name for m in complexity.complex_methods)
            suggestions.append(
                Suggestion("complexity", f"{len(complexity.complex_methods)} complex methods", f"Methods with CC > {COMPLEX_METHOD_THRESHOLD}: {names}")
            )
    elif average > 5:
        suggestions.append(Suggestion("complexity", "Simplify complex methods", f"Moderate average complexity ({average:.1f})."))

    if cls.method_count > MAX_METHODS_PER_CLASS:
        suggestions.append(Suggestion("size", f"Too many methods ({cls.method_count})", "Consider splitting into smaller classes."))

    if metrics.cbo > thresholds.cbo_threshold:
        suggestions.append(Suggestion("coupling", "Reduce coupling", f"Class references {metrics.cbo} other classes; introduce interfaces or facades."))

    if metrics.dit > thresholds.dit_threshold:
        suggestions.append(Suggestion("inheritance", "Flatten inheritance", f"Depth {metrics.dit}; prefer composition over inheritance."))

    if lcom > 5 and average > 7:
        suggestions.insert(
            0, Suggestion("priority", "Priority refactoring target", f"Both high LCOM ({lcom}) and complexity ({average:.1f}) need attention.")
        )

    return tuple(suggestions[:MAX_SUGGESTIONS])
