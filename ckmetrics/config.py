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
"""Run configuration and risk thresholds.

Two immutable configuration objects are used across the tools:

- AnalysisOptions: knobs of an analysis / PR review run
- ScoreThresholds: risk classification thresholds, created for one of three
  strictness levels (LENIENT, STANDARD, STRICT)

Example usage:
    from ckmetrics.config import ScoreThresholds, Strictness

    thresholds = ScoreThresholds.for_strictness(Strictness.STANDARD)
    if score.overall < thresholds.critical_overall:
        # Critical risk candidate
        pass
"""

from dataclasses import dataclass, field
from enum import Enum

from .constants import DEFAULT_CONTEXT_LINES, DEFAULT_MIN_IMPROVEMENT_THRESHOLD, MAX_SCORE, MIN_SCORE


class Strictness(Enum):
    """How eagerly classes are flagged as risky.

    - LENIENT: Only clearly problematic classes are flagged
    - STANDARD: Balanced classification (default)
    - STRICT: Flags borderline classes as well
    """

    LENIENT = "lenient"
    STANDARD = "standard"
    STRICT = "strict"


@dataclass(frozen=True)
class ScoreThresholds:
    """Thresholds used by the risk assessment.

    Create instances using for_strictness() rather than constructing directly.

    Attributes:
        low_quality_threshold: A category score below this is a "weakest link"; it
            escalates risk to at least HIGH and is required for CRITICAL
        critical_overall: Overall score below this is CRITICAL
        high_overall: Overall score below this is HIGH
        medium_overall: Overall score below this is MEDIUM (otherwise LOW)
        lcom_threshold: LCOM above this adds a cohesion risk reason
        wmc_threshold: WMC above this adds a complexity risk reason
        cbo_threshold: CBO above this adds a coupling risk reason
        dit_threshold: DIT above this adds an inheritance risk reason
    """

    low_quality_threshold: float
    critical_overall: float
    high_overall: float
    medium_overall: float
    lcom_threshold: int
    wmc_threshold: int
    cbo_threshold: int
    dit_threshold: int

    def __post_init__(self) -> None:
        """Validate thresholds lie in the score range and are ordered."""
        assert MIN_SCORE < self.low_quality_threshold < MAX_SCORE, "low_quality_threshold must lie inside the score range"
        assert MIN_SCORE < self.critical_overall < self.high_overall < self.medium_overall <= MAX_SCORE, "overall thresholds must be ascending"
        assert self.lcom_threshold > 0, "lcom_threshold must be positive"
        assert self.wmc_threshold > 0, "wmc_threshold must be positive"
        assert self.cbo_threshold > 0, "cbo_threshold must be positive"
        assert self.dit_threshold > 0, "dit_threshold must be positive"

    @staticmethod
    def for_strictness(level: Strictness) -> "ScoreThresholds":
        """Factory method to create ScoreThresholds for a given strictness level.

        Args:
            level: Desired strictness level (LENIENT, STANDARD or STRICT)

        Returns:
            Immutable ScoreThresholds instance

        Example:
            >>> ScoreThresholds.for_strictness(Strictness.STANDARD).wmc_threshold
            50
        """
        if level == Strictness.LENIENT:
            return ScoreThresholds(
                low_quality_threshold=2.5,
                critical_overall=2.5,
                high_overall=4.0,
                medium_overall=6.0,
                lcom_threshold=15,
                wmc_threshold=75,
                cbo_threshold=30,
                dit_threshold=8,
            )
        elif level == Strictness.STRICT:
            return ScoreThresholds(
                low_quality_threshold=3.5,
                critical_overall=3.5,
                high_overall=5.5,
                medium_overall=7.5,
                lcom_threshold=8,
                wmc_threshold=40,
                cbo_threshold=15,
                dit_threshold=5,
            )
        else:  # Strictness.STANDARD (default)
            return ScoreThresholds(
                low_quality_threshold=3.0,
                critical_overall=3.0,
                high_overall=5.0,
                medium_overall=7.0,
                lcom_threshold=10,
                wmc_threshold=50,
                cbo_threshold=20,
                dit_threshold=6,
            )


def _standard_thresholds() -> ScoreThresholds:
    return ScoreThresholds.for_strictness(Strictness.STANDARD)


@dataclass(frozen=True)
class AnalysisOptions:
    """Options of an analysis or PR review run.

    Attributes:
        include_tests: Analyze files under test directories as well
        context_lines: Diff context lines requested from git
        ignore_whitespace: Ignore whitespace-only changes when diffing with git
        min_improvement_threshold: Percent change below which a metric change is insignificant
        focus_on_complexity: Order report output by complexity first
        focus_on_coupling: Order report output by coupling first
        workers: Thread pool size for per-class calculations (1 = sequential)
        thresholds: Risk classification thresholds
    """

    include_tests: bool = False
    context_lines: int = DEFAULT_CONTEXT_LINES
    ignore_whitespace: bool = True
    min_improvement_threshold: float = DEFAULT_MIN_IMPROVEMENT_THRESHOLD
    focus_on_complexity: bool = False
    focus_on_coupling: bool = False
    workers: int = 1
    thresholds: ScoreThresholds = field(default_factory=_standard_thresholds)

    def __post_init__(self) -> None:
        """Validate option values."""
        assert self.context_lines >= 0, "context_lines must be non-negative"
        assert self.min_improvement_threshold >= 0, "min_improvement_threshold must be non-negative"
        assert self.workers >= 1, "workers must be at least 1"
