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
"""Shared constants for ckCheck tools.

This module provides centralized constants used across the metric calculators,
the quality scorer and the impact analyzer so thresholds and defaults can be
adjusted in one place. Threshold ladders are ordered tables of
(upper bound, value) pairs evaluated top to bottom by lookup_ladder().
"""

from typing import Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_RUNTIME_ERROR = 2
EXIT_KEYBOARD_INTERRUPT = 130

# =============================================================================
# Source Languages
# =============================================================================

# Extensions handled by the language adapters (extension -> language tag)
SOURCE_EXTENSIONS = {".kt": "kotlin", ".kts": "kotlin", ".java": "java"}

# Path fragments that mark a file as test code or build output
TEST_PATH_MARKERS = ("/test/", "/tests/", "/androidTest/", "/testFixtures/")
BUILD_PATH_MARKERS = ("/build/", "/out/", "/target/", "/.gradle/")

# =============================================================================
# Complexity Constants
# =============================================================================

COMPLEX_METHOD_THRESHOLD = 10  # Methods with cyclomatic complexity above this are "complex"

# =============================================================================
# Coupling Constants
# =============================================================================

MAX_EDGE_STRENGTH = 10  # Reference occurrence count is capped at this value

# Type names never treated as coupling targets even if a class shares the name
PRIMITIVE_TYPE_NAMES = frozenset(
    {
        "Int", "Long", "Short", "Byte", "Char", "Boolean", "Float", "Double", "String", "Unit", "Any", "Nothing",
        "int", "long", "short", "byte", "char", "boolean", "float", "double", "void", "Object", "Integer",
    }
)

# =============================================================================
# Quality Score Constants
# =============================================================================

# Weights for the overall score (must sum to 1.0)
WEIGHT_COHESION = 0.25
WEIGHT_COMPLEXITY = 0.25
WEIGHT_COUPLING = 0.25
WEIGHT_INHERITANCE = 0.15
WEIGHT_ARCHITECTURE = 0.10

NEUTRAL_ARCHITECTURE_SCORE = 7.0  # Used when no architecture evidence is available
MIN_SCORE = 0.0
MAX_SCORE = 10.0

# LCOM -> cohesion score
COHESION_LADDER: Tuple[Tuple[float, float], ...] = ((0, 10.0), (2, 8.0), (5, 6.0), (10, 4.0), (20, 2.0))
COHESION_FLOOR = 1.0

# Average cyclomatic complexity per method -> complexity score
COMPLEXITY_LADDER: Tuple[Tuple[float, float], ...] = ((2, 10.0), (5, 8.0), (10, 6.0), (15, 4.0), (25, 2.0))
COMPLEXITY_FLOOR = 1.0
WMC_PENALTY_THRESHOLD = 50  # WMC above this drops the complexity score one step
WMC_PENALTY_STEP = 2.0

# cbo + rfc // 5 + ca + ce -> coupling score
COUPLING_LADDER: Tuple[Tuple[float, float], ...] = ((5, 10.0), (10, 8.0), (20, 6.0), (35, 4.0), (50, 2.0))
COUPLING_FLOOR = 1.0
RFC_COUPLING_DIVISOR = 5

# (max DIT, max NOC) -> inheritance score
INHERITANCE_LADDER: Tuple[Tuple[int, int, float], ...] = ((2, 5, 10.0), (4, 10, 8.0), (6, 15, 6.0), (8, 20, 4.0), (10, 30, 2.0))
INHERITANCE_FLOOR = 1.0

# Overall score -> quality label
QUALITY_LEVEL_LADDER: Tuple[Tuple[float, str], ...] = ((8.0, "Excellent"), (6.0, "Good"), (4.0, "Moderate"), (2.0, "Poor"))
QUALITY_LEVEL_FLOOR = "Critical"

# LCOM -> cohesion label
COHESION_LEVEL_LADDER: Tuple[Tuple[float, str], ...] = ((0, "Excellent"), (2, "Good"), (5, "Fair"), (10, "Poor"))
COHESION_LEVEL_FLOOR = "Very Poor"

# =============================================================================
# Architecture Constants
# =============================================================================

PATTERN_CONFIDENCE_THRESHOLD = 0.5  # Minimum confidence for a role to be reported

# Allowed layer dependencies (from layer -> layers it may depend on)
ALLOWED_LAYER_DEPENDENCIES = {
    "presentation": frozenset({"application", "domain", "infrastructure"}),
    "application": frozenset({"domain", "data", "infrastructure"}),
    "domain": frozenset({"infrastructure"}),
    "data": frozenset({"domain", "infrastructure"}),
    "infrastructure": frozenset({"presentation", "application", "domain", "data"}),
}

CRUD_METHOD_PREFIXES = ("save", "find", "delete", "update", "create", "get", "put", "post", "remove", "insert", "load")
TEMPORAL_FIELD_MARKERS = ("timestamp", "time", "date", "created", "updated", "occurred", "when")

# =============================================================================
# Impact Analysis Constants
# =============================================================================

# Impact percentage -> impact risk level (checked with ">")
IMPACT_RISK_LADDER: Tuple[Tuple[float, str], ...] = ((50.0, "HIGH"), (20.0, "MEDIUM"), (5.0, "LOW"))
IMPACT_RISK_FLOOR = "MINIMAL"

# Net improvements -> overall impact level (checked with ">"); negative net escalates to HIGH
NET_IMPACT_LADDER: Tuple[Tuple[int, str], ...] = ((5, "HIGH"), (2, "MEDIUM"), (0, "LOW"))
NET_IMPACT_ZERO = "MINIMAL"
NET_IMPACT_NEGATIVE = "HIGH"

DEFAULT_MIN_IMPROVEMENT_THRESHOLD = 5.0  # Percent
DEFAULT_CONTEXT_LINES = 3

# =============================================================================
# Display Limits
# =============================================================================

MAX_CLASSES_DISPLAY = 25
MAX_CYCLES_DISPLAY = 20
MAX_IMPACTS_DISPLAY = 30

# =============================================================================
# Graph Export Constants
# =============================================================================

SUPPORTED_GRAPH_FORMATS = [".graphml", ".gexf", ".json"]


def lookup_ladder(value: float, ladder: Sequence[Tuple[float, T]], floor: T, strict: bool = False) -> T:
    """Map a value onto an ordered threshold table.

    Args:
        value: Value to classify
        ladder: Ordered (bound, result) pairs, most favourable first
        floor: Result when no bound matches
        strict: If True match with value > bound (descending ladders),
                otherwise value <= bound (ascending ladders)

    Returns:
        The result paired with the first matching bound, or floor
    """
    for bound, result in ladder:
        if (value > bound) if strict else (value <= bound):
            return result
    return floor


def lookup_descending(value: float, ladder: Sequence[Tuple[float, T]], floor: T) -> T:
    """Map a value onto a table whose bounds are minimums (value >= bound)."""
    for bound, result in ladder:
        if value >= bound:
            return result
    return floor


# =============================================================================
# Exception Classes
# =============================================================================


class MetricsCheckError(Exception):
    """Base exception for all ckCheck errors.

    All ckCheck exceptions carry an exit_code attribute that indicates
    what exit code the program should use when this error is caught at the
    main entry point.
    """

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


# Validation errors (EXIT_INVALID_ARGS)
class ValidationError(MetricsCheckError):
    """Raised when input validation fails (arguments, paths, etc)."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_ARGS)


class DiffInputError(ValidationError):
    """Raised when the diff file is missing or unreadable."""


class EmptyCorpusError(ValidationError):
    """Raised when a run starts without any analyzable source file."""


class GitRepositoryError(ValidationError):
    """Raised when git repository validation fails."""


# Analysis/processing errors (EXIT_RUNTIME_ERROR)
class AnalysisError(MetricsCheckError):
    """Raised when analysis or processing operations fail."""


class GraphBuildError(AnalysisError):
    """Raised when dependency graph construction fails."""


def optional_ratio(numerator: float, denominator: float) -> Optional[float]:
    """Return numerator / denominator, or None when the denominator is zero."""
    if denominator == 0:
        return None
    return numerator / denominator
