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
"""Cyclomatic complexity and WMC calculation.

Complexity is a structural count over the control-flow nodes of a method body,
not a full control-flow graph: it matches McCabe's number up to the granularity
of nested expressions that the language adapter chooses to expose.
"""

import logging
from typing import Iterable

from .constants import COMPLEX_METHOD_THRESHOLD
from .facts import ClassFact, ControlKind, ControlNode, MethodFact
from .metrics_types import ComplexityAnalysis, MethodComplexity

logger = logging.getLogger(__name__)

# Increment contributed by each node kind. MULTI_BRANCH adds nothing itself,
# its ARM children add one each.
DECISION_WEIGHTS = {
    ControlKind.BRANCH: 1,
    ControlKind.ARM: 1,
    ControlKind.LOOP: 1,
    ControlKind.TRY: 1,
    ControlKind.CATCH: 1,
    ControlKind.LOGICAL_AND: 1,
    ControlKind.LOGICAL_OR: 1,
}


def count_decision_points(body: ControlNode) -> int:
    """Count the decision points in a method body skeleton."""
    return sum(DECISION_WEIGHTS.get(node.kind, 0) for node in body.walk())


def method_complexity(method: MethodFact) -> MethodComplexity:
    """Compute the cyclomatic complexity of a method.

    Args:
        method: Method fact

    Returns:
        MethodComplexity with base complexity 1 plus one per decision point
    """
    return MethodComplexity(name=method.name, cyclomatic_complexity=1 + count_decision_points(method.body), line_count=method.line_count)


def class_complexity(methods: Iterable[MethodFact]) -> ComplexityAnalysis:
    """Summarize the complexity of a class's methods.

    Args:
        methods: Methods of the class

    Returns:
        ComplexityAnalysis; average is 0.0 and max is 0 when there are no methods
    """
    per_method = tuple(method_complexity(m) for m in methods)
    total = sum(m.cyclomatic_complexity for m in per_method)
    average = total / len(per_method) if per_method else 0.0
    maximum = max((m.cyclomatic_complexity for m in per_method), default=0)
    complex_methods = tuple(m for m in per_method if m.cyclomatic_complexity > COMPLEX_METHOD_THRESHOLD)

    if complex_methods:
        logger.debug("%s complex methods: %s", len(complex_methods), ", ".join(m.name for m in complex_methods))

    return ComplexityAnalysis(methods=per_method, total=total, average=average, max=maximum, complex_methods=complex_methods)


def calculate_wmc(cls: ClassFact) -> int:
    """Weighted Methods per Class: sum of method cyclomatic complexities."""
    return class_complexity(cls.methods).total
