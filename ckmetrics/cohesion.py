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
"""LCOM (Lack of Cohesion of Methods) calculation using NetworkX.

Methods are the nodes of an undirected graph; two methods are joined when they
touch at least one common declared field. LCOM is the number of connected
components of that graph (1 = fully cohesive). Classes with at most one method
or without fields have no basis for disconnection and get LCOM = 0.
"""

import logging
from typing import Dict, FrozenSet, List

import networkx as nx

from .constants import COHESION_LEVEL_FLOOR, COHESION_LEVEL_LADDER, lookup_ladder
from .facts import ClassFact

logger = logging.getLogger(__name__)


def method_field_usage(cls: ClassFact) -> Dict[str, FrozenSet[str]]:
    """Map each method to the declared fields it touches.

    Overloads share one entry (their usage is merged). Accessed names that are
    not declared fields of the class are ignored.

    Args:
        cls: Class fact

    Returns:
        Mapping of method name to the set of declared fields it uses
    """
    declared = cls.field_names
    usage: Dict[str, FrozenSet[str]] = {}
    for method in cls.methods:
        usage[method.name] = usage.get(method.name, frozenset()) | (method.accessed_fields & declared)
    return usage


def build_cohesion_graph(cls: ClassFact) -> "nx.Graph[str]":
    """Build the method-connectivity graph of a class.

    Args:
        cls: Class fact

    Returns:
        Undirected graph with one node per method name and an edge between
        every pair of methods sharing a field
    """
    usage = method_field_usage(cls)
    G: nx.Graph[str] = nx.Graph()
    G.add_nodes_from(usage)

    # Invert to field -> methods and connect each field's users in a chain;
    # a chain yields the same components as a clique with fewer edges.
    users: Dict[str, List[str]] = {}
    for method_name, fields in usage.items():
        for field_name in fields:
            users.setdefault(field_name, []).append(method_name)

    for methods in users.values():
        G.add_edges_from(zip(methods, methods[1:]))

    return G


def calculate_lcom(cls: ClassFact) -> int:
    """Calculate LCOM as the number of connected components.

    Args:
        cls: Class fact

    Returns:
        Number of connected method components, 0 for classes with <= 1 method or no fields
    """
    if cls.method_count <= 1 or cls.field_count == 0:
        return 0

    G = build_cohesion_graph(cls)
    lcom = nx.number_connected_components(G)
    logger.debug("LCOM(%s) = %s over %s methods", cls.qualified_name, lcom, G.number_of_nodes())
    return lcom


def find_method_groups(cls: ClassFact) -> List[List[str]]:
    """Return the method groups (connected components), largest first.

    Useful for "split this class" suggestions: each group is a candidate class.
    """
    if cls.method_count == 0:
        return []
    G = build_cohesion_graph(cls)
    groups = [sorted(component) for component in nx.connected_components(G)]
    groups.sort(key=lambda g: (-len(g), g))
    return groups


def find_unused_fields(cls: ClassFact) -> List[str]:
    """Return declared fields no method touches."""
    used = set()
    for fields in method_field_usage(cls).values():
        used.update(fields)
    return sorted(cls.field_names - used)


def cohesion_level(lcom: int) -> str:
    """Descriptive label for an LCOM value."""
    return lookup_ladder(lcom, COHESION_LEVEL_LADDER, COHESION_LEVEL_FLOOR)
