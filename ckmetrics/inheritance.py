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
"""DIT (Depth of Inheritance Tree) and NOC (Number of Children) calculation.

Classes are stored in an arena with stable integer ids. Supertype names are
resolved only against classes known to the current corpus; an unresolved
supertype is external, counts as depth 1 and is not followed. Depth traversal
carries an explicit visited set per path, so cyclic hierarchies terminate.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

import networkx as nx

from .facts import ClassFact, supertype_simple_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DitResult:
    """Result of a DIT computation.

    Attributes:
        depth: Longest ancestor chain length
        cycle: Ids of the classes forming a cycle met on some ancestor path (empty if none)
        path: Ids along the longest ancestor chain, starting with the class itself
        unresolved: Supertype names that could not be resolved in the corpus
    """

    depth: int
    cycle: Tuple[int, ...] = ()
    path: Tuple[int, ...] = ()
    unresolved: Tuple[str, ...] = ()

    @property
    def has_cycle(self) -> bool:
        return bool(self.cycle)


class InheritanceIndex:
    """Arena of classes with resolved supertype links.

    Args:
        classes: All class facts of the corpus
    """

    def __init__(self, classes: Sequence[ClassFact]):
        self.classes: Tuple[ClassFact, ...] = tuple(classes)
        self._by_qualified: Dict[str, int] = {}
        self._by_simple: Dict[str, List[int]] = {}
        for class_id, cls in enumerate(self.classes):
            self._by_qualified.setdefault(cls.qualified_name, class_id)
            self._by_simple.setdefault(cls.simple_name, []).append(class_id)

        self.parents: List[Tuple[int, ...]] = []
        self.unresolved: List[Tuple[str, ...]] = []
        for class_id, cls in enumerate(self.classes):
            resolved: List[int] = []
            missing: List[str] = []
            for raw in cls.supertypes:
                parent_id = self.resolve(raw, cls)
                if parent_id is None or parent_id == class_id:
                    missing.append(raw)
                elif parent_id not in resolved:
                    resolved.append(parent_id)
            self.parents.append(tuple(resolved))
            self.unresolved.append(tuple(missing))

    def __len__(self) -> int:
        return len(self.classes)

    def id_of(self, qualified_name: str) -> Optional[int]:
        """Return the arena id of a class by qualified name."""
        return self._by_qualified.get(qualified_name)

    def resolve(self, raw_name: str, context: Optional[ClassFact] = None) -> Optional[int]:
        """Resolve a raw supertype name to an arena id.

        Qualified names win; otherwise the simple name is matched, preferring a
        class in the same package as context when several share the name.

        Returns:
            Arena id, or None when the name is external to the corpus
        """
        cleaned = raw_name.strip().split("<", 1)[0].split("(", 1)[0].strip()
        if cleaned in self._by_qualified:
            return self._by_qualified[cleaned]

        candidates = self._by_simple.get(supertype_simple_name(cleaned), [])
        if not candidates:
            return None
        if len(candidates) > 1 and context is not None:
            for candidate in candidates:
                if self.classes[candidate].package_name == context.package_name:
                    return candidate
        return candidates[0]

    def children_of(self, class_id: int) -> List[int]:
        """Return ids of classes that list class_id as an immediate supertype."""
        return [child for child, parents in enumerate(self.parents) if class_id in parents]


def calculate_dit(index: InheritanceIndex, class_id: int) -> DitResult:
    """Calculate the Depth of Inheritance Tree of a class.

    Iterative depth-first search over ancestor paths. Each stack entry carries
    the path that led to it; reaching a class already on that path closes a
    cycle, which terminates the branch with the depth reached so far.

    Args:
        index: Inheritance index of the corpus
        class_id: Arena id of the class

    Returns:
        DitResult with the longest chain length and any detected cycle
    """
    max_depth = 0
    longest: Tuple[int, ...] = (class_id,)
    cycle: Tuple[int, ...] = ()
    unresolved: Set[str] = set()

    stack: List[Tuple[int, Tuple[int, ...]]] = [(class_id, (class_id,))]
    while stack:
        current, path = stack.pop()
        depth = len(path) - 1
        if depth > max_depth:
            max_depth = depth
            longest = path

        external = index.unresolved[current]
        if external:
            unresolved.update(external)
            max_depth = max(max_depth, depth + 1)

        for parent in index.parents[current]:
            if parent in path:
                if not cycle:
                    cycle = path[path.index(parent):]
                    logger.debug("Inheritance cycle through %s", [index.classes[i].qualified_name for i in cycle])
                continue
            stack.append((parent, path + (parent,)))

    return DitResult(depth=max_depth, cycle=cycle, path=longest, unresolved=tuple(sorted(unresolved)))


def calculate_noc(index: InheritanceIndex, class_id: int) -> int:
    """Number of Children: classes whose immediate supertype list names this class."""
    return len(index.children_of(class_id))


def find_inheritance_cycles(index: InheritanceIndex) -> List[List[str]]:
    """Find groups of classes whose supertype links form a cycle.

    Returns:
        Sorted lists of qualified names, one per strongly connected component with > 1 member
    """
    G: nx.DiGraph[int] = nx.DiGraph()
    G.add_nodes_from(range(len(index)))
    G.add_edges_from((child, parent) for child, parents in enumerate(index.parents) for parent in parents)

    cycles = []
    for component in nx.strongly_connected_components(G):
        if len(component) > 1:
            cycles.append(sorted(index.classes[i].qualified_name for i in component))
    cycles.sort()
    return cycles
