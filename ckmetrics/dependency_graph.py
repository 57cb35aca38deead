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
"""Project dependency graph with cycle detection using NetworkX.

Nodes are classes (keyed by qualified name), edges are the references found
by the coupling pass. Structural cycles are the strongly connected components
of the subgraph made of INHERITANCE and COMPOSITION edges; usage-only cycles
are ordinary in object-oriented code and are not reported.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import networkx as nx

from .constants import GraphBuildError
from .facts import ClassFact, ClassKind, DependencyKind, Language, Reference
from .patterns import determine_architecture_pattern, find_entity_names, infer_layer, infer_role, is_valid_layer_dependency

logger = logging.getLogger(__name__)

STRUCTURAL_KINDS = frozenset({DependencyKind.INHERITANCE, DependencyKind.COMPOSITION})


@dataclass(frozen=True)
class DependencyNode:
    """A class in the dependency graph."""

    id: str
    name: str
    file_path: str
    package: str
    node_type: ClassKind
    layer: Optional[str]
    role: Optional[str]
    language: Language


@dataclass(frozen=True)
class DependencyEdge:
    """A reference between two classes."""

    from_id: str
    to_id: str
    kind: DependencyKind
    strength: int


@dataclass(frozen=True)
class DependencyCycle:
    """A structural dependency cycle.

    Attributes:
        nodes: Member classes, ordered along a cycle path where one is found
        severity: "HIGH" if an inheritance edge lies inside the cycle, else "MEDIUM"
        has_inheritance: Whether an inheritance edge lies inside the cycle
    """

    nodes: Tuple[str, ...]
    severity: str
    has_inheritance: bool


@dataclass(frozen=True)
class PackageAnalysis:
    """Package-level view of the dependency graph.

    Attributes:
        name: Package name
        classes: Qualified names of the classes in the package
        dependencies: Other packages this package references
        layer: Dominant inferred layer of the package's classes
        cohesion: internal / (internal + external) outgoing edges, 1.0 without edges
        coupling: Number of distinct external packages referenced
    """

    name: str
    classes: Tuple[str, ...]
    dependencies: Tuple[str, ...]
    layer: Optional[str]
    cohesion: float
    coupling: int


@dataclass(frozen=True)
class LayerViolation:
    """A dependency that breaks the layering rules."""

    from_class: str
    to_class: str
    from_layer: str
    to_layer: str
    kind: DependencyKind


@dataclass(frozen=True)
class DependencyGraph:
    """Immutable dependency graph of a project.

    The backing NetworkX graph carries `kind` (DependencyKind value) and
    `strength` edge attributes and must be treated as read-only.
    """

    nodes: Tuple[DependencyNode, ...]
    edges: Tuple[DependencyEdge, ...]
    cycles: Tuple[DependencyCycle, ...]
    packages: Tuple[PackageAnalysis, ...]
    layer_violations: Tuple[LayerViolation, ...]
    architecture_pattern: str
    graph: Any

    def node(self, node_id: str) -> Optional[DependencyNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def dependents_of(self, node_id: str) -> List[str]:
        """Classes with an edge into node_id (sorted)."""
        if node_id not in self.graph:
            return []
        return sorted(self.graph.predecessors(node_id))

    def dependencies_of(self, node_id: str) -> List[str]:
        """Classes node_id has an edge to (sorted)."""
        if node_id not in self.graph:
            return []
        return sorted(self.graph.successors(node_id))

    def edge_kind(self, from_id: str, to_id: str) -> Optional[DependencyKind]:
        if not self.graph.has_edge(from_id, to_id):
            return None
        return DependencyKind(self.graph.edges[from_id, to_id]["kind"])

    def cycle_members(self) -> Set[str]:
        members: Set[str] = set()
        for cycle in self.cycles:
            members.update(cycle.nodes)
        return members


def build_graph(classes: Sequence[ClassFact], references: Sequence[Reference]) -> "nx.DiGraph[Any]":
    """Build the NetworkX graph of classes and references.

    Args:
        classes: All class facts
        references: Every reference of the corpus

    Returns:
        NetworkX DiGraph with kind/strength edge attributes

    Raises:
        GraphBuildError: If a reference points at a class missing from classes
    """
    G: nx.DiGraph[str] = nx.DiGraph()
    G.add_nodes_from(cls.qualified_name for cls in classes)

    for ref in references:
        if ref.from_class not in G or ref.to_class not in G:
            raise GraphBuildError(f"Reference {ref.from_class} -> {ref.to_class} points outside the corpus")
        if ref.from_class == ref.to_class:
            continue
        G.add_edge(ref.from_class, ref.to_class, kind=ref.kind.value, strength=ref.strength)

    logger.debug("Built graph with %s nodes and %s edges", G.number_of_nodes(), G.number_of_edges())
    return G


def find_dependency_cycles(G: Any) -> List[DependencyCycle]:
    """Find structural cycles (SCCs over INHERITANCE and COMPOSITION edges).

    Args:
        G: Dependency DiGraph with `kind` edge attributes

    Returns:
        Cycles sorted by first member; each SCC with more than one class is one cycle
    """
    structural_values = {kind.value for kind in STRUCTURAL_KINDS}
    S: nx.DiGraph[str] = nx.DiGraph()
    S.add_nodes_from(G.nodes())
    S.add_edges_from((u, v, d) for u, v, d in G.edges(data=True) if d.get("kind") in structural_values)

    cycles = []
    for component in nx.strongly_connected_components(S):
        if len(component) <= 1:
            continue
        sub = S.subgraph(component)
        has_inheritance = any(d.get("kind") == DependencyKind.INHERITANCE.value for _, _, d in sub.edges(data=True))

        start = min(component)
        try:
            path = [u for u, _ in nx.find_cycle(sub, source=start)]
        except nx.NetworkXNoCycle:
            path = []
        if path:
            pivot = path.index(min(path))
            path = path[pivot:] + path[:pivot]
        ordered = path + sorted(component - set(path))

        cycles.append(DependencyCycle(tuple(ordered), "HIGH" if has_inheritance else "MEDIUM", has_inheritance))

    cycles.sort(key=lambda c: c.nodes)
    if cycles:
        logger.info("Found %s structural dependency cycle(s)", len(cycles))
    return cycles


def analyze_packages(G: Any, classes: Sequence[ClassFact], layers: Mapping[str, Optional[str]]) -> List[PackageAnalysis]:
    """Aggregate the class graph per package.

    Args:
        G: Dependency DiGraph
        classes: All class facts
        layers: Inferred layer per qualified class name

    Returns:
        One PackageAnalysis per package, sorted by name
    """
    package_of = {cls.qualified_name: cls.package_name for cls in classes}
    members: Dict[str, List[str]] = defaultdict(list)
    for cls in classes:
        members[cls.package_name].append(cls.qualified_name)

    result = []
    for package in sorted(members):
        names = sorted(members[package])
        internal = 0
        external = 0
        dependencies: Set[str] = set()
        for name in names:
            for target in G.successors(name):
                if package_of[target] == package:
                    internal += 1
                else:
                    external += 1
                    dependencies.add(package_of[target])

        if len(names) <= 1 or internal + external == 0:
            cohesion = 1.0
        else:
            cohesion = internal / (internal + external)

        layer_counts: Dict[str, int] = defaultdict(int)
        for name in names:
            layer = layers.get(name)
            if layer:
                layer_counts[layer] += 1
        dominant = max(sorted(layer_counts), key=lambda layer: layer_counts[layer]) if layer_counts else None

        result.append(PackageAnalysis(package, tuple(names), tuple(sorted(dependencies)), dominant, round(cohesion, 4), len(dependencies)))
    return result


def find_layer_violations(G: Any, layers: Mapping[str, Optional[str]]) -> List[LayerViolation]:
    """Edges whose layers break the allowed layer dependencies."""
    violations = []
    for u, v, data in sorted(G.edges(data=True), key=lambda e: (e[0], e[1])):
        from_layer = layers.get(u)
        to_layer = layers.get(v)
        if from_layer and to_layer and not is_valid_layer_dependency(from_layer, to_layer):
            violations.append(LayerViolation(u, v, from_layer, to_layer, DependencyKind(data["kind"])))
    return violations


def layer_dependency_stats(G: Any, layers: Mapping[str, Optional[str]]) -> Dict[str, Tuple[int, int]]:
    """Per class: (valid, total) outgoing dependencies between known, distinct layers."""
    stats: Dict[str, Tuple[int, int]] = {}
    for node in G.nodes():
        valid = 0
        total = 0
        from_layer = layers.get(node)
        for target in G.successors(node):
            to_layer = layers.get(target)
            if from_layer and to_layer and from_layer != to_layer:
                total += 1
                if is_valid_layer_dependency(from_layer, to_layer):
                    valid += 1
        stats[node] = (valid, total)
    return stats


def build_dependency_graph(
    classes: Sequence[ClassFact], references: Sequence[Reference], roles: Optional[Mapping[str, Optional[str]]] = None
) -> DependencyGraph:
    """Build the complete project dependency graph.

    Args:
        classes: All class facts
        references: Every reference of the corpus (see coupling.CouplingIndex.all_references)
        roles: Inferred role per qualified class name; inferred here when None

    Returns:
        DependencyGraph with nodes, edges, cycles, packages and layer violations
    """
    G = build_graph(classes, references)

    layers = {cls.qualified_name: infer_layer(cls.package_name, cls.simple_name) for cls in classes}
    if roles is None:
        entity_names = find_entity_names(classes)
        roles = {cls.qualified_name: infer_role(cls, entity_names) for cls in classes}

    nodes = tuple(
        DependencyNode(
            id=cls.qualified_name,
            name=cls.simple_name,
            file_path=cls.file_path,
            package=cls.package_name,
            node_type=cls.kind,
            layer=layers[cls.qualified_name],
            role=roles.get(cls.qualified_name),
            language=cls.language,
        )
        for cls in sorted(classes, key=lambda c: c.qualified_name)
    )
    edges = tuple(
        DependencyEdge(u, v, DependencyKind(d["kind"]), d["strength"]) for u, v, d in sorted(G.edges(data=True), key=lambda e: (e[0], e[1]))
    )

    packages = analyze_packages(G, classes, layers)
    package_layer_pairs = set()
    for package in packages:
        for dependency in package.dependencies:
            target = next((p for p in packages if p.name == dependency), None)
            if package.layer and target is not None and target.layer and target.layer != package.layer:
                package_layer_pairs.add((package.layer, target.layer))
    layer_names = {p.name.rsplit(".", 1)[-1] for p in packages if p.name} | {layer for layer in layers.values() if layer}

    return DependencyGraph(
        nodes=nodes,
        edges=edges,
        cycles=tuple(find_dependency_cycles(G)),
        packages=tuple(packages),
        layer_violations=tuple(find_layer_violations(G, layers)),
        architecture_pattern=determine_architecture_pattern(layer_names, sorted(package_layer_pairs)),
        graph=G,
    )
