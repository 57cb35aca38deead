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
"""Architectural role, layer and DDD pattern inference.

Every detector returns a confidence in [0, 1] accumulated from independent
pieces of evidence (naming, annotations, mutability, method names, package).
A role is only reported when the best confidence reaches
PATTERN_CONFIDENCE_THRESHOLD.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Collection, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .constants import (
    ALLOWED_LAYER_DEPENDENCIES,
    CRUD_METHOD_PREFIXES,
    MAX_SCORE,
    MIN_SCORE,
    NEUTRAL_ARCHITECTURE_SCORE,
    PATTERN_CONFIDENCE_THRESHOLD,
    TEMPORAL_FIELD_MARKERS,
)
from .facts import ClassFact, supertype_simple_name

logger = logging.getLogger(__name__)


class PatternKind(enum.Enum):
    """Domain-driven design building blocks."""

    ENTITY = "entity"
    VALUE_OBJECT = "value_object"
    SERVICE = "service"
    REPOSITORY = "repository"
    AGGREGATE = "aggregate"
    DOMAIN_EVENT = "domain_event"


@dataclass(frozen=True)
class PatternMatch:
    """Confidence that a class plays a given role, with the evidence found."""

    kind: PatternKind
    confidence: float
    evidence: Tuple[str, ...] = ()


# Package / class name markers per layer, checked in order
_LAYER_PACKAGE_MARKERS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("presentation", ("presentation", "controller", "api", "web", "ui")),
    ("application", ("application", "service", "usecase")),
    ("domain", ("domain", "model")),
    ("data", ("repository", "data", "persistence", "dao")),
    ("infrastructure", ("infrastructure", "config")),
)
_LAYER_CLASS_SUFFIXES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("presentation", ("Controller", "Api", "Activity", "Fragment", "ViewModel")),
    ("application", ("Service", "Manager", "UseCase")),
    ("data", ("Repository", "Dao")),
    ("domain", ("Entity", "Model")),
    ("infrastructure", ("Config", "Configuration")),
)

_ACCESSOR_PREFIXES = ("get", "set", "is")
_OBJECT_METHODS = frozenset({"equals", "hashCode", "toString", "copy"})
_VALUE_SUFFIXES = ("Value", "VO", "ValueObject")
_EVENT_SUFFIXES = ("Event", "Happened")


def infer_layer(package_name: str, class_name: str) -> Optional[str]:
    """Infer the architectural layer of a class from its package, then its name.

    Args:
        package_name: Package of the class
        class_name: Simple class name

    Returns:
        Layer name, or None if it cannot be determined

    Example:
        >>> infer_layer("com.shop.web", "OrderController")
        'presentation'
    """
    segments = package_name.lower().split(".")
    for layer, markers in _LAYER_PACKAGE_MARKERS:
        if any(marker in segment for segment in segments for marker in markers):
            return layer
    for layer, suffixes in _LAYER_CLASS_SUFFIXES:
        if class_name.endswith(suffixes):
            return layer
    return None


def is_valid_layer_dependency(from_layer: Optional[str], to_layer: Optional[str]) -> bool:
    """Check a dependency against the layering rules (unknown layers are always valid)."""
    if from_layer is None or to_layer is None or from_layer == to_layer:
        return True
    allowed = ALLOWED_LAYER_DEPENDENCIES.get(from_layer)
    if allowed is None:
        return True
    return to_layer in allowed


def is_in_domain_package(cls: ClassFact) -> bool:
    path = cls.file_path.replace("\\", "/")
    segments = cls.package_name.split(".")
    return "/domain/" in path or "/model/" in path or "domain" in segments or "model" in segments


def find_id_fields(cls: ClassFact) -> List[str]:
    """Fields that look like an identity ("id", "...Id", "uuid" or annotated @Id)."""
    result = []
    for f in cls.fields:
        lowered = f.name.lower()
        if lowered == "id" or lowered.endswith("id") or lowered == "uuid" or "Id" in f.annotations:
            result.append(f.name)
    return result


def has_mutable_fields(cls: ClassFact) -> bool:
    return any(f.mutable for f in cls.fields)


def is_immutable(cls: ClassFact) -> bool:
    """True when the class declares fields and none of them is mutable."""
    return bool(cls.fields) and not has_mutable_fields(cls)


def has_equals_hash_code(cls: ClassFact) -> bool:
    names = cls.method_names
    return "equals" in names and "hashCode" in names


def business_methods(cls: ClassFact) -> List[str]:
    """Methods that are neither accessors nor Object overrides."""
    result = []
    for method in cls.methods:
        if method.name in _OBJECT_METHODS:
            continue
        if method.name.startswith(_ACCESSOR_PREFIXES) and method.parameter_count <= 1 and method.line_count <= 3:
            continue
        result.append(method.name)
    return result


def has_business_logic(cls: ClassFact) -> bool:
    return bool(business_methods(cls))


def find_crud_methods(cls: ClassFact) -> List[str]:
    return [m.name for m in cls.methods if any(prefix in m.name.lower() for prefix in CRUD_METHOD_PREFIXES)]


def has_temporal_fields(cls: ClassFact) -> bool:
    return any(marker in f.name.lower() for f in cls.fields for marker in TEMPORAL_FIELD_MARKERS)


class _Evidence:
    """Accumulates confidence increments and the reasons behind them."""

    def __init__(self) -> None:
        self.confidence = 0.0
        self.reasons: List[str] = []

    def add(self, condition: bool, weight: float, reason: str) -> None:
        if condition:
            self.confidence += weight
            self.reasons.append(reason)

    def result(self, kind: PatternKind) -> PatternMatch:
        return PatternMatch(kind, round(min(1.0, self.confidence), 4), tuple(self.reasons))


def detect_entity(cls: ClassFact) -> PatternMatch:
    evidence = _Evidence()
    evidence.add(bool(find_id_fields(cls)), 0.3, "identity field")
    evidence.add(has_mutable_fields(cls), 0.2, "mutable state")
    evidence.add(has_equals_hash_code(cls), 0.3, "equals/hashCode")
    evidence.add(cls.simple_name.endswith(("Entity", "Aggregate")), 0.2, "entity naming")
    evidence.add("Entity" in cls.annotations, 0.4, "@Entity")
    evidence.add(is_in_domain_package(cls), 0.1, "domain package")
    evidence.add(has_business_logic(cls), 0.15, "business methods")
    return evidence.result(PatternKind.ENTITY)


def detect_value_object(cls: ClassFact) -> PatternMatch:
    evidence = _Evidence()
    evidence.add(is_immutable(cls), 0.4, "immutable")
    evidence.add(has_equals_hash_code(cls), 0.3, "value equality")
    evidence.add(cls.is_data, 0.3, "data class")
    evidence.add(cls.simple_name.endswith(_VALUE_SUFFIXES), 0.2, "value naming")
    evidence.add(not find_id_fields(cls), 0.1, "no identity")
    evidence.add(not has_business_logic(cls), 0.1, "no business logic")
    return evidence.result(PatternKind.VALUE_OBJECT)


def detect_service(cls: ClassFact) -> PatternMatch:
    evidence = _Evidence()
    evidence.add(not has_mutable_fields(cls), 0.3, "stateless")
    evidence.add(has_business_logic(cls), 0.4, "domain logic")
    evidence.add(cls.simple_name.endswith("Service"), 0.2, "service naming")
    evidence.add("Service" in cls.annotations, 0.3, "@Service")
    evidence.add(not cls.simple_name.endswith(("Entity", "Value")), 0.1, "not a data holder")
    return evidence.result(PatternKind.SERVICE)


def detect_repository(cls: ClassFact) -> PatternMatch:
    evidence = _Evidence()
    evidence.add(cls.simple_name.endswith(("Repository", "Repo")), 0.4, "repository naming")
    evidence.add("Repository" in cls.annotations, 0.4, "@Repository")
    evidence.add(cls.is_interface, 0.2, "interface")
    evidence.add(bool(find_crud_methods(cls)), 0.3, "CRUD methods")
    evidence.add(infer_layer(cls.package_name, cls.simple_name) in ("data", "infrastructure"), 0.1, "data layer")
    return evidence.result(PatternKind.REPOSITORY)


def detect_domain_event(cls: ClassFact) -> PatternMatch:
    evidence = _Evidence()
    evidence.add("Event" in cls.simple_name or cls.simple_name.endswith(_EVENT_SUFFIXES), 0.4, "event naming")
    evidence.add(is_immutable(cls), 0.3, "immutable")
    evidence.add(is_in_domain_package(cls), 0.2, "domain package")
    evidence.add(has_temporal_fields(cls), 0.2, "temporal field")
    evidence.add(not has_business_logic(cls), 0.1, "no business logic")
    return evidence.result(PatternKind.DOMAIN_EVENT)


def detect_aggregate(cls: ClassFact, entity_names: Collection[str]) -> PatternMatch:
    """An entity that owns fields typed as other entities.

    Args:
        cls: Class fact
        entity_names: Simple names of the classes detected as entities in the corpus
    """
    entity = detect_entity(cls)
    if entity.confidence < PATTERN_CONFIDENCE_THRESHOLD:
        return PatternMatch(PatternKind.AGGREGATE, 0.0)

    owned = sorted(
        {
            supertype_simple_name(f.type_name)
            for f in cls.fields
            if f.type_name and supertype_simple_name(f.type_name) in entity_names and supertype_simple_name(f.type_name) != cls.simple_name
        }
    )
    # Collections of entities: List<OrderLine>, Set<OrderLine>, ...
    for f in cls.fields:
        if "<" in f.type_name:
            inner = f.type_name.split("<", 1)[1].rstrip(">")
            for part in inner.split(","):
                name = supertype_simple_name(part)
                if name in entity_names and name != cls.simple_name and name not in owned:
                    owned.append(name)

    evidence = _Evidence()
    evidence.add(bool(owned), 0.4, "owns entities: " + ", ".join(owned))
    evidence.add(len(owned) > 1, 0.2, "several owned entities")
    evidence.add(cls.simple_name.endswith(("Aggregate", "Root")), 0.2, "aggregate naming")
    evidence.add(bool(owned), entity.confidence * 0.2, "entity evidence")
    return evidence.result(PatternKind.AGGREGATE)


def detect_patterns(cls: ClassFact, entity_names: Collection[str] = frozenset()) -> List[PatternMatch]:
    """Run every detector on a class.

    Returns:
        Matches with non-zero confidence, most confident first
    """
    matches = [
        detect_entity(cls),
        detect_value_object(cls),
        detect_service(cls),
        detect_repository(cls),
        detect_domain_event(cls),
        detect_aggregate(cls, entity_names),
    ]
    kind_order = list(PatternKind)
    matches = [m for m in matches if m.confidence > 0]
    matches.sort(key=lambda m: (-m.confidence, kind_order.index(m.kind)))
    return matches


def best_pattern(cls: ClassFact, entity_names: Collection[str] = frozenset()) -> Optional[PatternMatch]:
    """Most confident pattern at or above PATTERN_CONFIDENCE_THRESHOLD, or None."""
    matches = detect_patterns(cls, entity_names)
    if matches and matches[0].confidence >= PATTERN_CONFIDENCE_THRESHOLD:
        return matches[0]
    return None


def infer_role(cls: ClassFact, entity_names: Collection[str] = frozenset()) -> Optional[str]:
    """Name of the inferred architectural role of a class, or None."""
    match = best_pattern(cls, entity_names)
    return match.kind.value if match else None


def find_entity_names(classes: Iterable[ClassFact]) -> FrozenSet[str]:
    """Simple names of the classes confidently detected as entities."""
    return frozenset(cls.simple_name for cls in classes if detect_entity(cls).confidence >= PATTERN_CONFIDENCE_THRESHOLD)


def architecture_score(valid_dependencies: int, total_dependencies: int, role_confidence: float = 0.0) -> float:
    """Convert layer compliance and role clarity into a score in [0, 10].

    Layer compliance (valid / total outgoing layer dependencies, 1.0 when there
    are none) contributes up to the neutral score; a confidently inferred role
    adds up to the remaining headroom.

    Example:
        >>> architecture_score(0, 0)
        7.0
    """
    compliance = valid_dependencies / total_dependencies if total_dependencies else 1.0
    score = NEUTRAL_ARCHITECTURE_SCORE * compliance + (MAX_SCORE - NEUTRAL_ARCHITECTURE_SCORE) * max(0.0, min(1.0, role_confidence))
    return round(max(MIN_SCORE, min(MAX_SCORE, score)), 4)


def _onion_rank(layer: str) -> int:
    if "domain" in layer or "core" in layer:
        return 1
    if "application" in layer or "service" in layer:
        return 2
    if "infrastructure" in layer or "adapter" in layer:
        return 3
    if "presentation" in layer or "api" in layer:
        return 4
    return 5


def determine_architecture_pattern(layer_names: Collection[str], layer_dependencies: Collection[Tuple[str, str]]) -> str:
    """Classify the overall architecture style of a project.

    Args:
        layer_names: Names of the layers / top-level package segments found
        layer_dependencies: (from_layer, to_layer) pairs between distinct layers

    Returns:
        One of "hexagonal", "clean", "onion" or "layered"
    """
    names = {name.lower() for name in layer_names}
    dependencies = [(a.lower(), b.lower()) for a, b in layer_dependencies]

    has_ports = any("port" in n or "adapter" in n for n in names)
    if has_ports:
        domain = next((n for n in names if "domain" in n), None)
        if domain is None or sum(1 for a, _ in dependencies if a == domain) <= 2:
            return "hexagonal"

    has_use_cases = any("usecase" in n or "interactor" in n for n in names)
    has_entities = any("entity" in n or "domain" in n for n in names)
    has_frameworks = any("framework" in n or "infrastructure" in n for n in names)
    if has_use_cases and has_entities and has_frameworks:
        return "clean"

    has_core = any("domain" in n or "core" in n for n in names)
    has_services = any("application" in n or "service" in n for n in names)
    has_infra = any("infrastructure" in n or "adapter" in n for n in names)
    if has_core and has_services and has_infra and dependencies:
        inward = sum(1 for a, b in dependencies if _onion_rank(a) > _onion_rank(b))
        if inward / len(dependencies) > 0.7:
            return "onion"

    return "layered"


def layer_summary(layers: Dict[str, Optional[str]]) -> Dict[str, int]:
    """Count classes per inferred layer ("unknown" for None)."""
    counts: Dict[str, int] = {}
    for layer in layers.values():
        key = layer or "unknown"
        counts[key] = counts.get(key, 0) + 1
    return counts
