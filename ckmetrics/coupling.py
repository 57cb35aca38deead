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
"""CBO, RFC, CA and CE coupling metrics from syntactic references.

Coupling is derived by searching each class's text for the simple names of
every other class in the corpus, bounded by identifier characters. This is a
deliberate over-approximation: a name that only appears in a comment or a
string literal still counts. Each referenced class yields one Reference whose
kind is the strongest relation found:

    INHERITANCE  - named in the supertype list
    COMPOSITION  - named in a field type
    USAGE        - named in a method body or signature
    ASSOCIATION  - named anywhere else (imports, annotations, ...)
"""

import logging
import re
from typing import Dict, FrozenSet, List, Optional, Pattern, Sequence, Set, Tuple

from .constants import MAX_EDGE_STRENGTH, PRIMITIVE_TYPE_NAMES
from .facts import ClassFact, DependencyKind, Reference, supertype_simple_name

logger = logging.getLogger(__name__)

_IDENT_CHARS = r"A-Za-z0-9_$"


def _name_pattern(names: Sequence[str]) -> Optional[Pattern[str]]:
    """Compile one alternation matching any of names on identifier boundaries."""
    if not names:
        return None
    # Longest first so that "OrderItem" is not shadowed by "Order"
    alternation = "|".join(re.escape(n) for n in sorted(names, key=lambda n: (-len(n), n)))
    return re.compile(rf"(?<![{_IDENT_CHARS}])(?:{alternation})(?![{_IDENT_CHARS}])")


def searchable_text(cls: ClassFact) -> str:
    """Return the text a class is searched in for references.

    The raw source span when the adapter provided one, otherwise the
    concatenation of every textual fragment of the fact.
    """
    if cls.source_text:
        return cls.source_text
    parts: List[str] = list(cls.imports)
    parts.extend(cls.supertypes)
    parts.extend(f.type_name for f in cls.fields)
    for method in cls.methods:
        parts.append(method.signature_text)
        parts.append(method.body_text)
    return "\n".join(p for p in parts if p)


class CouplingIndex:
    """Name index over a complete corpus plus the derived references.

    Must be built after every class fact is known; it is the only barrier in
    an analysis pass.

    Args:
        classes: All class facts of the corpus
    """

    def __init__(self, classes: Sequence[ClassFact]):
        self.classes: Dict[str, ClassFact] = {}
        for cls in classes:
            if cls.qualified_name in self.classes:
                logger.warning("Duplicate class %s (keeping %s)", cls.qualified_name, self.classes[cls.qualified_name].file_path)
                continue
            self.classes[cls.qualified_name] = cls

        self.by_simple_name: Dict[str, List[str]] = {}
        for qualified_name, cls in self.classes.items():
            if cls.simple_name in PRIMITIVE_TYPE_NAMES:
                continue
            self.by_simple_name.setdefault(cls.simple_name, []).append(qualified_name)

        self.pattern = _name_pattern(list(self.by_simple_name))

        self._outgoing: Dict[str, Tuple[Reference, ...]] = {}
        self._incoming: Dict[str, Set[str]] = {name: set() for name in self.classes}
        for qualified_name, cls in self.classes.items():
            references = extract_references(self, cls)
            self._outgoing[qualified_name] = references
            for reference in references:
                self._incoming[reference.to_class].add(qualified_name)

        logger.debug("Coupling index: %s classes, %s references", len(self.classes), sum(len(r) for r in self._outgoing.values()))

    def resolve_simple_name(self, simple_name: str, context: ClassFact) -> Optional[str]:
        """Pick the qualified class a simple name refers to from within context.

        An explicit import wins, then a class in the same package, then the
        first class declared with that name.
        """
        candidates = self.by_simple_name.get(simple_name)
        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0]
        for candidate in candidates:
            if candidate in context.imports:
                return candidate
        for candidate in candidates:
            if self.classes[candidate].package_name == context.package_name:
                return candidate
        return candidates[0]

    def references_from(self, qualified_name: str) -> Tuple[Reference, ...]:
        return self._outgoing.get(qualified_name, ())

    def referencing_classes(self, qualified_name: str) -> FrozenSet[str]:
        """Distinct classes whose text references qualified_name."""
        return frozenset(self._incoming.get(qualified_name, ()))

    def all_references(self) -> List[Reference]:
        """Every reference of the corpus, ordered by source then target."""
        result: List[Reference] = []
        for name in sorted(self._outgoing):
            result.extend(self._outgoing[name])
        return result


def _mentions(pattern: Pattern[str], text: str, simple_name: str) -> bool:
    return any(match.group(0) == simple_name for match in pattern.finditer(text))


def extract_references(index: CouplingIndex, cls: ClassFact) -> Tuple[Reference, ...]:
    """Derive the references of one class to the other classes of the corpus.

    Args:
        index: Coupling index of the corpus
        cls: Class to extract references from

    Returns:
        One Reference per distinct target class, sorted by target name
    """
    if index.pattern is None:
        return ()

    counts: Dict[str, int] = {}
    for match in index.pattern.finditer(searchable_text(cls)):
        counts[match.group(0)] = counts.get(match.group(0), 0) + 1

    # Supertypes may live outside the searchable text (fact without source span)
    supertype_names = {supertype_simple_name(raw) for raw in cls.supertypes}
    for name in supertype_names:
        if name in index.by_simple_name and name not in counts:
            counts[name] = 1

    if not counts:
        return ()

    field_types = "\n".join(f.type_name for f in cls.fields)
    method_text = "\n".join(m.signature_text + "\n" + m.body_text for m in cls.methods)

    references: Dict[str, Reference] = {}
    for simple_name, count in counts.items():
        target = index.resolve_simple_name(simple_name, cls)
        if target is None or target == cls.qualified_name:
            continue

        if simple_name in supertype_names:
            kind = DependencyKind.INHERITANCE
        elif _mentions(index.pattern, field_types, simple_name):
            kind = DependencyKind.COMPOSITION
        elif _mentions(index.pattern, method_text, simple_name):
            kind = DependencyKind.USAGE
        else:
            kind = DependencyKind.ASSOCIATION

        strength = min(count, MAX_EDGE_STRENGTH)
        existing = references.get(target)
        if existing is None or kind.rank < existing.kind.rank:
            references[target] = Reference(cls.qualified_name, target, kind, strength)

    return tuple(references[name] for name in sorted(references))


def calculate_cbo(index: CouplingIndex, cls: ClassFact) -> int:
    """Coupling Between Objects: number of distinct classes referenced."""
    return len({r.to_class for r in index.references_from(cls.qualified_name)})


def calculate_ce(index: CouplingIndex, cls: ClassFact) -> int:
    """Efferent coupling: outgoing references to other classes."""
    return len(index.references_from(cls.qualified_name))


def calculate_ca(index: CouplingIndex, cls: ClassFact) -> int:
    """Afferent coupling: distinct other classes whose text references this class."""
    return len(index.referencing_classes(cls.qualified_name) - {cls.qualified_name})


def external_calls(cls: ClassFact) -> FrozenSet[str]:
    """Distinct method names called from the class that it does not declare itself."""
    called: Set[str] = set()
    for method in cls.methods:
        called.update(method.called_methods)
    return frozenset(called - cls.method_names)


def calculate_rfc(cls: ClassFact) -> int:
    """Response For a Class: own methods plus distinct external methods called."""
    return cls.method_count + len(external_calls(cls))
