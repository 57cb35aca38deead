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
"""Language-neutral fact model shared by every metric calculator.

Parser adapters (one per source language) turn a source file into ClassFact
records. Everything downstream of the adapters works on these records only;
the language tag is carried as plain data and never used for dispatch.

Method bodies are exposed as a ControlNode tree holding only the control-flow
relevant constructs. An adapter maps its own grammar onto ControlKind:

    if / else-if / ternary / elvis          -> BRANCH
    when / switch                           -> MULTI_BRANCH with one ARM per entry
    for / foreach / while / do-while        -> LOOP
    try                                     -> TRY with one CATCH per handler
    && / ||                                 -> LOGICAL_AND / LOGICAL_OR
    anything that only groups statements    -> BLOCK
"""

import enum
from dataclasses import dataclass
from typing import FrozenSet, Iterator, List, Optional, Tuple


class Language(enum.Enum):
    """Source language a fact was extracted from."""

    KOTLIN = "kotlin"
    JAVA = "java"
    UNKNOWN = "unknown"

    @staticmethod
    def from_tag(tag: Optional[str]) -> "Language":
        """Map a free-form tag ("Kotlin", "java", ...) to a Language."""
        if not tag:
            return Language.UNKNOWN
        try:
            return Language(tag.strip().lower())
        except ValueError:
            return Language.UNKNOWN


class ClassKind(enum.Enum):
    """Declaration kind of a class-like construct."""

    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"
    OBJECT = "object"


class ControlKind(enum.Enum):
    """Control-flow relevant node kinds of a method body."""

    BLOCK = "block"
    BRANCH = "branch"
    MULTI_BRANCH = "multi_branch"
    ARM = "arm"
    LOOP = "loop"
    TRY = "try"
    CATCH = "catch"
    LOGICAL_AND = "and"
    LOGICAL_OR = "or"


class DependencyKind(enum.Enum):
    """Kind of a class-to-class reference, strongest first."""

    INHERITANCE = "inheritance"
    COMPOSITION = "composition"
    USAGE = "usage"
    ASSOCIATION = "association"

    @property
    def rank(self) -> int:
        """Priority rank (0 = strongest)."""
        return _DEPENDENCY_KIND_ORDER.index(self)


_DEPENDENCY_KIND_ORDER = [DependencyKind.INHERITANCE, DependencyKind.COMPOSITION, DependencyKind.USAGE, DependencyKind.ASSOCIATION]


@dataclass(frozen=True)
class ControlNode:
    """One node of a method body's control-flow skeleton."""

    kind: ControlKind
    children: Tuple["ControlNode", ...] = ()

    def walk(self) -> Iterator["ControlNode"]:
        """Yield this node and every descendant (pre-order, iterative)."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


def block(*children: ControlNode) -> ControlNode:
    """Build a BLOCK node."""
    return ControlNode(ControlKind.BLOCK, tuple(children))


def branch(*children: ControlNode) -> ControlNode:
    """Build a BRANCH node."""
    return ControlNode(ControlKind.BRANCH, tuple(children))


def multi_branch(*arms: ControlNode) -> ControlNode:
    """Build a MULTI_BRANCH node whose children are its arms."""
    return ControlNode(ControlKind.MULTI_BRANCH, tuple(arms))


def arm(*children: ControlNode) -> ControlNode:
    """Build an ARM node."""
    return ControlNode(ControlKind.ARM, tuple(children))


def loop(*children: ControlNode) -> ControlNode:
    """Build a LOOP node."""
    return ControlNode(ControlKind.LOOP, tuple(children))


def try_block(*children: ControlNode) -> ControlNode:
    """Build a TRY node; CATCH children are its handlers."""
    return ControlNode(ControlKind.TRY, tuple(children))


def catch(*children: ControlNode) -> ControlNode:
    """Build a CATCH node."""
    return ControlNode(ControlKind.CATCH, tuple(children))


EMPTY_BODY = ControlNode(ControlKind.BLOCK)


@dataclass(frozen=True)
class FieldFact:
    """A declared field / property of a class."""

    name: str
    type_name: str = ""
    mutable: bool = True
    annotations: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class MethodFact:
    """A declared method of a class.

    Attributes:
        name: Method name
        owner: Qualified name of the declaring class
        body: Control-flow skeleton used for complexity walking
        line_count: Number of source lines of the declaration
        parameter_count: Arity; (name, arity) identifies a method across versions
        accessed_fields: Names of fields of the owner read or written by the body
        called_methods: Names of methods invoked by the body (unqualified)
        body_text: Raw body text, used for syntactic reference search
        parameter_types: Raw parameter type names
        return_type: Raw return type name
        visibility: public / protected / internal / private
    """

    name: str
    owner: str = ""
    body: ControlNode = EMPTY_BODY
    line_count: int = 0
    parameter_count: int = 0
    accessed_fields: FrozenSet[str] = frozenset()
    called_methods: FrozenSet[str] = frozenset()
    body_text: str = ""
    parameter_types: Tuple[str, ...] = ()
    return_type: str = ""
    visibility: str = "public"

    @property
    def signature(self) -> Tuple[str, int]:
        """Cross-version method identity: (name, arity)."""
        return (self.name, self.parameter_count)

    @property
    def signature_text(self) -> str:
        """Declared parameter and return types as one searchable string."""
        return " ".join(self.parameter_types + (self.return_type,))


@dataclass(frozen=True)
class ClassFact:
    """A parsed class-like declaration.

    Created once per parsed class by a parser adapter and never mutated.
    """

    qualified_name: str
    file_path: str
    language: Language = Language.UNKNOWN
    methods: Tuple[MethodFact, ...] = ()
    fields: Tuple[FieldFact, ...] = ()
    supertypes: Tuple[str, ...] = ()
    source_text: str = ""
    kind: ClassKind = ClassKind.CLASS
    is_data: bool = False
    annotations: FrozenSet[str] = frozenset()
    imports: Tuple[str, ...] = ()
    line_count: int = 0

    @property
    def simple_name(self) -> str:
        """Class name without its package."""
        return self.qualified_name.rsplit(".", 1)[-1]

    @property
    def package_name(self) -> str:
        """Package part of the qualified name ("" for the default package)."""
        if "." not in self.qualified_name:
            return ""
        return self.qualified_name.rsplit(".", 1)[0]

    @property
    def is_interface(self) -> bool:
        return self.kind == ClassKind.INTERFACE

    @property
    def method_count(self) -> int:
        return len(self.methods)

    @property
    def field_count(self) -> int:
        return len(self.fields)

    @property
    def field_names(self) -> FrozenSet[str]:
        return frozenset(f.name for f in self.fields)

    @property
    def method_names(self) -> FrozenSet[str]:
        return frozenset(m.name for m in self.methods)

    def find_method(self, name: str) -> List[MethodFact]:
        """Return every overload of a method by name."""
        return [m for m in self.methods if m.name == name]


@dataclass(frozen=True)
class Reference:
    """A syntactic reference from one class to another.

    Derived per analysis pass from ClassFact text; never stored on a fact.
    """

    from_class: str
    to_class: str
    kind: DependencyKind
    strength: int = 1


def supertype_simple_name(raw: str) -> str:
    """Strip generics, constructor calls and package qualifiers from a raw supertype name.

    Example:
        >>> supertype_simple_name("com.example.Base<String>()")
        'Base'
    """
    name = raw.strip()
    for stop in ("<", "(", " "):
        if stop in name:
            name = name.split(stop, 1)[0]
    return name.rsplit(".", 1)[-1].strip()
