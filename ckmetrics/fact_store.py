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
"""Fact provider interface and JSON fact snapshots.

Language adapters run out of process and publish their results as a fact
snapshot: a schema-versioned, deterministic JSON document (optionally gzip
compressed) listing, per source file and content hash, the ClassFact records
extracted from it, or the parse error met. SnapshotFactProvider serves those
records through the FactProvider interface used by the analysis pipeline.

A snapshot may hold several versions of the same path (e.g. before and after
a change); entries are matched by path and SHA-1 of the file content.
"""

import gzip
import hashlib
import json
import logging
import os
import socket
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from .constants import EXIT_INVALID_ARGS, MetricsCheckError, ValidationError
from .facts import ClassFact, ClassKind, ControlKind, ControlNode, FieldFact, Language, MethodFact

logger = logging.getLogger(__name__)

# Current schema version - increment when format changes
SCHEMA_VERSION = "1.0"


class SchemaVersionError(MetricsCheckError):
    """Fact snapshot schema version is incompatible.

    No automatic migration is supported - the snapshot must be regenerated.
    """

    def __init__(self, version: str):
        super().__init__(
            f"Fact snapshot schema v{version} is not supported. Please regenerate the snapshot (v{SCHEMA_VERSION})",
            exit_code=EXIT_INVALID_ARGS,
        )


@dataclass(frozen=True)
class SourceFile:
    """A source file handed to a fact provider.

    Attributes:
        path: Path relative to the project root (posix separators)
        text: File content
        language: Language tag derived from the extension
    """

    path: str
    text: str
    language: Language = Language.UNKNOWN

    @property
    def content_hash(self) -> str:
        return content_hash(self.text)


@dataclass(frozen=True)
class ParseError:
    """A per-file parse failure. Returned by providers, never raised."""

    path: str
    message: str


class FactProvider(Protocol):
    """Turns one source file into class facts.

    Implementations keep no global state; one call per file. Failures are
    returned as ParseError, never raised.
    """

    def produce_facts(self, source: SourceFile) -> Union[List[ClassFact], ParseError]: ...


def content_hash(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def normalize_path(path: str) -> str:
    """Posix separators, no leading "./"."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


# =============================================================================
# (De)serialization
# =============================================================================


def control_node_to_data(node: ControlNode) -> List[Any]:
    """Serialize a ControlNode as a compact nested list: [kind, child, child, ...]."""
    return [node.kind.value] + [control_node_to_data(child) for child in node.children]


def control_node_from_data(data: List[Any]) -> ControlNode:
    kind = ControlKind(data[0])
    return ControlNode(kind, tuple(control_node_from_data(child) for child in data[1:]))


def class_fact_to_dict(cls: ClassFact) -> Dict[str, Any]:
    """Serialize a ClassFact to a dict with sorted collections."""
    return {
        "annotations": sorted(cls.annotations),
        "fields": [
            {"annotations": sorted(f.annotations), "mutable": f.mutable, "name": f.name, "type": f.type_name} for f in cls.fields
        ],
        "file_path": cls.file_path,
        "imports": list(cls.imports),
        "is_data": cls.is_data,
        "kind": cls.kind.value,
        "language": cls.language.value,
        "line_count": cls.line_count,
        "methods": [
            {
                "accessed_fields": sorted(m.accessed_fields),
                "body": control_node_to_data(m.body),
                "body_text": m.body_text,
                "called_methods": sorted(m.called_methods),
                "line_count": m.line_count,
                "name": m.name,
                "parameter_count": m.parameter_count,
                "parameter_types": list(m.parameter_types),
                "return_type": m.return_type,
                "visibility": m.visibility,
            }
            for m in cls.methods
        ],
        "qualified_name": cls.qualified_name,
        "source_text": cls.source_text,
        "supertypes": list(cls.supertypes),
    }


def class_fact_from_dict(data: Dict[str, Any]) -> ClassFact:
    """Deserialize a ClassFact; optional keys fall back to the dataclass defaults."""
    qualified_name = data["qualified_name"]
    methods = tuple(
        MethodFact(
            name=m["name"],
            owner=qualified_name,
            body=control_node_from_data(m["body"]) if m.get("body") else ControlNode(ControlKind.BLOCK),
            line_count=m.get("line_count", 0),
            parameter_count=m.get("parameter_count", len(m.get("parameter_types", ()))),
            accessed_fields=frozenset(m.get("accessed_fields", ())),
            called_methods=frozenset(m.get("called_methods", ())),
            body_text=m.get("body_text", ""),
            parameter_types=tuple(m.get("parameter_types", ())),
            return_type=m.get("return_type", ""),
            visibility=m.get("visibility", "public"),
        )
        for m in data.get("methods", ())
    )
    fields = tuple(
        FieldFact(
            name=f["name"],
            type_name=f.get("type", ""),
            mutable=f.get("mutable", True),
            annotations=frozenset(f.get("annotations", ())),
        )
        for f in data.get("fields", ())
    )
    return ClassFact(
        qualified_name=qualified_name,
        file_path=data.get("file_path", ""),
        language=Language.from_tag(data.get("language")),
        methods=methods,
        fields=fields,
        supertypes=tuple(data.get("supertypes", ())),
        source_text=data.get("source_text", ""),
        kind=ClassKind(data.get("kind", ClassKind.CLASS.value)),
        is_data=data.get("is_data", False),
        annotations=frozenset(data.get("annotations", ())),
        imports=tuple(data.get("imports", ())),
        line_count=data.get("line_count", 0),
    )


@dataclass(frozen=True)
class SnapshotEntry:
    """Facts (or the parse error) recorded for one version of one file."""

    path: str
    content_hash: Optional[str]
    classes: Tuple[ClassFact, ...] = ()
    error: Optional[str] = None


def save_fact_snapshot(entries: List[SnapshotEntry], filename: str) -> None:
    """Save a fact snapshot to JSON (gzip compressed when filename ends with .gz).

    Args:
        entries: Snapshot entries, one per file version
        filename: Output filename
    """
    logger.info("Saving fact snapshot to %s", filename)
    files = []
    for entry in sorted(entries, key=lambda e: (e.path, e.content_hash or "")):
        record: Dict[str, Any] = {"path": entry.path, "sha1": entry.content_hash}
        if entry.error is not None:
            record["error"] = entry.error
        else:
            record["classes"] = [class_fact_to_dict(cls) for cls in sorted(entry.classes, key=lambda c: c.qualified_name)]
        files.append(record)

    data = {
        "_schema_version": SCHEMA_VERSION,
        "metadata": {"timestamp": datetime.now().isoformat(), "hostname": socket.gethostname(), "file_count": len(files)},
        "files": files,
    }

    try:
        if filename.endswith(".gz"):
            with gzip.open(filename, "wt", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
        else:
            with open(filename, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
    except OSError as e:
        logger.error("Failed to save fact snapshot: %s", e)
        raise ValidationError(f"Failed to save fact snapshot to {filename}: {e}") from e


def load_fact_snapshot(filename: str) -> List[SnapshotEntry]:
    """Load a fact snapshot.

    Args:
        filename: Snapshot filename (.json or .json.gz)

    Returns:
        Snapshot entries in file order

    Raises:
        SchemaVersionError: If the snapshot schema version is not supported
        ValidationError: If the file cannot be read or is not valid JSON
    """
    logger.info("Loading fact snapshot from %s", filename)
    try:
        if filename.endswith(".gz"):
            with gzip.open(filename, "rt", encoding="utf-8") as f:
                data = json.load(f)
        else:
            with open(filename, "r", encoding="utf-8") as f:
                data = json.load(f)
    except OSError as e:
        logger.error("Failed to load fact snapshot: %s", e)
        raise ValidationError(f"Failed to load fact snapshot from {filename}: {e}") from e
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in fact snapshot: %s", e)
        raise ValidationError(f"Invalid JSON in {filename}: {e}") from e

    file_version = data.get("_schema_version", "unknown")
    if file_version != SCHEMA_VERSION:
        raise SchemaVersionError(file_version)

    entries = []
    for record in data.get("files", []):
        path = normalize_path(record["path"])
        if "error" in record:
            entries.append(SnapshotEntry(path, record.get("sha1"), error=record["error"]))
        else:
            classes = tuple(class_fact_from_dict(c) for c in record.get("classes", []))
            entries.append(SnapshotEntry(path, record.get("sha1"), classes))

    logger.debug("Snapshot timestamp: %s", data.get("metadata", {}).get("timestamp", "unknown"))
    logger.info("Fact snapshot: %d file entries loaded", len(entries))
    return entries


class SnapshotFactProvider:
    """FactProvider backed by fact snapshot entries.

    Lookup order for a source file: exact (path, content hash), then the only
    entry recorded for the path without a hash, then a path-suffix match for
    absolute paths. A file without a usable entry yields a ParseError.
    """

    def __init__(self, entries: List[SnapshotEntry]):
        self._by_key: Dict[Tuple[str, Optional[str]], SnapshotEntry] = {}
        self._by_path: Dict[str, List[SnapshotEntry]] = {}
        for entry in entries:
            path = normalize_path(entry.path)
            self._by_key[(path, entry.content_hash)] = entry
            self._by_path.setdefault(path, []).append(entry)

    @classmethod
    def from_file(cls, filename: str) -> "SnapshotFactProvider":
        return cls(load_fact_snapshot(filename))

    @property
    def paths(self) -> List[str]:
        return sorted(self._by_path)

    def _find(self, source: SourceFile) -> Optional[SnapshotEntry]:
        path = normalize_path(source.path)
        candidates = [path]
        if os.path.isabs(path):
            candidates.extend(known for known in self._by_path if path.endswith("/" + known))

        digest = source.content_hash
        for candidate in candidates:
            entry = self._by_key.get((candidate, digest))
            if entry is not None:
                return entry
        for candidate in candidates:
            unhashed = [e for e in self._by_path.get(candidate, []) if e.content_hash is None]
            if len(unhashed) == 1:
                return unhashed[0]
        return None

    def serves_same_entry(self, first: SourceFile, second: SourceFile) -> bool:
        """True when both versions would get the facts of one entry recorded without a content hash."""
        entry = self._find(first)
        return entry is not None and entry.content_hash is None and entry is self._find(second)

    def produce_facts(self, source: SourceFile) -> Union[List[ClassFact], ParseError]:
        entry = self._find(source)
        if entry is None:
            return ParseError(source.path, "no facts recorded for this file version")
        if entry.error is not None:
            return ParseError(source.path, entry.error)
        return list(entry.classes)
