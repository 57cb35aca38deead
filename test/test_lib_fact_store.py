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
"""Tests for ckmetrics.fact_store module (fact snapshots and the snapshot provider)."""

import gzip
import json
import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ckmetrics.constants import ValidationError
from ckmetrics.fact_store import (
    SCHEMA_VERSION,
    ParseError,
    SchemaVersionError,
    SnapshotEntry,
    SnapshotFactProvider,
    SourceFile,
    class_fact_from_dict,
    content_hash,
    load_fact_snapshot,
    normalize_path,
    save_fact_snapshot,
)
from ckmetrics.facts import ClassKind, Language, block, branch, catch, loop, try_block
from fact_builders import field, make_class, method, snapshot_entry


def sample_class():
    return make_class(
        "com.app.domain.Order",
        [
            method("total", body=block(loop(branch()), try_block(catch())), fields=["lines"], calls=["sum"], param_types=("Int",), return_type="Money"),
            method("clear", fields=["lines"], visibility="private"),
        ],
        [field("lines", "List<Line>", mutable=False)],
        supertypes=["Entity<Long>"],
        source_text="class Order",
        file_path="src/Order.kt",
        is_data=True,
        annotations=["Entity"],
        imports=["com.app.domain.Line"],
    )


class TestSnapshotRoundTrip:
    """Tests for save_fact_snapshot and load_fact_snapshot."""

    def test_round_trip(self, temp_dir: str) -> None:
        """Saved facts load back unchanged."""
        filename = os.path.join(temp_dir, "facts.json")
        entries = [snapshot_entry("src/Order.kt", "class Order", [sample_class()]), SnapshotEntry("src/Bad.kt", None, error="syntax error")]
        save_fact_snapshot(entries, filename)

        loaded = load_fact_snapshot(filename)
        assert len(loaded) == 2
        by_path = {e.path: e for e in loaded}
        assert by_path["src/Order.kt"].classes == (sample_class(),)
        assert by_path["src/Order.kt"].content_hash == content_hash("class Order")
        assert by_path["src/Bad.kt"].error == "syntax error"
        assert by_path["src/Bad.kt"].classes == ()

    def test_gzip(self, temp_dir: str) -> None:
        """A .gz filename writes and reads a gzip compressed snapshot."""
        filename = os.path.join(temp_dir, "facts.json.gz")
        save_fact_snapshot([snapshot_entry("src/Order.kt", "class Order", [sample_class()])], filename)
        with gzip.open(filename, "rt", encoding="utf-8") as f:
            assert json.load(f)["_schema_version"] == SCHEMA_VERSION
        assert load_fact_snapshot(filename)[0].classes == (sample_class(),)

    def test_deterministic_output(self, temp_dir: str) -> None:
        """Entry order does not change the written file list."""
        first = os.path.join(temp_dir, "first.json")
        second = os.path.join(temp_dir, "second.json")
        entries = [snapshot_entry("b.kt", "b", [make_class("B")]), snapshot_entry("a.kt", "a", [make_class("A")])]
        save_fact_snapshot(entries, first)
        save_fact_snapshot(list(reversed(entries)), second)
        with open(first, encoding="utf-8") as f1, open(second, encoding="utf-8") as f2:
            assert json.load(f1)["files"] == json.load(f2)["files"]

    def test_schema_mismatch(self, temp_dir: str) -> None:
        """A snapshot of another schema version must be regenerated."""
        filename = os.path.join(temp_dir, "facts.json")
        with open(filename, "w", encoding="utf-8") as f:
            json.dump({"_schema_version": "0.1", "files": []}, f)
        with pytest.raises(SchemaVersionError):
            load_fact_snapshot(filename)

    def test_invalid_json(self, temp_dir: str) -> None:
        """Malformed JSON is a validation error."""
        filename = os.path.join(temp_dir, "facts.json")
        with open(filename, "w", encoding="utf-8") as f:
            f.write("{not json")
        with pytest.raises(ValidationError):
            load_fact_snapshot(filename)

    def test_missing_file(self, temp_dir: str) -> None:
        """A missing snapshot is a validation error."""
        with pytest.raises(ValidationError):
            load_fact_snapshot(os.path.join(temp_dir, "missing.json"))

    def test_minimal_record_defaults(self) -> None:
        """Optional keys fall back to the defaults."""
        cls = class_fact_from_dict({"qualified_name": "A", "methods": [{"name": "run", "parameter_types": ["Int", "Int"]}]})
        assert cls.kind == ClassKind.CLASS
        assert cls.language == Language.UNKNOWN
        assert cls.methods[0].parameter_count == 2
        assert cls.methods[0].owner == "A"
        assert cls.methods[0].visibility == "public"


class TestSnapshotFactProvider:
    """Tests for SnapshotFactProvider lookup."""

    def test_lookup_by_hash(self) -> None:
        """Two versions of one path are told apart by content hash."""
        provider = SnapshotFactProvider(
            [snapshot_entry("B.kt", "old", [make_class("B", [method("a")])]), snapshot_entry("B.kt", "new", [make_class("B", [method("a"), method("b")])])]
        )
        assert len(provider.produce_facts(SourceFile("B.kt", "old"))[0].methods) == 1
        assert len(provider.produce_facts(SourceFile("B.kt", "new"))[0].methods) == 2
        assert provider.paths == ["B.kt"]

    def test_unhashed_entry(self) -> None:
        """A single entry without hash serves any content of its path."""
        provider = SnapshotFactProvider([SnapshotEntry("A.kt", None, (make_class("A"),))])
        assert provider.produce_facts(SourceFile("./A.kt", "whatever"))[0].qualified_name == "A"

    def test_serves_same_entry(self) -> None:
        """Two texts of one path share facts only through an unhashed entry."""
        old, new = SourceFile("A.kt", "old"), SourceFile("A.kt", "new")
        unhashed = SnapshotFactProvider([SnapshotEntry("A.kt", None, (make_class("A"),))])
        assert unhashed.serves_same_entry(old, new)

        hashed = SnapshotFactProvider([snapshot_entry("A.kt", "old", [make_class("A")]), SnapshotEntry("A.kt", None, (make_class("A"),))])
        assert not hashed.serves_same_entry(old, new)
        assert not SnapshotFactProvider([]).serves_same_entry(old, new)

    def test_absolute_path_suffix(self) -> None:
        """Absolute paths match the recorded relative path."""
        provider = SnapshotFactProvider([snapshot_entry("src/A.kt", "text", [make_class("A")])])
        result = provider.produce_facts(SourceFile("/work/project/src/A.kt", "text"))
        assert [c.qualified_name for c in result] == ["A"]

    def test_unknown_version(self) -> None:
        """Content without recorded facts is a parse error, not an exception."""
        provider = SnapshotFactProvider([snapshot_entry("A.kt", "text", [make_class("A")])])
        result = provider.produce_facts(SourceFile("A.kt", "edited text"))
        assert isinstance(result, ParseError)
        assert result.path == "A.kt"

    def test_recorded_error(self) -> None:
        """A recorded parse error is handed back."""
        provider = SnapshotFactProvider([SnapshotEntry("Bad.kt", content_hash("x"), error="unexpected token")])
        result = provider.produce_facts(SourceFile("Bad.kt", "x"))
        assert result == ParseError("Bad.kt", "unexpected token")

    def test_from_file(self, temp_dir: str) -> None:
        """A provider can be created from a snapshot file."""
        filename = os.path.join(temp_dir, "facts.json")
        save_fact_snapshot([snapshot_entry("A.kt", "text", [make_class("A")])], filename)
        provider = SnapshotFactProvider.from_file(filename)
        assert provider.produce_facts(SourceFile("A.kt", "text"))[0].qualified_name == "A"


class TestHelpers:
    """Tests for path and hash helpers."""

    def test_normalize_path(self) -> None:
        assert normalize_path(".\\src\\A.kt") == "src/A.kt"
        assert normalize_path("././src/A.kt") == "src/A.kt"

    def test_content_hash(self) -> None:
        """SHA-1 of the UTF-8 text."""
        assert content_hash("") == "da39a3ee5e6b4b0d3255bfef95601890afd80709"
        assert SourceFile("A.kt", "x").content_hash == content_hash("x")
