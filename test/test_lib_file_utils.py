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
"""Tests for ckmetrics.file_utils module."""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ckmetrics.constants import ValidationError
from ckmetrics.facts import Language
from ckmetrics.file_utils import (
    FileResolver,
    clean_diff_path,
    detect_language,
    discover_source_files,
    is_build_path,
    is_source_file,
    is_test_path,
    read_source_file,
)
from fact_builders import write_files


class TestClassification:
    """Tests for language and path classification."""

    def test_detect_language(self) -> None:
        assert detect_language("src/A.kt") == Language.KOTLIN
        assert detect_language("build.gradle.kts") == Language.KOTLIN
        assert detect_language("src/B.JAVA") == Language.JAVA
        assert detect_language("README.md") == Language.UNKNOWN

    def test_is_source_file(self) -> None:
        assert is_source_file("A.kt")
        assert is_source_file("B.java")
        assert not is_source_file("C.py")

    def test_test_and_build_paths(self) -> None:
        assert is_test_path("app/src/test/kotlin/ATest.kt")
        assert is_test_path("app/src/androidTest/ATest.kt")
        assert is_test_path("test/A.kt")
        assert not is_test_path("app/src/main/kotlin/Contest.kt")
        assert is_build_path("app/build/generated/A.kt")
        assert not is_build_path("app/src/builder/A.kt")


class TestDiscovery:
    """Tests for discover_source_files and read_source_file."""

    def test_discover(self, temp_dir: str) -> None:
        """Only supported sources, sorted, skipping build output and tests."""
        write_files(
            temp_dir,
            {
                "app/src/main/kotlin/B.kt": "class B",
                "app/src/main/java/A.java": "class A {}",
                "app/src/test/kotlin/BTest.kt": "class BTest",
                "app/build/generated/Gen.kt": "class Gen",
                ".gradle/cache/X.kt": "class X",
                "docs/notes.md": "notes",
            },
        )
        assert discover_source_files(temp_dir) == ["app/src/main/java/A.java", "app/src/main/kotlin/B.kt"]
        assert "app/src/test/kotlin/BTest.kt" in discover_source_files(temp_dir, include_tests=True)

    def test_missing_root(self, temp_dir: str) -> None:
        with pytest.raises(ValidationError):
            discover_source_files(os.path.join(temp_dir, "missing"))

    def test_read_source_file(self, temp_dir: str) -> None:
        write_files(temp_dir, {"src/A.kt": "class A"})
        source = read_source_file(temp_dir, "src/A.kt")
        assert (source.path, source.text, source.language) == ("src/A.kt", "class A", Language.KOTLIN)


class TestDiffPaths:
    """Tests for clean_diff_path and FileResolver."""

    def test_clean_diff_path(self) -> None:
        assert clean_diff_path("b/src/main/kotlin/Foo.kt") == "src/main/kotlin/Foo.kt"
        assert clean_diff_path("a/Foo.kt") == "Foo.kt"
        assert clean_diff_path("  ./src\\Foo.kt ") == "src/Foo.kt"

    def test_resolve_exact(self, temp_dir: str) -> None:
        write_files(temp_dir, {"src/A.kt": "class A"})
        assert FileResolver(temp_dir).resolve("b/src/A.kt") == "src/A.kt"

    def test_resolve_without_first_directory(self, temp_dir: str) -> None:
        """Diffs taken from a repository root one level above the project."""
        write_files(temp_dir, {"src/A.kt": "class A"})
        assert FileResolver(temp_dir).resolve("app/src/A.kt") == "src/A.kt"

    def test_resolve_by_unique_name(self, temp_dir: str) -> None:
        write_files(temp_dir, {"module/src/main/A.kt": "class A"})
        assert FileResolver(temp_dir).resolve("other/place/A.kt") == "module/src/main/A.kt"

    def test_ambiguous_name(self, temp_dir: str) -> None:
        write_files(temp_dir, {"one/A.kt": "class A", "two/A.kt": "class A"})
        assert FileResolver(temp_dir).resolve("elsewhere/deep/A.kt") is None

    def test_name_match_ignores_tests(self, temp_dir: str) -> None:
        write_files(temp_dir, {"src/test/A.kt": "class A"})
        assert FileResolver(temp_dir).resolve("x/y/A.kt") is None

    def test_unresolvable(self, temp_dir: str) -> None:
        resolver = FileResolver(temp_dir)
        assert resolver.resolve("/dev/null") is None
        assert resolver.resolve("missing/Missing.kt") is None

    def test_paths_outside_project_rejected(self, temp_dir: str) -> None:
        project = os.path.join(temp_dir, "project")
        write_files(temp_dir, {"secret.kt": "class Secret", "project/src/A.kt": "class A"})
        assert FileResolver(project).resolve("../secret.kt") is None

    def test_read(self, temp_dir: str) -> None:
        write_files(temp_dir, {"src/A.kt": "class A"})
        resolver = FileResolver(temp_dir)
        assert resolver.read(resolver.resolve("src/A.kt")).text == "class A"
