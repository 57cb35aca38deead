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
"""Tests for ckmetrics.git_utils module"""
import os
import sys
from pathlib import Path
from typing import Dict

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
from ckmetrics.constants import GitRepositoryError, ValidationError
from ckmetrics.diff_types import ChangeKind
from ckmetrics.git_utils import diff_text_from_git, find_git_repo, get_commit_hash, parsed_diff_from_git, read_file_at_ref
from fact_builders import B_AFTER, B_BEFORE


class TestFindGitRepo:
    """Test the find_git_repo function."""

    def test_find_git_repo_from_subdirectory(self, git_project: Dict[str, str]) -> None:
        """Test finding git repository from the project subdirectory."""
        result = find_git_repo(git_project["project"])

        assert result is not None
        assert Path(result).resolve() == Path(git_project["repo"]).resolve()

    def test_find_git_repo_not_found(self, temp_dir: str) -> None:
        """Test when no git repository is found."""
        assert find_git_repo(temp_dir) is None


class TestGetCommitHash:
    """Test the get_commit_hash function."""

    def test_head(self, git_project: Dict[str, str]) -> None:
        assert get_commit_hash(git_project["repo"]) == git_project["head"]
        assert get_commit_hash(git_project["repo"], "HEAD~1") == git_project["base"]

    def test_invalid_reference(self, git_project: Dict[str, str]) -> None:
        assert get_commit_hash(git_project["repo"], "no-such-branch") is None


class TestDiffFromGit:
    """Test diff_text_from_git and parsed_diff_from_git."""

    def test_diff_between_commits(self, git_project: Dict[str, str]) -> None:
        """The diff of the second commit touches B.kt only."""
        text = diff_text_from_git(git_project["repo"], git_project["base"], git_project["head"])
        assert "app/src/B.kt" in text
        assert "+    fun process(x: Int, y: Int): Int = x + y" in text

    def test_parsed_diff(self, git_project: Dict[str, str]) -> None:
        diff = parsed_diff_from_git(git_project["repo"], git_project["base"], git_project["head"])
        assert diff.changed_paths == ["app/src/B.kt"]
        assert diff.file_changes[0].change_kind == ChangeKind.MODIFIED
        assert diff.file_changes[0].added_count == 1

    def test_diff_against_working_tree(self, git_project: Dict[str, str]) -> None:
        """Without head_ref the working tree is compared."""
        Path(git_project["project"], "src", "C.kt").write_text("class C {\n    fun idle() { run() }\n}\n", encoding="utf-8")
        diff = parsed_diff_from_git(git_project["repo"], git_project["head"])
        assert diff.changed_paths == ["app/src/C.kt"]

    def test_no_changes(self, git_project: Dict[str, str]) -> None:
        assert len(parsed_diff_from_git(git_project["repo"], "HEAD", "HEAD")) == 0

    def test_invalid_reference(self, git_project: Dict[str, str]) -> None:
        with pytest.raises(ValidationError):
            diff_text_from_git(git_project["repo"], "no-such-branch")

    def test_not_a_repository(self, temp_dir: str) -> None:
        with pytest.raises(GitRepositoryError):
            diff_text_from_git(temp_dir, "HEAD")


class TestReadFileAtRef:
    """Test the read_file_at_ref function."""

    def test_read_both_versions(self, git_project: Dict[str, str]) -> None:
        repo = git_project["repo"]
        assert read_file_at_ref(repo, git_project["base"], "app/src/B.kt") == B_BEFORE
        assert read_file_at_ref(repo, git_project["head"], "app/src/B.kt") == B_AFTER

    def test_missing_file(self, git_project: Dict[str, str]) -> None:
        assert read_file_at_ref(git_project["repo"], git_project["base"], "app/src/Missing.kt") is None

    def test_invalid_reference(self, git_project: Dict[str, str]) -> None:
        with pytest.raises(ValidationError):
            read_file_at_ref(git_project["repo"], "no-such-branch", "app/src/B.kt")

    def test_not_a_repository(self, temp_dir: str) -> None:
        os.makedirs(os.path.join(temp_dir, "plain"))
        with pytest.raises(GitRepositoryError):
            read_file_at_ref(os.path.join(temp_dir, "plain"), "HEAD", "A.kt")
