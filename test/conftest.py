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
"""Pytest configuration and shared fixtures for the ckCheck tests.

Class facts are built with the helpers of fact_builders.py. The project
fixtures below lay out small Kotlin projects on disk together with a fact
snapshot covering every file version they contain.

Fixture Scopes:
- function: Default, recreated for each test
"""

import os
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from ckmetrics.color_utils import Colors  # noqa: E402
from fact_builders import A_TEXT, B_AFTER, B_BEFORE, C_TEXT, SIGNATURE_DIFF, impact_versions, write_project  # noqa: E402


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests.

    Scope: function (default)
    Use for: File I/O operations that need isolation
    """
    tmpdir = tempfile.mkdtemp(prefix="ckcheck_test_")
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture(autouse=True)
def restore_colors() -> Generator[None, None, None]:
    """Undo Colors.disable() calls made by the command line tools under test."""
    saved = {name: getattr(Colors, name) for name in dir(Colors) if not name.startswith("_") and name != "disable"}
    yield
    for name, value in saved.items():
        setattr(Colors, name, value)


@pytest.fixture
def impact_project(temp_dir: str) -> Dict[str, str]:
    """Project where B.process gains a parameter and A calls B.process.

    Layout:
        project/src/{A,B,C}.kt   after the change
        baseline/src/{A,B,C}.kt  before the change
        facts.json               facts of both versions of B.kt, A.kt and C.kt
        change.diff              the unified diff of B.kt

    Returns:
        Dict with project, baseline, facts and diff paths
    """
    project = os.path.join(temp_dir, "project")
    baseline = os.path.join(temp_dir, "baseline")
    facts = os.path.join(temp_dir, "facts.json")
    diff = os.path.join(temp_dir, "change.diff")

    versions = impact_versions()
    write_project(project, facts, versions, {"src/A.kt": A_TEXT, "src/B.kt": B_AFTER, "src/C.kt": C_TEXT})
    write_project(baseline, facts, versions, {"src/A.kt": A_TEXT, "src/B.kt": B_BEFORE, "src/C.kt": C_TEXT})
    with open(diff, "w", encoding="utf-8") as f:
        f.write(SIGNATURE_DIFF)

    return {"project": project, "baseline": baseline, "facts": facts, "diff": diff}


@pytest.fixture
def git_project(temp_dir: str) -> Generator[Dict[str, str], None, None]:
    """Git repository holding the impact project in a "app" subdirectory.

    The first commit has the before version of B.kt, the second the after
    version. The snapshot lives outside the repository.

    Requires: git command available

    Returns:
        Dict with repo, project, facts, base (first commit) and head (second commit)
    """
    repo_dir = os.path.join(temp_dir, "repo")
    project = os.path.join(repo_dir, "app")
    facts = os.path.join(temp_dir, "facts.json")
    versions = impact_versions()

    def git(*args: str) -> str:
        return subprocess.run(["git", *args], cwd=repo_dir, check=True, capture_output=True, text=True).stdout.strip()

    try:
        write_project(project, facts, versions, {"src/A.kt": A_TEXT, "src/B.kt": B_BEFORE, "src/C.kt": C_TEXT})
        git("init")
        git("config", "user.email", "test@example.com")
        git("config", "user.name", "Test User")
        git("add", ".")
        git("commit", "-m", "Initial commit")
        base = git("rev-parse", "HEAD")

        Path(project, "src", "B.kt").write_text(B_AFTER, encoding="utf-8")
        git("add", "app/src/B.kt")
        git("commit", "-m", "Add parameter to process")
        head = git("rev-parse", "HEAD")
    except (OSError, subprocess.CalledProcessError) as e:
        pytest.skip(f"Git not available or failed: {e}")

    yield {"repo": repo_dir, "project": project, "facts": facts, "base": base, "head": head}
