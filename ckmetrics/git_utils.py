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
"""Utilities for Git operations (GitPython)."""

import logging
from typing import List, Optional

from git import BadName, BadObject, GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import GitError

from .constants import GitRepositoryError, ValidationError
from .diff_parser import parse_unified_diff
from .diff_types import ParsedDiff

logger = logging.getLogger(__name__)


def find_git_repo(start_path: str) -> Optional[str]:
    """Find the git repository root by searching upward from start_path.

    Args:
        start_path: Directory to start searching from

    Returns:
        Absolute path to git repository root, or None if not found
    """
    try:
        repo = Repo(start_path, search_parent_directories=True)
        repo_root = repo.working_dir
        if repo_root is not None:
            logger.debug("Found git repository at: %s", repo_root)
            return str(repo_root)
    except (InvalidGitRepositoryError, NoSuchPathError, GitError):
        pass
    return None


def _open_repo(repo_dir: str) -> Repo:
    try:
        return Repo(repo_dir, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise GitRepositoryError(f"Not a git repository: {repo_dir}") from e


def get_commit_hash(repo_dir: str, commit: str = "HEAD") -> Optional[str]:
    """Get the full commit hash for a commit reference.

    Args:
        repo_dir: Path to git repository
        commit: Git commit reference

    Returns:
        Full commit hash, or None if not found
    """
    try:
        repo = Repo(repo_dir, search_parent_directories=True)
        return repo.commit(commit).hexsha
    except (InvalidGitRepositoryError, NoSuchPathError, BadName, BadObject, ValueError, GitError) as e:
        logger.debug("Could not get commit hash for %s: %s", commit, e)
        return None


def diff_text_from_git(
    repo_dir: str, base_ref: str, head_ref: Optional[str] = None, context_lines: int = 3, ignore_whitespace: bool = True
) -> str:
    """Produce unified diff text between base_ref and head_ref (or the working tree).

    Args:
        repo_dir: Path to git repository
        base_ref: Base commit reference
        head_ref: Target commit reference; None compares against the working tree
        context_lines: Number of context lines per hunk
        ignore_whitespace: Ignore whitespace-only changes

    Returns:
        Unified diff text with rename detection

    Raises:
        GitRepositoryError: If repo_dir is not a git repository
        ValidationError: If a reference is invalid
    """
    repo = _open_repo(repo_dir)
    for ref in (base_ref, head_ref):
        if ref is None:
            continue
        try:
            repo.commit(ref)
        except (BadName, BadObject, ValueError) as e:
            raise ValidationError(f"Invalid commit reference: {ref}") from e

    args: List[str] = [f"--unified={context_lines}", "--find-renames", "--no-color", "--no-ext-diff"]
    if ignore_whitespace:
        args.append("--ignore-all-space")
    args.append(base_ref)
    if head_ref is not None:
        args.append(head_ref)

    try:
        text = repo.git.diff(*args)
    except GitCommandError as e:
        error_msg = str(e)
        if "unknown revision" in error_msg.lower() or "bad revision" in error_msg.lower():
            raise ValidationError(f"Invalid commit reference: {base_ref}") from e
        raise GitRepositoryError(f"Git command failed: {error_msg}") from e

    logger.debug("git diff %s produced %d characters", " ".join(args), len(text))
    return text


def parsed_diff_from_git(
    repo_dir: str, base_ref: str, head_ref: Optional[str] = None, context_lines: int = 3, ignore_whitespace: bool = True
) -> ParsedDiff:
    """Build a ParsedDiff from git (see diff_text_from_git for the arguments)."""
    diff = parse_unified_diff(diff_text_from_git(repo_dir, base_ref, head_ref, context_lines, ignore_whitespace))
    logger.info("Found %s changed files from %s to %s", len(diff), base_ref, head_ref or "working tree")
    return diff


def read_file_at_ref(repo_dir: str, ref: str, rel_path: str) -> Optional[str]:
    """Read a file's content as of a commit.

    Args:
        repo_dir: Path to git repository
        ref: Commit reference
        rel_path: File path relative to the repository root

    Returns:
        File content, or None if the file does not exist at that commit

    Raises:
        GitRepositoryError: If repo_dir is not a git repository
        ValidationError: If ref is invalid
    """
    repo = _open_repo(repo_dir)
    try:
        commit = repo.commit(ref)
    except (BadName, BadObject, ValueError) as e:
        raise ValidationError(f"Invalid commit reference: {ref}") from e

    try:
        blob = commit.tree / rel_path.replace("\\", "/")
    except KeyError:
        logger.debug("%s does not exist at %s", rel_path, ref)
        return None

    data: bytes = blob.data_stream.read()
    return data.decode("utf-8", errors="replace")
