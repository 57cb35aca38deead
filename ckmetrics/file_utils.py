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
"""Source file discovery, language detection and diff path resolution."""

import logging
import os
from typing import Dict, List, Optional

from .constants import BUILD_PATH_MARKERS, SOURCE_EXTENSIONS, TEST_PATH_MARKERS, ValidationError
from .fact_store import SourceFile, normalize_path
from .facts import Language

logger = logging.getLogger(__name__)

# Directories never descended into during discovery
_SKIP_DIRS = frozenset({".git", ".gradle", ".idea", "build", "out", "target", "node_modules"})


def detect_language(path: str) -> Language:
    """Language of a source file from its extension (UNKNOWN if unsupported)."""
    _, ext = os.path.splitext(path)
    return Language.from_tag(SOURCE_EXTENSIONS.get(ext.lower()))


def is_source_file(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in SOURCE_EXTENSIONS


def is_test_path(path: str) -> bool:
    normalized = "/" + normalize_path(path)
    return any(marker in normalized for marker in TEST_PATH_MARKERS)


def is_build_path(path: str) -> bool:
    normalized = "/" + normalize_path(path)
    return any(marker in normalized for marker in BUILD_PATH_MARKERS)


def discover_source_files(project_root: str, include_tests: bool = False) -> List[str]:
    """Find every supported source file below project_root.

    Args:
        project_root: Directory to scan
        include_tests: Whether files under test directories are included

    Returns:
        Sorted paths relative to project_root with posix separators

    Raises:
        ValidationError: If project_root is not a directory
    """
    if not os.path.isdir(project_root):
        raise ValidationError(f"Project root is not a directory: {project_root}")

    result = []
    for dirpath, dirnames, filenames in os.walk(project_root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
        for filename in filenames:
            if not is_source_file(filename):
                continue
            rel_path = normalize_path(os.path.relpath(os.path.join(dirpath, filename), project_root))
            if not include_tests and is_test_path(rel_path):
                continue
            result.append(rel_path)

    result.sort()
    logger.info("Discovered %d source files under %s", len(result), project_root)
    return result


def read_source_file(project_root: str, rel_path: str) -> SourceFile:
    """Read a source file into a SourceFile (undecodable bytes are replaced).

    Raises:
        OSError: If the file cannot be read
    """
    with open(os.path.join(project_root, rel_path), "r", encoding="utf-8", errors="replace") as f:
        text = f.read()
    return SourceFile(normalize_path(rel_path), text, detect_language(rel_path))


def clean_diff_path(diff_path: str) -> str:
    """Strip diff header prefixes ("a/", "b/", "./") and normalize separators.

    Example:
        >>> clean_diff_path("b/src/main/kotlin/Foo.kt")
        'src/main/kotlin/Foo.kt'
    """
    path = diff_path.strip().replace("\\", "/")
    for prefix in ("a/", "b/"):
        if path.startswith(prefix):
            path = path[len(prefix) :]
            break
    return normalize_path(path)


class FileResolver:
    """Resolves paths from diff headers to files in the project.

    Resolution strategies, in order: the cleaned path, the path without its
    first directory, and finally a unique file of the same name anywhere in
    the project (outside test and build directories).

    Args:
        project_root: Project root directory
    """

    def __init__(self, project_root: str):
        self.project_root = os.path.abspath(project_root)
        self._by_name: Optional[Dict[str, List[str]]] = None

    def _index_by_name(self) -> Dict[str, List[str]]:
        if self._by_name is None:
            self._by_name = {}
            for dirpath, dirnames, filenames in os.walk(self.project_root):
                dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
                for filename in filenames:
                    full = os.path.join(dirpath, filename)
                    rel = normalize_path(os.path.relpath(full, self.project_root))
                    if is_test_path(rel) or is_build_path(rel):
                        continue
                    self._by_name.setdefault(filename, []).append(rel)
        return self._by_name

    def _inside_root(self, rel_path: str) -> bool:
        full = os.path.abspath(os.path.join(self.project_root, rel_path))
        return full == self.project_root or full.startswith(self.project_root + os.sep)

    def resolve(self, diff_path: str) -> Optional[str]:
        """Resolve a diff path.

        Args:
            diff_path: Path as it appears in a diff header

        Returns:
            Path relative to project_root of an existing file, or None
        """
        clean = clean_diff_path(diff_path)
        if not clean or clean == "/dev/null":
            return None

        candidates = [clean]
        if "/" in clean:
            candidates.append(clean.split("/", 1)[1])

        for candidate in candidates:
            if ".." in candidate.split("/") or os.path.isabs(candidate):
                logger.warning("Skipping path outside project: %s", candidate)
                continue
            if self._inside_root(candidate) and os.path.isfile(os.path.join(self.project_root, candidate)):
                return candidate

        matches = self._index_by_name().get(os.path.basename(clean), [])
        if len(matches) == 1:
            logger.debug("Resolved %s by file name to %s", diff_path, matches[0])
            return matches[0]
        if len(matches) > 1:
            logger.debug("Ambiguous file name for %s: %s", diff_path, matches)
        return None

    def read(self, rel_path: str) -> SourceFile:
        return read_source_file(self.project_root, rel_path)
