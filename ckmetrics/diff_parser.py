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
"""Unified diff reader (git diff / diff -u output).

Only the structure needed for impact analysis is extracted: per-file header
paths, change kind and hunks with line numbers. Binary and mode-only changes
appear as file changes without hunks. Hunk bodies are consumed by their
declared line counts, so removed lines that look like headers are read
correctly.
"""

import logging
import os
import re
from typing import List, Optional, Tuple

from .constants import DiffInputError
from .diff_types import DEV_NULL, ChangeKind, DiffHunk, DiffLine, FileChange, LineKind, ParsedDiff, classify_change

logger = logging.getLogger(__name__)

_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_GIT_HEADER = re.compile(r'^diff --git "?(?:a/)?(.+?)"? "?(?:b/)?(.+?)"?$')


def _strip_prefix(path: str) -> str:
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


def _header_path(line: str) -> str:
    """Path of a '--- ' or '+++ ' line, without a/ b/ prefix and trailing timestamp."""
    path = line[4:].split("\t", 1)[0].strip()
    if path.startswith('"') and path.endswith('"'):
        path = path[1:-1]
    if path == DEV_NULL:
        return path
    return _strip_prefix(path)


class _FileBuilder:
    """Mutable accumulator for one file section while reading."""

    def __init__(self, original_path: str = "", new_path: str = ""):
        self.original_path = original_path
        self.new_path = new_path
        self.kind: Optional[ChangeKind] = None
        self.hunks: List[DiffHunk] = []
        self.hunk_header: Optional[Tuple[int, int, int, int]] = None
        self.lines: List[DiffLine] = []
        self.old_line = 0
        self.new_line = 0
        self.old_remaining = 0
        self.new_remaining = 0

    @property
    def in_hunk(self) -> bool:
        return self.hunk_header is not None and (self.old_remaining > 0 or self.new_remaining > 0)

    def start_hunk(self, old_start: int, old_count: int, new_start: int, new_count: int) -> None:
        self.finish_hunk()
        self.hunk_header = (old_start, old_count, new_start, new_count)
        self.old_line = old_start
        self.new_line = new_start
        self.old_remaining = old_count
        self.new_remaining = new_count
        if not self.in_hunk:
            self.finish_hunk()

    def add_line(self, marker: str, content: str) -> None:
        if marker == "+":
            self.lines.append(DiffLine(LineKind.ADDED, content, None, self.new_line))
            self.new_line += 1
            self.new_remaining -= 1
        elif marker == "-":
            self.lines.append(DiffLine(LineKind.REMOVED, content, self.old_line, None))
            self.old_line += 1
            self.old_remaining -= 1
        else:
            self.lines.append(DiffLine(LineKind.CONTEXT, content, self.old_line, self.new_line))
            self.old_line += 1
            self.new_line += 1
            self.old_remaining -= 1
            self.new_remaining -= 1
        if not self.in_hunk:
            self.finish_hunk()

    def finish_hunk(self) -> None:
        if self.hunk_header is not None:
            self.hunks.append(DiffHunk(*self.hunk_header, lines=tuple(self.lines)))
        self.hunk_header = None
        self.lines = []

    def build(self) -> FileChange:
        self.finish_hunk()
        kind = classify_change(self.original_path, self.new_path)
        if self.kind is not None and kind == ChangeKind.MODIFIED:
            kind = self.kind
        return FileChange(self.original_path, self.new_path, kind, tuple(self.hunks))


def parse_unified_diff(text: str) -> ParsedDiff:
    """Parse unified diff text.

    Args:
        text: Diff content

    Returns:
        ParsedDiff with one FileChange per file section, in input order
    """
    changes: List[FileChange] = []
    current: Optional[_FileBuilder] = None

    for line in text.splitlines():
        if current is not None and current.in_hunk:
            if line.startswith("\\"):
                continue  # "\ No newline at end of file"
            if line == "":
                # Some tools strip the single space of empty context lines
                current.add_line(" ", "")
                continue
            if line[0] in "+- ":
                current.add_line(line[0], line[1:])
                continue
            logger.debug("Truncated hunk before: %s", line)
            current.finish_hunk()

        if line.startswith("diff --git "):
            if current is not None:
                changes.append(current.build())
            match = _GIT_HEADER.match(line)
            current = _FileBuilder(match.group(1), match.group(2)) if match else _FileBuilder()
        elif line.startswith("--- "):
            # Plain "diff -u" output has no "diff --git" line between files
            if current is None or current.hunks:
                if current is not None:
                    changes.append(current.build())
                current = _FileBuilder()
            current.original_path = _header_path(line)
        elif current is None:
            continue
        elif line.startswith("+++ "):
            current.new_path = _header_path(line)
        elif line.startswith("new file mode"):
            current.original_path = DEV_NULL
        elif line.startswith("deleted file mode"):
            current.new_path = DEV_NULL
        elif line.startswith("rename from "):
            current.original_path = line[len("rename from ") :]
            current.kind = ChangeKind.RENAMED
        elif line.startswith("rename to "):
            current.new_path = line[len("rename to ") :]
            current.kind = ChangeKind.RENAMED
        elif line.startswith("@@"):
            match = _HUNK_HEADER.match(line)
            if match is None:
                logger.debug("Malformed hunk header: %s", line)
                continue
            old_start, old_count, new_start, new_count = match.groups()
            current.start_hunk(
                int(old_start),
                int(old_count) if old_count is not None else 1,
                int(new_start),
                int(new_count) if new_count is not None else 1,
            )

    if current is not None:
        changes.append(current.build())

    logger.debug("Parsed diff with %s file changes", len(changes))
    return ParsedDiff(tuple(changes))


def parse_diff_file(path: str) -> ParsedDiff:
    """Read and parse a diff file.

    Args:
        path: Diff file path

    Returns:
        ParsedDiff

    Raises:
        DiffInputError: If the file is missing or unreadable
    """
    if not os.path.isfile(path):
        raise DiffInputError(f"Diff file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            text = f.read()
    except OSError as e:
        raise DiffInputError(f"Cannot read diff file {path}: {e}") from e
    return parse_unified_diff(text)
