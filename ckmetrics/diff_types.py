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
"""Type definitions for parsed diffs."""

import enum
from dataclasses import dataclass
from typing import List, Optional, Tuple

DEV_NULL = "/dev/null"


class ChangeKind(enum.Enum):
    """How a file changed."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class LineKind(enum.Enum):
    """Role of a line inside a hunk."""

    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class DiffLine:
    """One line of a hunk.

    Attributes:
        kind: Context, added or removed
        content: Line text without its +/-/space prefix
        old_line: Line number in the original file (None for added lines)
        new_line: Line number in the new file (None for removed lines)
    """

    kind: LineKind
    content: str
    old_line: Optional[int]
    new_line: Optional[int]


@dataclass(frozen=True)
class DiffHunk:
    """A contiguous block of changes ("@@ -old_start,old_count +new_start,new_count @@")."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: Tuple[DiffLine, ...] = ()

    @property
    def added_lines(self) -> List[DiffLine]:
        return [line for line in self.lines if line.kind == LineKind.ADDED]

    @property
    def removed_lines(self) -> List[DiffLine]:
        return [line for line in self.lines if line.kind == LineKind.REMOVED]


@dataclass(frozen=True)
class FileChange:
    """All changes to one file.

    Attributes:
        original_path: Path before the change (DEV_NULL for added files)
        new_path: Path after the change (DEV_NULL for deleted files)
        change_kind: ADDED, MODIFIED, DELETED or RENAMED
        hunks: Changed blocks
    """

    original_path: str
    new_path: str
    change_kind: ChangeKind
    hunks: Tuple[DiffHunk, ...] = ()

    @property
    def effective_path(self) -> str:
        """Path that exists after the change (the original path for deletions)."""
        return self.original_path if self.change_kind == ChangeKind.DELETED else self.new_path

    @property
    def added_count(self) -> int:
        return sum(len(h.added_lines) for h in self.hunks)

    @property
    def removed_count(self) -> int:
        return sum(len(h.removed_lines) for h in self.hunks)


def classify_change(original_path: str, new_path: str) -> ChangeKind:
    """Derive the change kind from the two header paths."""
    if original_path == DEV_NULL:
        return ChangeKind.ADDED
    if new_path == DEV_NULL:
        return ChangeKind.DELETED
    if original_path != new_path:
        return ChangeKind.RENAMED
    return ChangeKind.MODIFIED


@dataclass(frozen=True)
class ParsedDiff:
    """Structured content of a diff."""

    file_changes: Tuple[FileChange, ...] = ()

    @property
    def changed_paths(self) -> List[str]:
        return [change.effective_path for change in self.file_changes]

    def __len__(self) -> int:
        return len(self.file_changes)
