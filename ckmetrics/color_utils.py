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
"""Terminal colors for the ckCheck reports, built on colorama.

Severity labels used across the reports (risk priorities, impact levels and
quality levels) map to one color each so the tables read the same in both
tools.
"""

import os
import sys
from typing import Any, Dict, List, Optional, TextIO, Tuple

from colorama import Fore, Style, init

# should_use_color() decides; colorama must not strip codes on its own
init(autoreset=False, strip=False)


class Colors:
    """ANSI codes used by the reports; all empty after disable()."""

    RED = Fore.RED
    GREEN = Fore.GREEN
    YELLOW = Fore.YELLOW
    MAGENTA = Fore.MAGENTA
    CYAN = Fore.CYAN
    WHITE = Fore.WHITE

    RESET = Style.RESET_ALL
    BRIGHT = Style.BRIGHT
    NORMAL = Style.NORMAL

    @staticmethod
    def disable() -> None:
        """Blank every code so output is plain text."""
        for name in ("RED", "GREEN", "YELLOW", "MAGENTA", "CYAN", "WHITE", "RESET", "BRIGHT", "NORMAL"):
            setattr(Colors, name, "")


# label -> (Colors attribute, bright)
SEVERITY_STYLES: Dict[str, Tuple[str, bool]] = {
    "critical": ("RED", True),
    "high": ("RED", False),
    "poor": ("RED", False),
    "medium": ("YELLOW", False),
    "moderate": ("YELLOW", False),
    "low": ("GREEN", False),
    "good": ("GREEN", False),
    "excellent": ("GREEN", True),
    "minimal": ("CYAN", False),
}


def colored(text: str, color: str = "", style: str = "") -> str:
    """Wrap text in a color (and optional style) followed by a reset.

    Text is returned unchanged when no color is given, which is also the case
    for every code once colors are disabled.
    """
    if not color:
        return text
    return f"{style}{color}{text}{Colors.RESET}"


def get_severity_color(severity: str) -> Tuple[str, str]:
    """Return (color, style) for a severity label, case-insensitive.

    Unknown labels are shown white.
    """
    color_name, bright = SEVERITY_STYLES.get(severity.lower(), ("WHITE", False))
    return getattr(Colors, color_name), Colors.BRIGHT if bright else Colors.NORMAL


def color_severity(text: str, severity: str) -> str:
    color, style = get_severity_color(severity)
    return colored(text, color, style)


def format_table_row(columns: List[Any], widths: List[int], colors: Optional[List[str]] = None) -> str:
    """Left-align each column to its width, coloring cells that have a color."""
    cells = []
    for index, (value, width) in enumerate(zip(columns, widths)):
        cell = str(value).ljust(width)
        color = colors[index] if colors else ""
        cells.append(colored(cell, color))
    return " ".join(cells)


def _emit(message: str, color: str, file: TextIO) -> None:
    print(colored(message, color), file=file)


def print_success(text: str, file: Optional[TextIO] = None, prefix: bool = False) -> None:
    """Print a green message to stdout."""
    _emit(f"Success: {text}" if prefix else text, Colors.GREEN, file or sys.stdout)


def print_error(text: str, file: Optional[TextIO] = None, prefix: bool = True) -> None:
    """Print a red message to stderr.

    Args:
        text: Message to print
        file: Destination stream (default: sys.stderr)
        prefix: Prepend "Error: " (default: True)
    """
    _emit(f"Error: {text}" if prefix else text, Colors.RED, file or sys.stderr)


def print_warning(text: str, file: Optional[TextIO] = None, prefix: bool = True) -> None:
    """Print a yellow message to stderr."""
    _emit(f"Warning: {text}" if prefix else text, Colors.YELLOW, file or sys.stderr)


def print_header(text: str, width: int = 80, file: Optional[TextIO] = None) -> None:
    """Print a report section title between two rules."""
    out = file or sys.stdout
    rule = colored("=" * width, Colors.BRIGHT)
    print(f"\n{rule}", file=out)
    print(colored(text, Colors.BRIGHT), file=out)
    print(rule, file=out)


def should_use_color(force_color: bool = False, no_color: bool = False) -> bool:
    """Decide whether the reports are colored.

    no_color wins over force_color; otherwise stdout must be a terminal and
    NO_COLOR (no-color.org) must be unset or empty.
    """
    if no_color:
        return False
    if force_color:
        return True
    return sys.stdout.isatty() and not os.environ.get("NO_COLOR")


def configure_color(force_color: bool = False, no_color: bool = False) -> bool:
    """Disable Colors globally unless the reports should be colored.

    Returns:
        True if color stays enabled
    """
    enabled = should_use_color(force_color, no_color)
    if not enabled:
        Colors.disable()
    return enabled
