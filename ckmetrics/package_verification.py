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
"""Runtime dependency checks for the ckCheck tools.

Minimum versions follow Ubuntu 24.04 LTS or actual code requirements,
whichever is higher.
"""

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import Dict, NamedTuple, Optional

from packaging.version import parse

from .color_utils import print_error, print_success
from .constants import EXIT_RUNTIME_ERROR

logger = logging.getLogger(__name__)

# Distribution name -> minimum version
PACKAGE_REQUIREMENTS: Dict[str, str] = {
    "networkx": "2.8.8",  # node_link_data, write_gexf
    "GitPython": "3.1.40",
    "colorama": "0.4.6",
    "packaging": "24.0",
}


class PackageStatus(NamedTuple):
    """Outcome of a version check; unpacks as (installed, meets_version, version)."""

    installed: bool
    meets_version: bool
    installed_version: Optional[str]


def _install_hint(package_name: str, min_version: str, upgrade: bool = False) -> str:
    flag = "--upgrade " if upgrade else ""
    return f"pip install {flag}'{package_name}>={min_version}'"


def check_package_version(package_name: str, min_version: Optional[str] = None, raise_on_error: bool = True) -> PackageStatus:
    """Check that a distribution is installed in at least the given version.

    Args:
        package_name: Distribution name (e.g. 'GitPython', not 'git')
        min_version: Minimum version; looked up in PACKAGE_REQUIREMENTS when None
        raise_on_error: Raise ImportError instead of returning a failed status

    Returns:
        PackageStatus of the installed distribution

    Raises:
        ImportError: If raise_on_error and the package is missing or too old
        ValueError: If no minimum version is known for the package
    """
    if min_version is None:
        min_version = PACKAGE_REQUIREMENTS.get(package_name)
        if min_version is None:
            raise ValueError(f"No version requirement specified for {package_name}")

    try:
        installed_version = version(package_name)
    except PackageNotFoundError as exc:
        if raise_on_error:
            raise ImportError(f"{package_name} is not installed. Install with: {_install_hint(package_name, min_version)}") from exc
        return PackageStatus(False, False, None)

    status = PackageStatus(True, parse(installed_version) >= parse(min_version), installed_version)
    if not status.meets_version and raise_on_error:
        raise ImportError(
            f"{package_name} {installed_version} is too old, >={min_version} is required. "
            f"Upgrade with: {_install_hint(package_name, min_version, upgrade=True)}"
        )
    return status


def require_package(package_name: str, context: str = "this tool") -> None:
    """Exit with EXIT_RUNTIME_ERROR if a package needed for context is unusable."""
    min_version = PACKAGE_REQUIREMENTS.get(package_name)
    if min_version is None:
        print_error(f"Unknown package '{package_name}' - no version requirement defined")
        sys.exit(EXIT_RUNTIME_ERROR)

    status = check_package_version(package_name, min_version, raise_on_error=False)
    if status.installed and status.meets_version:
        logger.debug("%s %s satisfies >=%s", package_name, status.installed_version, min_version)
        return

    if status.installed:
        print_error(f"{package_name} {status.installed_version} is too old for {context}.")
    else:
        print_error(f"{package_name} is required for {context}.")
    print(_install_hint(package_name, min_version, upgrade=status.installed), file=sys.stderr)
    sys.exit(EXIT_RUNTIME_ERROR)


def check_all_packages() -> bool:
    """Print one status line per runtime package.

    Returns:
        True if every package is installed in a sufficient version
    """
    missing = []
    for package_name, min_version in PACKAGE_REQUIREMENTS.items():
        status = check_package_version(package_name, min_version, raise_on_error=False)
        if status.meets_version:
            print_success(f"{package_name} {status.installed_version}")
            continue
        found = status.installed_version or "not installed"
        print_error(f"{package_name}: {found} (need >={min_version})", prefix=False)
        missing.append(f"'{package_name}>={min_version}'")

    if not missing:
        print_success("All required packages are available")
        return True
    print_error("Some required packages are missing or too old", prefix=False)
    print("Install them with: pip install " + " ".join(missing))
    return False


class CheckPackagesAction(argparse.Action):
    """--check-packages: print the runtime package status and exit, like --version."""

    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):  # pylint: disable=redefined-builtin
        super().__init__(option_strings=option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        parser.exit(0 if check_all_packages() else EXIT_RUNTIME_ERROR)
