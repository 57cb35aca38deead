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
"""Tests for ckmetrics.package_verification module"""

import argparse
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from ckmetrics.constants import EXIT_RUNTIME_ERROR
from ckmetrics.package_verification import PACKAGE_REQUIREMENTS, CheckPackagesAction, check_all_packages, check_package_version, require_package


class TestCheckPackageVersion:
    """Test check_package_version."""

    def test_installed_package(self) -> None:
        is_installed, meets_version, installed = check_package_version("networkx")
        assert is_installed
        assert meets_version
        assert installed is not None

    def test_too_old(self) -> None:
        with pytest.raises(ImportError, match="too old"):
            check_package_version("networkx", "999.0")
        assert check_package_version("networkx", "999.0", raise_on_error=False)[:2] == (True, False)

    def test_not_installed(self) -> None:
        with pytest.raises(ImportError, match="not installed"):
            check_package_version("ckcheck-no-such-package", "1.0")
        assert check_package_version("ckcheck-no-such-package", "1.0", raise_on_error=False) == (False, False, None)

    def test_unknown_requirement(self) -> None:
        with pytest.raises(ValueError):
            check_package_version("ckcheck-no-such-package")

    def test_requirements_cover_runtime_stack(self) -> None:
        assert set(PACKAGE_REQUIREMENTS) == {"networkx", "GitPython", "packaging", "colorama"}


class TestRequirePackage:
    """Test require_package and check_all_packages."""

    def test_satisfied(self) -> None:
        require_package("networkx", "graph analysis")

    def test_unknown_package_exits(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            require_package("ckcheck-no-such-package")
        assert exc_info.value.code == EXIT_RUNTIME_ERROR

    def test_check_all(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert check_all_packages()
        assert "All required packages are available" in capsys.readouterr().out

    def test_check_packages_action(self, capsys: pytest.CaptureFixture[str]) -> None:
        parser = argparse.ArgumentParser()
        parser.add_argument("required_positional")
        parser.add_argument("--check-packages", action=CheckPackagesAction)
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--check-packages"])
        assert exc_info.value.code == 0
        assert "networkx" in capsys.readouterr().out
