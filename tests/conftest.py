import pathlib
import subprocess
import typing
import unittest.mock

import pytest
from pytest_mock import MockerFixture

from uhdboot.models import recipe as recipe_models


@pytest.fixture(name="recipe_data")
def recipe_data_fixture() -> dict[str, typing.Any]:
    return {
        "schema_version": 0,
        "name": "uhd",
        "env": {"CCACHE_DIR": "/var/cache/ccache"},
        "apt": {"update": True, "packages": ["cmake", "git", "libusb-1.0-0-dev"]},
        "source": {
            "repo_url": "https://github.com/EttusResearch/uhd.git",
            "ref": None,
            "checkout_dir": "uhd",
            "source_subdir": "host",
            "patches": [],
        },
        "build": {
            "build_dir": "build",
            "configure_args": ["-DENABLE_STATIC_LIBS=ON"],
            "parallel": None,
            "install": True,
        },
        "verify": {"pkg_config_name": "uhd"},
    }


@pytest.fixture(name="recipe")
def recipe_fixture(recipe_data: dict[str, typing.Any]) -> recipe_models.Recipe:
    return recipe_models.Recipe.model_validate(recipe_data)


class CommandRecorder:
    """
    Stands in for uhdboot.process.run_command.

    Return codes are looked up by command prefix, anything else succeeds.
    """

    def __init__(self, returncodes: dict[str, int] | None = None):
        self.returncodes: dict[str, int] = returncodes or {}
        self.calls: list[list[str]] = []
        self.cwds: list[pathlib.Path | None] = []
        self.envs: list[dict[str, str]] = []

    def __call__(
        self,
        args: list[str],
        *,
        cwd: pathlib.Path | None,
        env: dict[str, str],
        dry_run: bool = False,
        capture_output: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        self.calls.append(list(args))
        self.cwds.append(cwd)
        self.envs.append(env)
        if dry_run:
            returncode = 0
        else:
            if cwd is not None and not cwd.is_dir():
                raise RuntimeError(f"Cannot execute {args[0]}, {cwd} is not a directory.")
            command = " ".join(args)
            returncode = next(
                (code for prefix, code in self.returncodes.items() if command.startswith(prefix)), 0
            )
        stdout = "4.6.0.0\n" if capture_output and returncode == 0 else ""
        return subprocess.CompletedProcess(args, returncode, stdout=stdout)


@pytest.fixture(name="run_command")
def run_command_fixture(mocker: MockerFixture) -> CommandRecorder:
    recorder = CommandRecorder()
    _ = mocker.patch("uhdboot.process.run_command", side_effect=recorder)
    return recorder


@pytest.fixture(name="uhd_checkout")
def uhd_checkout_fixture(tmp_path: pathlib.Path) -> pathlib.Path:
    """
    A work directory holding a cloned uhd tree.
    """
    host_dir = tmp_path / "uhd" / "host"
    host_dir.mkdir(parents=True)
    (tmp_path / "uhd" / ".git").mkdir()
    (host_dir / "CMakeLists.txt").write_text("project(UHD)\n")
    return tmp_path


@pytest.fixture(name="cpu_count")
def cpu_count_fixture(mocker: MockerFixture) -> unittest.mock.Mock:
    return mocker.patch("uhdboot.system.cpu_count", return_value=6)
