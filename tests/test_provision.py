import pathlib
import typing
import unittest.mock

import pytest
import requests
from pytest_mock import MockerFixture

from uhdboot.provision import apt, cmake, source, verify

if typing.TYPE_CHECKING:
    import tests.conftest

ENV = {"PATH": "/usr/bin", "DEBIAN_FRONTEND": "noninteractive"}


class TestApt:
    def test_update(self, run_command: "tests.conftest.CommandRecorder"):
        process = apt.apt_update(cwd=None, env=ENV)

        assert process.returncode == 0
        assert run_command.calls == [["apt-get", "-y", "update"]]
        assert run_command.envs[0]["DEBIAN_FRONTEND"] == "noninteractive"

    def test_install_in_listed_order(self, run_command: "tests.conftest.CommandRecorder"):
        # WHEN: installing several packages
        _ = apt.apt_install(["cmake", "git", "libboost-all-dev"], cwd=None, env=ENV)

        # THEN: one apt-get call installs all of them
        assert run_command.calls == [
            ["apt-get", "-y", "install", "cmake", "git", "libboost-all-dev"]
        ]

    def test_install_nothing(self, run_command: "tests.conftest.CommandRecorder"):
        assert apt.apt_install([], cwd=None, env=ENV) is None
        assert run_command.calls == []


class TestSource:
    def test_clone(self, run_command: "tests.conftest.CommandRecorder", tmp_path: pathlib.Path):
        # WHEN: fetching into an empty work directory
        _ = source.fetch_source(
            "https://github.com/EttusResearch/uhd.git",
            tmp_path / "uhd",
            ref=None,
            cwd=tmp_path,
            env=ENV,
        )

        # THEN: the repository is cloned
        assert run_command.calls == [
            [
                "git",
                "clone",
                "https://github.com/EttusResearch/uhd.git",
                (tmp_path / "uhd").as_posix(),
            ]
        ]
        assert run_command.cwds == [tmp_path]

    def test_clone_ref(self, run_command: "tests.conftest.CommandRecorder", tmp_path: pathlib.Path):
        _ = source.fetch_source(
            "https://github.com/EttusResearch/uhd.git",
            tmp_path / "uhd",
            ref="v4.6.0.0",
            cwd=tmp_path,
            env=ENV,
        )

        assert run_command.calls[0][:4] == ["git", "clone", "--branch", "v4.6.0.0"]

    def test_existing_checkout_is_updated(
        self, run_command: "tests.conftest.CommandRecorder", uhd_checkout: pathlib.Path
    ):
        # WHEN: fetching over an existing checkout
        _ = source.fetch_source(
            "https://github.com/EttusResearch/uhd.git",
            uhd_checkout / "uhd",
            ref=None,
            cwd=uhd_checkout,
            env=ENV,
        )

        # THEN: it is fast-forwarded instead of cloned again
        assert run_command.calls == [
            ["git", "-C", (uhd_checkout / "uhd").as_posix(), "pull", "--ff-only"]
        ]

    def test_non_git_directory(
        self, run_command: "tests.conftest.CommandRecorder", tmp_path: pathlib.Path
    ):
        # GIVEN: a non-empty directory in the way
        (tmp_path / "uhd").mkdir()
        _ = (tmp_path / "uhd" / "README").write_text("not a checkout")

        # WHEN/THEN: fetching refuses to touch it
        with pytest.raises(RuntimeError, match="is not a git checkout"):
            _ = source.fetch_source(
                "https://github.com/EttusResearch/uhd.git",
                tmp_path / "uhd",
                ref=None,
                cwd=tmp_path,
                env=ENV,
            )
        assert run_command.calls == []

    def test_checkout_dir_is_a_file(
        self, run_command: "tests.conftest.CommandRecorder", tmp_path: pathlib.Path
    ):
        # GIVEN: a regular file where the checkout should go
        _ = (tmp_path / "uhd").write_text("not a checkout")

        # WHEN/THEN: fetching reports it instead of failing to list it
        with pytest.raises(RuntimeError, match="is not a directory"):
            _ = source.fetch_source(
                "https://github.com/EttusResearch/uhd.git",
                tmp_path / "uhd",
                ref=None,
                cwd=tmp_path,
                env=ENV,
            )
        assert run_command.calls == []

    def test_apply_patches(self, uhd_checkout: pathlib.Path):
        # GIVEN: a patch against the checked out tree
        patch_path = uhd_checkout / "static.patch"
        _ = patch_path.write_text(
            "--- host/CMakeLists.txt\n"
            "+++ host/CMakeLists.txt\n"
            "@@ -1 +1,2 @@\n"
            " project(UHD)\n"
            "+set(ENABLE_STATIC_LIBS ON)\n"
        )

        # WHEN: applying it
        source.apply_patches([patch_path], uhd_checkout / "uhd")

        # THEN: the source is changed
        assert (uhd_checkout / "uhd" / "host" / "CMakeLists.txt").read_text() == (
            "project(UHD)\nset(ENABLE_STATIC_LIBS ON)\n"
        )

    def test_apply_missing_patch(self, uhd_checkout: pathlib.Path):
        with pytest.raises(RuntimeError, match="Patch missing.patch is not found"):
            source.apply_patches([uhd_checkout / "missing.patch"], uhd_checkout / "uhd")

    def test_probe_remote(self, mocker: MockerFixture):
        # GIVEN: a remote that answers
        get_mock = mocker.patch(
            "uhdboot.provision.source.requests.get", return_value=unittest.mock.Mock(ok=True)
        )

        # WHEN/THEN: it is reported reachable through the smart HTTP endpoint
        assert source.probe_remote("https://github.com/EttusResearch/uhd.git") is True
        assert get_mock.call_args[0][0] == (
            "https://github.com/EttusResearch/uhd.git/info/refs?service=git-upload-pack"
        )

    def test_probe_unreachable_remote(self, mocker: MockerFixture):
        _ = mocker.patch(
            "uhdboot.provision.source.requests.get",
            side_effect=requests.ConnectionError("Name or service not known"),
        )

        assert source.probe_remote("https://github.com/EttusResearch/uhd.git") is False

    def test_probe_ssh_remote(self, mocker: MockerFixture):
        get_mock = mocker.patch("uhdboot.provision.source.requests.get")

        assert source.probe_remote("ssh://git@github.com/EttusResearch/uhd.git") is None
        get_mock.assert_not_called()


class TestCmake:
    def test_configure_out_of_tree(
        self, run_command: "tests.conftest.CommandRecorder", uhd_checkout: pathlib.Path
    ):
        # GIVEN: a checked out source tree
        source_dir = uhd_checkout / "uhd" / "host"
        build_dir = source_dir / "build"

        # WHEN: configuring it
        _ = cmake.configure(source_dir, build_dir, args=["-DENABLE_STATIC_LIBS=ON"], env=ENV)

        # THEN: cmake runs from a fresh build directory pointing back at the source
        assert build_dir.is_dir()
        assert run_command.calls == [["cmake", "-DENABLE_STATIC_LIBS=ON", "../"]]
        assert run_command.cwds == [build_dir]

    def test_configure_fresh(
        self, run_command: "tests.conftest.CommandRecorder", uhd_checkout: pathlib.Path
    ):
        # GIVEN: a stale build directory
        source_dir = uhd_checkout / "uhd" / "host"
        build_dir = source_dir / "build"
        build_dir.mkdir()
        _ = (build_dir / "CMakeCache.txt").write_text("stale")

        # WHEN: configuring from scratch
        _ = cmake.configure(source_dir, build_dir, args=[], env=ENV, fresh=True)

        # THEN: the old cache is gone
        assert not (build_dir / "CMakeCache.txt").exists()

    def test_configure_without_source(
        self, run_command: "tests.conftest.CommandRecorder", tmp_path: pathlib.Path
    ):
        # GIVEN: a work directory where the clone never happened
        source_dir = tmp_path / "uhd" / "host"

        # WHEN/THEN: configure fails instead of producing an empty build
        with pytest.raises(cmake.MissingSourceError):
            _ = cmake.configure(source_dir, source_dir / "build", args=[], env=ENV)
        assert run_command.calls == []
        assert not (source_dir / "build").exists()

    @pytest.mark.usefixtures("cpu_count")
    def test_make_uses_every_core(
        self, run_command: "tests.conftest.CommandRecorder", uhd_checkout: pathlib.Path
    ):
        build_dir = uhd_checkout / "uhd" / "host"

        _ = cmake.make(build_dir, parallel=None, env=ENV)

        assert run_command.calls == [["make", "--jobs=6"]]

    def test_make_install(
        self, run_command: "tests.conftest.CommandRecorder", uhd_checkout: pathlib.Path
    ):
        _ = cmake.make_install(uhd_checkout, env=ENV)

        assert run_command.calls == [["make", "install"]]


class TestVerify:
    def test_installed_version(self, run_command: "tests.conftest.CommandRecorder"):
        assert verify.installed_version("uhd", env=ENV) == "4.6.0.0"
        assert run_command.calls == [["pkg-config", "--modversion", "uhd"]]

    def test_not_installed(self, run_command: "tests.conftest.CommandRecorder"):
        run_command.returncodes["pkg-config"] = 1

        assert verify.installed_version("uhd", env=ENV) is None
