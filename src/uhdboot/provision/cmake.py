import os
import pathlib
import subprocess

import uhdboot.logging
import uhdboot.process
import uhdboot.system
import uhdboot.util


class MissingSourceError(RuntimeError):
    """
    The source tree to configure is not there, usually because fetching it failed.
    """

    def __init__(self, source_dir: pathlib.Path):
        super().__init__(f"No CMakeLists.txt in {source_dir}, is the source checked out?")
        self.source_dir = source_dir


def configure(
    source_dir: pathlib.Path,
    build_dir: pathlib.Path,
    *,
    args: list[str],
    env: dict[str, str],
    fresh: bool = False,
    dry_run: bool = False,
) -> subprocess.CompletedProcess[str]:
    """
    Configure an out-of-tree build of `source_dir` inside `build_dir`.
    """
    if not dry_run:
        if not (source_dir / "CMakeLists.txt").is_file():
            raise MissingSourceError(source_dir)

        if fresh:
            uhdboot.logging.info("Clearing build directory %s", build_dir)
            uhdboot.util.clear_path(build_dir)
        else:
            uhdboot.util.ensure_path(build_dir)

    source_arg = pathlib.Path(os.path.relpath(source_dir, build_dir)).as_posix()
    return uhdboot.process.run_command(
        ["cmake", *args, f"{source_arg}/"], cwd=build_dir, env=env, dry_run=dry_run
    )


def make(
    build_dir: pathlib.Path,
    *,
    parallel: int | None,
    env: dict[str, str],
    dry_run: bool = False,
) -> subprocess.CompletedProcess[str]:
    """
    Compile the configured build, one job per core unless `parallel` says otherwise.
    """
    if parallel is None:
        parallel = uhdboot.system.cpu_count()

    return uhdboot.process.run_command(
        ["make", f"--jobs={parallel}"], cwd=build_dir, env=env, dry_run=dry_run
    )


def make_install(
    build_dir: pathlib.Path, *, env: dict[str, str], dry_run: bool = False
) -> subprocess.CompletedProcess[str]:
    return uhdboot.process.run_command(
        ["make", "install"], cwd=build_dir, env=env, dry_run=dry_run
    )
