import pathlib
import subprocess
import typing

import uhdboot.process


def apt_update(
    *, cwd: pathlib.Path | None, env: dict[str, str], dry_run: bool = False
) -> subprocess.CompletedProcess[str]:
    return uhdboot.process.run_command(
        ["apt-get", "-y", "update"], cwd=cwd, env=env, dry_run=dry_run
    )


def apt_install(
    packages: typing.Sequence[str],
    *,
    cwd: pathlib.Path | None,
    env: dict[str, str],
    dry_run: bool = False,
) -> subprocess.CompletedProcess[str] | None:
    """
    Install packages with apt. Returns None when there is nothing to install.
    """
    if not packages:
        return None

    return uhdboot.process.run_command(
        ["apt-get", "-y", "install", *packages], cwd=cwd, env=env, dry_run=dry_run
    )
