import os
import pathlib
import shlex
import shutil
import subprocess

import uhdboot.logging


class ToolNotFoundError(RuntimeError):
    """
    An executable could not be resolved on PATH.
    """

    # Same code a shell reports for an unknown command
    returncode = 127

    def __init__(self, tool: str, path: str):
        super().__init__(f"{tool} is not found in {path}")
        self.tool = tool


def run_command(
    args: list[str],
    *,
    cwd: pathlib.Path | None,
    env: dict[str, str],
    dry_run: bool = False,
    capture_output: bool = False,
) -> subprocess.CompletedProcess[str]:
    """
    Run a single provisioning command.

    Output goes straight to the console unless `capture_output` is set. In dry-run mode the
    command is only logged and reported as successful.
    """

    if dry_run:
        uhdboot.logging.info("Would execute %s", shlex.join(args))
        return subprocess.CompletedProcess(args, 0, stdout="" if capture_output else None)

    if cwd is not None and not cwd.is_dir():
        raise RuntimeError(f"Cannot execute {args[0]}, {cwd} is not a directory.")

    path = env.get("PATH", os.defpath)
    cmd = shutil.which(args[0], path=path)
    if cmd is None:
        raise ToolNotFoundError(args[0], path)

    uhdboot.logging.info("Executing %s", shlex.join(args))
    uhdboot.logging.debug("Working directory %s, env %s", cwd, env)
    return subprocess.run(
        [cmd, *args[1:]], text=True, env=env, cwd=cwd, capture_output=capture_output
    )
