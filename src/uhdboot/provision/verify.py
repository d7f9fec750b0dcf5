import subprocess

import uhdboot.process


def pkg_config_modversion(
    name: str, *, env: dict[str, str], dry_run: bool = False
) -> subprocess.CompletedProcess[str]:
    """
    Ask pkg-config for the version of an installed library.
    """
    return uhdboot.process.run_command(
        ["pkg-config", "--modversion", name],
        cwd=None,
        env=env,
        dry_run=dry_run,
        capture_output=True,
    )


def installed_version(name: str, *, env: dict[str, str]) -> str | None:
    """
    Version of an installed library as pkg-config sees it, None if it cannot be located.
    """
    process = pkg_config_modversion(name, env=env)
    if process.returncode != 0:
        return None

    return process.stdout.strip()
