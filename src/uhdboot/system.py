import os
import pathlib
import platform

import uhdboot.constants


def platform_name() -> str:
    """
    Returns the name of the current platform, e.g. linux-x86_64.
    """
    return f"{platform.system().lower()}-{platform.machine()}"


def read_os_release(path: pathlib.Path | None = None) -> dict[str, str]:
    """
    Parse an os-release file into a dictionary.

    Missing files produce an empty dictionary.
    """
    if path is None:
        path = uhdboot.constants.os_release_path

    if not path.is_file():
        return {}

    fields: dict[str, str] = {}
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        fields[key] = value.strip("\"'")

    return fields


def is_debian_family(path: pathlib.Path | None = None) -> bool:
    """
    Check whether the host is Debian or a derivative of it.
    """
    os_release = read_os_release(path)
    ids = [os_release.get("ID", ""), *os_release.get("ID_LIKE", "").split()]
    return "debian" in ids


def is_root() -> bool:
    return os.geteuid() == 0


def cpu_count() -> int:
    """
    Number of processor cores available to this process, same as nproc.
    """
    if hasattr(os, "sched_getaffinity"):
        return len(os.sched_getaffinity(0))

    return os.cpu_count() or 1
