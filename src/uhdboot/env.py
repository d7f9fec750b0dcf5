import os

import uhdboot.constants


def merge_env(base: dict[str, str], override: dict[str, str]) -> dict[str, str]:
    """
    Merge two environment variable dictionaries, with `override` taking precedence.

    PATH from `override` is prepended to the base PATH instead of replacing it.
    """
    merged = base.copy()

    for key, value in override.items():
        if key == "PATH" and key in merged:
            merged["PATH"] = os.pathsep.join([value, base["PATH"]])
        else:
            merged[key] = value

    return merged


def baseline_env() -> dict[str, str]:
    """
    The inherited process environment with package installation forced non-interactive.
    """
    return merge_env(dict(os.environ), uhdboot.constants.noninteractive_env)


def provision_env(extra: dict[str, str]) -> dict[str, str]:
    """
    Environment every provisioning command runs with.
    """
    return merge_env(baseline_env(), extra)
