import pathlib
import subprocess
import urllib.parse

import patch_ng
import requests

import uhdboot.constants
import uhdboot.logging
import uhdboot.process


def is_git_checkout(path: pathlib.Path) -> bool:
    return (path / ".git").exists()


def fetch_source(
    repo_url: str,
    dest: pathlib.Path,
    *,
    ref: str | None,
    cwd: pathlib.Path,
    env: dict[str, str],
    dry_run: bool = False,
) -> subprocess.CompletedProcess[str]:
    """
    Clone `repo_url` into `dest`, or fast-forward `dest` if it is already a checkout.

    Both paths need the remote, so an unreachable remote always fails here rather than leaving a
    stale tree for the build.
    """
    if is_git_checkout(dest):
        uhdboot.logging.info("Updating existing checkout %s", dest)
        return uhdboot.process.run_command(
            ["git", "-C", dest.as_posix(), "pull", "--ff-only"], cwd=cwd, env=env, dry_run=dry_run
        )

    if dest.exists() and not dest.is_dir():
        raise RuntimeError(f"{dest} exists but is not a directory.")

    if dest.exists() and any(dest.iterdir()):
        raise RuntimeError(f"{dest} exists but is not a git checkout.")

    args = ["git", "clone"]
    if ref is not None:
        args += ["--branch", ref]
    args += [repo_url, dest.as_posix()]
    return uhdboot.process.run_command(args, cwd=cwd, env=env, dry_run=dry_run)


def apply_patches(patch_paths: list[pathlib.Path], root: pathlib.Path, *, dry_run: bool = False):
    """
    Apply unified diffs to the source tree at `root`, in order.
    """
    for patch_path in patch_paths:
        uhdboot.logging.info("Applying %s", patch_path.name)
        if not patch_path.is_file():
            raise RuntimeError(f"Patch {patch_path.name} is not found in {patch_path.parent}.")

        if dry_run:
            continue

        patch = patch_ng.fromfile(str(patch_path))
        if isinstance(patch, bool):
            raise RuntimeError(f"Failed to load patch {patch_path.name}")

        if not patch.apply(root=str(root)):
            raise RuntimeError(f"Failed to apply {patch_path.name}.")


def probe_remote(
    repo_url: str, timeout: float = uhdboot.constants.remote_probe_timeout
) -> bool | None:
    """
    Check that a git remote answers over HTTP(S).

    Returns None for remotes that cannot be probed this way, such as ssh URLs.
    """
    if urllib.parse.urlparse(repo_url).scheme not in ("http", "https"):
        return None

    refs_url = f"{repo_url.rstrip('/')}/info/refs?service=git-upload-pack"
    try:
        res = requests.get(refs_url, timeout=timeout)
    except requests.RequestException as e:
        uhdboot.logging.debug("Probing %s failed: %s", refs_url, e)
        return False

    return res.ok
