import dataclasses
import pathlib
import shlex
import subprocess
import typing

import uhdboot.env
import uhdboot.logging
import uhdboot.str_interpolation
import uhdboot.system
from uhdboot.models import recipe as recipe_models
from uhdboot.provision import apt, cmake, source, verify

StepName = typing.Literal[
    "apt-update",
    "apt-install",
    "clone",
    "patch",
    "configure",
    "compile",
    "install",
    "verify",
]

STEP_NAMES: tuple[str, ...] = typing.get_args(StepName)


class StepFailedError(RuntimeError):
    """
    A provisioning step finished with a non-zero return code.
    """

    def __init__(self, step: str, args: list[str], returncode: int):
        super().__init__(
            f"Step {step} failed executing {shlex.join(args)}, return code {returncode}."
        )
        self.step = step
        self.returncode = returncode


class SourceNotFetchedError(RuntimeError):
    """
    A build step was reached although fetching the source failed.
    """

    def __init__(self, step: str, checkout_dir: pathlib.Path):
        super().__init__(
            f"Fetching {checkout_dir} failed, refusing to run step {step} "
            "on a stale or missing source tree."
        )
        self.step = step


@dataclasses.dataclass
class StepResult:
    name: str
    args: list[str]
    returncode: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclasses.dataclass
class ProvisionReport:
    results: list[StepResult] = dataclasses.field(default_factory=list)

    @property
    def exit_code(self) -> int:
        """
        Return code of the last step that ran, like a shell script without `set -e`.
        """
        if not self.results:
            return 0
        return self.results[-1].returncode

    @property
    def failed(self) -> list[StepResult]:
        return [result for result in self.results if not result.ok]


@dataclasses.dataclass
class ProvisionOptions:
    # Overrides the recipe; None falls back to the recipe, then to the core count
    parallel: int | None = None

    # Run every step even after one fails, instead of stopping at the first failure
    keep_going: bool = False

    dry_run: bool = False

    # Start configure from an empty build directory
    fresh: bool = False

    skip: frozenset[str] = frozenset()


def builtin_variables(
    recipe: recipe_models.Recipe, work_dir: pathlib.Path, parallel: int
) -> dict[str, str]:
    """
    Variables available to configure arguments.
    """
    return {
        "work_dir": work_dir.as_posix(),
        "source_dir": recipe.source_path(work_dir).as_posix(),
        "build_dir": recipe.build_path(work_dir).as_posix(),
        "parallelism": str(parallel),
    }


def _run_step(
    report: ProvisionReport,
    name: str,
    step: typing.Callable[[], subprocess.CompletedProcess[str] | None],
    *,
    keep_going: bool,
):
    uhdboot.logging.info("Running step %s", name)
    try:
        process = step()
    except (RuntimeError, OSError) as e:
        if not keep_going:
            raise
        uhdboot.logging.error("Step %s failed: %s", name, e)
        report.results.append(StepResult(name, [], getattr(e, "returncode", 1), error=str(e)))
        return

    if process is None:
        uhdboot.logging.info("Nothing to do for step %s", name)
        return

    args = [str(arg) for arg in process.args]
    result = StepResult(name, args, process.returncode)
    report.results.append(result)
    if result.ok:
        return

    if not keep_going:
        raise StepFailedError(name, args, process.returncode)
    uhdboot.logging.error(
        "Step %s failed with return code %d, continuing", name, process.returncode
    )


def provision_and_build(
    recipe: recipe_models.Recipe,
    *,
    work_dir: pathlib.Path,
    options: ProvisionOptions | None = None,
) -> ProvisionReport:
    """
    Install build dependencies, fetch the source, then configure, compile and install it.

    Steps run strictly in order. By default the first failing step raises; with `keep_going`
    every step is attempted and the failures are only recorded in the report.
    """
    if options is None:
        options = ProvisionOptions()

    unknown_steps = options.skip - set(STEP_NAMES)
    if unknown_steps:
        raise RuntimeError(
            f"Unknown steps {', '.join(sorted(unknown_steps))}. "
            f"Supported steps: {', '.join(STEP_NAMES)}."
        )

    env = uhdboot.env.provision_env(recipe.env)
    dry_run = options.dry_run
    parallel = options.parallel or recipe.build.parallel or uhdboot.system.cpu_count()

    checkout_dir = recipe.checkout_path(work_dir)
    source_dir = recipe.source_path(work_dir)
    build_dir = recipe.build_path(work_dir)

    variables = builtin_variables(recipe, work_dir, parallel)
    configure_args = [
        uhdboot.str_interpolation.interpolate(arg, variables) for arg in recipe.build.configure_args
    ]

    report = ProvisionReport()

    def after_fetch(
        name: str,
        step: typing.Callable[[], subprocess.CompletedProcess[str] | None],
        enabled: bool = True,
    ) -> typing.Callable[[], subprocess.CompletedProcess[str] | None]:
        """
        Refuse to run `step` once fetching the source has failed.
        """

        def guarded() -> subprocess.CompletedProcess[str] | None:
            if not enabled:
                return None
            if any(result.name == "clone" and not result.ok for result in report.results):
                raise SourceNotFetchedError(name, checkout_dir)
            return step()

        return guarded

    def patch_step() -> subprocess.CompletedProcess[str] | None:
        patch_paths = recipe.patch_paths()
        if not patch_paths:
            return None
        source.apply_patches(patch_paths, checkout_dir, dry_run=dry_run)
        return subprocess.CompletedProcess(["patch", *[p.name for p in patch_paths]], 0)

    def verify_step() -> subprocess.CompletedProcess[str] | None:
        if recipe.verify.pkg_config_name is None:
            return None
        process = verify.pkg_config_modversion(
            recipe.verify.pkg_config_name, env=env, dry_run=dry_run
        )
        if process.returncode == 0 and process.stdout:
            uhdboot.logging.info(
                "%s %s is installed", recipe.verify.pkg_config_name, process.stdout.strip()
            )
        return process

    steps: list[tuple[str, typing.Callable[[], subprocess.CompletedProcess[str] | None]]] = [
        (
            "apt-update",
            lambda: apt.apt_update(cwd=work_dir, env=env, dry_run=dry_run)
            if recipe.apt.update
            else None,
        ),
        (
            "apt-install",
            lambda: apt.apt_install(recipe.apt.packages, cwd=work_dir, env=env, dry_run=dry_run),
        ),
        (
            "clone",
            lambda: source.fetch_source(
                recipe.source.repo_url,
                checkout_dir,
                ref=recipe.source.ref,
                cwd=work_dir,
                env=env,
                dry_run=dry_run,
            ),
        ),
        ("patch", after_fetch("patch", patch_step, enabled=bool(recipe.source.patches))),
        (
            "configure",
            after_fetch(
                "configure",
                lambda: cmake.configure(
                    source_dir,
                    build_dir,
                    args=configure_args,
                    env=env,
                    fresh=options.fresh,
                    dry_run=dry_run,
                ),
            ),
        ),
        (
            "compile",
            after_fetch(
                "compile",
                lambda: cmake.make(build_dir, parallel=parallel, env=env, dry_run=dry_run),
            ),
        ),
        (
            "install",
            after_fetch(
                "install",
                lambda: cmake.make_install(build_dir, env=env, dry_run=dry_run),
                enabled=recipe.build.install,
            ),
        ),
        (
            "verify",
            after_fetch("verify", verify_step, enabled=recipe.verify.pkg_config_name is not None),
        ),
    ]

    uhdboot.logging.info(
        "Provisioning %s on %s in %s", recipe.name, uhdboot.system.platform_name(), work_dir
    )
    for name, step in steps:
        if name in options.skip:
            uhdboot.logging.info("Skipping step %s", name)
            continue
        _run_step(report, name, step, keep_going=options.keep_going)

    if report.failed:
        uhdboot.logging.warning(
            "Finished with %d failed steps: %s",
            len(report.failed),
            ", ".join(result.name for result in report.failed),
        )
    else:
        uhdboot.logging.info("Provisioning %s finished", recipe.name)

    return report
