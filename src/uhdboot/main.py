import pathlib
import shlex
import shutil
import typing

import typer

import uhdboot.cmd.recipe
import uhdboot.env
import uhdboot.logging
import uhdboot.pipeline
import uhdboot.recipes
import uhdboot.system
import uhdboot.util
from uhdboot.cmd import common
from uhdboot.provision import source as source_ops
from uhdboot.provision import verify as verify_ops

app = typer.Typer()
app.add_typer(uhdboot.cmd.recipe.recipe_app, name="recipe")

RecipeOption = typing.Annotated[
    pathlib.Path | None, typer.Option("--recipe", help="Recipe TOML, defaults to the bundled one")
]
WorkDirOption = typing.Annotated[
    pathlib.Path | None,
    typer.Option("--work-dir", help="Directory the source is checked out in"),
]


@app.callback(invoke_without_command=True)
def default(ctx: typer.Context):
    """
    Provision this host and build UHD. Runs `provision` when no command is given.
    """
    if ctx.invoked_subcommand is None:
        provision()


@app.command()
def provision(
    recipe_path: RecipeOption = None,
    work_dir: WorkDirOption = None,
    parallel: typing.Annotated[
        int | None, typer.Option(help="Number of parallel compile jobs", min=1)
    ] = None,
    keep_going: typing.Annotated[
        bool, typer.Option(help="Continue with later steps after a step fails")
    ] = False,
    fresh: typing.Annotated[bool, typer.Option(help="Start from an empty build directory")] = False,
    dry_run: typing.Annotated[bool, typer.Option(help="Only log the commands")] = False,
    skip: typing.Annotated[list[str] | None, typer.Option(help="Step to skip")] = None,
):
    """
    Install build dependencies, then fetch, build and install the library.
    """
    if work_dir is None:
        work_dir = pathlib.Path.cwd()

    options = uhdboot.pipeline.ProvisionOptions(
        parallel=parallel,
        keep_going=keep_going,
        dry_run=dry_run,
        fresh=fresh,
        skip=frozenset(skip or []),
    )

    with common.exit_on_error():
        recipe = uhdboot.recipes.load(recipe_path)
        if not dry_run:
            uhdboot.util.ensure_path(work_dir)
        report = uhdboot.pipeline.provision_and_build(
            recipe, work_dir=work_dir.absolute(), options=options
        )

    if report.exit_code != 0:
        raise typer.Exit(code=report.exit_code)


@app.command()
def plan(recipe_path: RecipeOption = None, work_dir: WorkDirOption = None):
    """
    List the commands `provision` would run, without running them.
    """
    if work_dir is None:
        work_dir = pathlib.Path.cwd()

    with common.exit_on_error():
        recipe = uhdboot.recipes.load(recipe_path)
        report = uhdboot.pipeline.provision_and_build(
            recipe,
            work_dir=work_dir.absolute(),
            options=uhdboot.pipeline.ProvisionOptions(dry_run=True),
        )
    for result in report.results:
        typer.echo(f"{result.name}: {shlex.join(result.args)}")


@app.command()
def check(recipe_path: RecipeOption = None):
    """
    Check that this host can be provisioned.
    """
    with common.exit_on_error():
        recipe = uhdboot.recipes.load(recipe_path)
    env = uhdboot.env.provision_env(recipe.env)

    # Required checks fail the run, the others only warn
    checks: list[tuple[str, bool | None, bool]] = [
        ("Debian-family host", uhdboot.system.is_debian_family(), True),
        ("apt-get available", shutil.which("apt-get", path=env.get("PATH")) is not None, True),
        (
            f"{recipe.source.repo_url} reachable",
            source_ops.probe_remote(recipe.source.repo_url),
            True,
        ),
        ("running as root", uhdboot.system.is_root(), False),
    ]

    failed = False
    for description, passed, required in checks:
        if passed is None:
            status = "unknown"
        elif passed:
            status = "ok"
        elif required:
            status = "FAILED"
            failed = True
        else:
            status = "warning"
        typer.echo(f"{description}: {status}")

    if failed:
        raise typer.Exit(code=1)


@app.command()
def verify(recipe_path: RecipeOption = None):
    """
    Check that the installed library can be located by pkg-config.
    """
    with common.exit_on_error():
        recipe = uhdboot.recipes.load(recipe_path)
    name = recipe.verify.pkg_config_name
    if name is None:
        uhdboot.logging.warning("Recipe %s disables verification", recipe.name)
        return

    with common.exit_on_error():
        version = verify_ops.installed_version(name, env=uhdboot.env.provision_env(recipe.env))

    if version is None:
        uhdboot.logging.error("%s is not installed or not visible to pkg-config", name)
        raise typer.Exit(code=1)

    typer.echo(f"{name} {version}")


def main():
    app()
