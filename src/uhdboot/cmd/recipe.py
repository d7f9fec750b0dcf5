import pathlib
import typing

import typer

import uhdboot.recipes
from uhdboot.cmd import common

recipe_app = typer.Typer()


@recipe_app.command()
def show(
    recipe_path: typing.Annotated[pathlib.Path | None, typer.Option("--recipe")] = None,
):
    """
    Print the effective recipe as JSON.
    """
    with common.exit_on_error():
        recipe = uhdboot.recipes.load(recipe_path)
    typer.echo(recipe.model_dump_json(indent=2))


@recipe_app.command()
def packages(
    recipe_path: typing.Annotated[pathlib.Path | None, typer.Option("--recipe")] = None,
):
    """
    Print the apt packages a recipe installs, one per line.
    """
    with common.exit_on_error():
        recipe = uhdboot.recipes.load(recipe_path)
    for package in recipe.apt.packages:
        typer.echo(package)
