__all__ = ["load_default_recipe", "load"]

import importlib.resources
import pathlib

from uhdboot.models import recipe as recipe_models

default_recipe_file = "uhd.toml"


def load_default_recipe() -> recipe_models.Recipe:
    """
    Load the bundled recipe that provisions a Debian host for UHD.
    """
    text = importlib.resources.files(__name__).joinpath(default_recipe_file).read_text()
    return recipe_models.parse_recipe(text)


def load(recipe_path: pathlib.Path | None) -> recipe_models.Recipe:
    """
    Load the recipe at `recipe_path`, or the bundled one if no path is given.
    """
    if recipe_path is None:
        return load_default_recipe()

    return recipe_models.load_recipe(recipe_path)
