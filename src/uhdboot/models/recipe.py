import pathlib
import tomllib
import typing

import pydantic

import uhdboot.constants


def _relative_subpath(value: str) -> str:
    path = pathlib.PurePosixPath(value)
    if path.is_absolute() or ".." in path.parts:
        raise ValueError(f"{value} must be a relative path inside the working directory")
    return value


def _unique_packages(packages: tuple[str, ...]) -> tuple[str, ...]:
    seen: set[str] = set()
    for package in packages:
        if package in seen:
            raise ValueError(f"Package {package} is listed more than once")
        seen.add(package)
    return packages


RelativeSubpath = typing.Annotated[str, pydantic.AfterValidator(_relative_subpath)]


class RecipeAptSection(pydantic.BaseModel):
    """
    apt section of a recipe
    """

    update: bool = True

    # Install order matches the listing
    packages: typing.Annotated[tuple[str, ...], pydantic.AfterValidator(_unique_packages)] = ()


class RecipeSourceSection(pydantic.BaseModel):
    """
    source section of a recipe
    """

    repo_url: str = uhdboot.constants.uhd_repo_url

    # Branch or tag passed to git clone, None for the remote's default branch
    ref: str | None = None

    checkout_dir: RelativeSubpath = "uhd"

    # Directory inside the checkout holding the top-level CMakeLists.txt
    source_subdir: RelativeSubpath = "host"

    # Relative to the directory of the recipe file
    patches: list[str] = []


class RecipeBuildSection(pydantic.BaseModel):
    """
    build section of a recipe
    """

    # Relative to the cmake source directory
    build_dir: RelativeSubpath = "build"

    # These could refer to builtin variables
    configure_args: list[str] = []

    # None means one job per available core
    parallel: pydantic.PositiveInt | None = None

    install: bool = True


class RecipeVerifySection(pydantic.BaseModel):
    """
    verify section of a recipe
    """

    pkg_config_name: str | None = "uhd"


class Recipe(pydantic.BaseModel):
    """
    Describes how to provision a host and build a library from source
    """

    schema_version: typing.Literal[0]
    name: str

    env: dict[str, str] = {}
    apt: RecipeAptSection = RecipeAptSection()
    source: RecipeSourceSection = RecipeSourceSection()
    build: RecipeBuildSection = RecipeBuildSection()
    verify: RecipeVerifySection = RecipeVerifySection()

    _base_dir: pathlib.Path | None = pydantic.PrivateAttr(default=None)

    @property
    def base_dir(self) -> pathlib.Path:
        """
        Directory patches are looked up in.
        """
        return self._base_dir if self._base_dir is not None else pathlib.Path.cwd()

    def checkout_path(self, work_dir: pathlib.Path) -> pathlib.Path:
        return work_dir / self.source.checkout_dir

    def source_path(self, work_dir: pathlib.Path) -> pathlib.Path:
        return self.checkout_path(work_dir) / self.source.source_subdir

    def build_path(self, work_dir: pathlib.Path) -> pathlib.Path:
        return self.source_path(work_dir) / self.build.build_dir

    def patch_paths(self) -> list[pathlib.Path]:
        return [self.base_dir / patch for patch in self.source.patches]


def parse_recipe(text: str, base_dir: pathlib.Path | None = None) -> Recipe:
    recipe = Recipe.model_validate(tomllib.loads(text))
    recipe._base_dir = base_dir
    return recipe


def load_recipe(recipe_path: pathlib.Path) -> Recipe:
    if not recipe_path.is_file():
        raise RuntimeError(f"Recipe {recipe_path} does not exist.")

    return parse_recipe(recipe_path.read_text(), base_dir=recipe_path.parent)
