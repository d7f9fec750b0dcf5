import contextlib
import tomllib
import typing

import pydantic
import typer

import uhdboot.logging


@contextlib.contextmanager
def exit_on_error() -> typing.Iterator[None]:
    """
    Log errors raised by a command and exit with their return code, or 1.
    """
    try:
        yield
    except typer.Exit:
        raise
    except (RuntimeError, OSError, pydantic.ValidationError, tomllib.TOMLDecodeError) as e:
        uhdboot.logging.error("%s", e)
        raise typer.Exit(code=getattr(e, "returncode", 1)) from e
