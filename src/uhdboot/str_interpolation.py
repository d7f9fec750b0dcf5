_malformed_variable_error = (
    "Malformed use of variable. "
    "Variables are used as ${variable}. Do you mean to escape $ with \\$?"
)


def _read_variable(input_str: str, index: int, context: dict[str, str]) -> tuple[str, int]:
    """
    Resolve the variable starting at input_str[index], which is the character after $.

    Returns the variable value and the index right after the closing }.
    """
    if index >= len(input_str) or input_str[index] != "{":
        raise RuntimeError(_malformed_variable_error)

    end = input_str.find("}", index)
    if end < 0:
        raise RuntimeError(
            "Malformed use of variable. Cannot find matching } denoting the end of variable."
        )

    name = input_str[index + 1 : end]
    if name not in context:
        raise RuntimeError(f"Undefined variable {name}.")

    return context[name], end + 1


def _read_escape(input_str: str, index: int) -> str:
    """
    Resolve the escaped character at input_str[index], which is the character after \\.
    """
    if index >= len(input_str):
        raise RuntimeError("Malformed escape sequence. Do you mean to escape \\ with \\\\?")

    char = input_str[index]
    if char not in "\\$":
        raise RuntimeError(
            f'Invalid escape sequence "\\{char}". Do you mean to escape \\ with \\\\?'
        )
    return char


def interpolate(input_str: str, context: dict[str, str]) -> str:
    """
    Interpolate a string against a context.

    Variables are referred to as ${variable}.

    Literal $ and \\ are escaped with leading \\.
    """

    parts: list[str] = []
    index = 0

    while index < len(input_str):
        char = input_str[index]
        if char == "\\":
            parts.append(_read_escape(input_str, index + 1))
            index += 2
        elif char == "$":
            value, index = _read_variable(input_str, index + 1, context)
            parts.append(value)
        else:
            parts.append(char)
            index += 1

    return "".join(parts)
