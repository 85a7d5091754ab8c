"""
Error reporting for the docprocessor CLI.

CLI failures reuse the :class:`~docprocessor.errors.DocProcessorError`
model so every error reaching the command line carries a code and an
optional hint. :func:`handle_cli_exception` is the single place where an
exception becomes stderr output and an exit status.
"""

import os
import sys
import traceback

from docprocessor.errors import DocProcessorError

_TRACEBACK_TAIL = 4000
_TRUTHY = {"1", "true", "yes", "on"}


class CLIError(DocProcessorError):
    """A failure caused by how the command was invoked."""

    code = "CLI_ERROR"


class CLIValidationError(CLIError):
    """An option value the command cannot work with."""

    code = "CLI_VALIDATION_ERROR"


class CLIFileNotFoundError(CLIError):
    """A manifest or source file named on the command line does not exist."""

    code = "CLI_FILE_NOT_FOUND"


def format_cli_error(exc: BaseException, *, show_traceback: bool = False) -> str:
    """
    Render ``exc`` the way the CLI prints it.

    Examples:
        >>> print(format_cli_error(CLIValidationError("Invalid limit", hint="Use a positive number")))
        Error [CLI_VALIDATION_ERROR]: Invalid limit
        Hint: Use a positive number
    """
    if isinstance(exc, CLIError):
        text = f"Error [{exc.code}]: {exc.message}"
        if exc.hint:
            text += f"\nHint: {exc.hint}"
    elif isinstance(exc, DocProcessorError):
        text = f"Error: {exc.format()}"
    else:
        text = f"Error: {type(exc).__name__}: {exc}"

    if show_traceback:
        text += f"\n\n{_traceback_tail()}"
    return text


def _traceback_tail() -> str:
    # the innermost frames are the useful ones
    trace = traceback.format_exc().rstrip()
    if len(trace) > _TRACEBACK_TAIL:
        trace = "..." + trace[-(_TRACEBACK_TAIL - 3):]
    return trace


def env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def handle_cli_exception(exc: BaseException, *, verbose: bool = False, status: int = 1) -> None:
    """
    Print ``exc`` on stderr and exit with ``status``.

    ``DOCPROCESSOR_VERBOSE=1`` adds the traceback, and ``DOCPROCESSOR_RERAISE=1``
    lets the exception propagate instead, which is handy under a debugger.
    """
    if env_flag("DOCPROCESSOR_RERAISE"):
        raise exc

    show_traceback = verbose or env_flag("DOCPROCESSOR_VERBOSE")
    print(format_cli_error(exc, show_traceback=show_traceback), file=sys.stderr)
    sys.exit(status)
