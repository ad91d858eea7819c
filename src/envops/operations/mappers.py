"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

import typer

T = TypeVar('T')

logger = logging.getLogger(__name__)

FALLBACK_EXIT_CODE = 3

EXIT_CODES = {
    "NoActivitiesFound": 1,
    "ValidationError": 2,
    "ValueError": 2,
    "ApiError": 3,
    "ApiAuthError": 3,
    "ApiNotFound": 3,
    "ApiRateLimited": 3,
    "InvalidRepositoryError": 4,
    "AlreadyRepositoryError": 4,
    "ProcessFailedError": 5,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    - 0: Success
    - 1: Query returned nothing (NoActivitiesFound)
    - 2: Invalid input (ValueError, ValidationError)
    - 3: API error, or any unknown error
    - 4: Not a repository / already a repository
    - 5: External command failed

    Args:
        exc: Exception to map

    Returns:
        Exit code (3 as fallback for unknown exceptions)
    """
    return EXIT_CODES.get(type(exc).__name__, FALLBACK_EXIT_CODE)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exceptions to appropriate
    exit codes using typer.Exit, after printing the error to stderr.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except typer.Exit:
        raise
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        typer.echo(str(e), err=True)
        raise typer.Exit(code=exit_code_for(e)) from e
