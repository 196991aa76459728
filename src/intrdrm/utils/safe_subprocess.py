"""Hardened helpers for invoking generation CLIs as subprocesses.

Prompts are passed as a single argv element with ``shell=False``, so quotes
and newlines in concept names never reach a shell.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Collection, Mapping, Sequence
from pathlib import Path
from subprocess import CompletedProcess
from typing import Any

__all__ = [
    "UnsafeSubprocessError",
    "normalize_command",
    "resolve_executable",
    "run_validated_command",
]


class UnsafeSubprocessError(ValueError):
    """Raised when a subprocess command fails validation."""


def normalize_command(command: Sequence[str]) -> tuple[str, ...]:
    """Return an immutable, sanitized command tuple suitable for ``subprocess``.

    Newlines are allowed in arguments after the executable because prompts are
    multi-line; the executable itself must be a single clean token.
    """

    if not command:
        raise UnsafeSubprocessError("Command must contain at least one component.")

    normalized: list[str] = []
    for index, part in enumerate(command):
        if not isinstance(part, str):
            raise UnsafeSubprocessError(
                f"Command component at position {index} is not a string."
            )
        if not part:
            raise UnsafeSubprocessError(
                f"Command component at position {index} must not be empty."
            )
        if "\x00" in part:
            raise UnsafeSubprocessError(
                f"Command component at position {index} contains NUL bytes."
            )
        if index == 0 and any(control in part for control in ("\r", "\n")):
            raise UnsafeSubprocessError("Executable contains control characters.")
        normalized.append(part)

    return tuple(normalized)


def resolve_executable(name: str) -> str | None:
    """Return the absolute path for ``name`` (a bare name or a path), or ``None``."""

    if not name or "\x00" in name:
        return None
    candidate = Path(name)
    if candidate.is_absolute():
        return os.fspath(candidate) if candidate.is_file() else None
    found = shutil.which(name)
    return os.fspath(Path(found).resolve()) if found else None


def _sanitize_environment(env: Mapping[str, Any] | None) -> dict[str, str] | None:
    if env is None:
        return None

    sanitized: dict[str, str] = {}
    for key, value in env.items():
        if not isinstance(key, str) or not key or "\x00" in key:
            raise UnsafeSubprocessError(
                "Environment variable keys must be non-empty strings without NUL bytes."
            )
        str_value = os.fspath(value) if isinstance(value, os.PathLike) else str(value)
        if "\x00" in str_value:
            raise UnsafeSubprocessError(
                "Environment variable values cannot contain NUL bytes."
            )
        sanitized[key] = str_value

    return sanitized


def _ensure_allowed_executable(
    command: tuple[str, ...], allowed_executables: Collection[str]
) -> tuple[str, ...]:
    """Validate that the command's executable is absolute, present and allow-listed."""

    executable_path = Path(command[0])

    if not executable_path.is_absolute():
        raise UnsafeSubprocessError("Executable path must be absolute.")
    if not executable_path.is_file():
        raise UnsafeSubprocessError(f"Executable '{command[0]}' does not exist.")

    allowed_names = set()
    allowed_paths = set()
    for entry in allowed_executables:
        if Path(entry).is_absolute():
            allowed_paths.add(os.fspath(Path(entry)))
        else:
            allowed_names.add(entry.lower())
    if not allowed_names and not allowed_paths:
        raise UnsafeSubprocessError(
            "At least one executable must be explicitly allow-listed before execution."
        )

    if os.fspath(executable_path) not in allowed_paths and executable_path.name.lower() not in allowed_names:
        raise UnsafeSubprocessError(
            f"Executable '{executable_path}' is not permitted for execution."
        )
    return command


def _invoke_subprocess(
    command: tuple[str, ...],
    run_kwargs: Mapping[str, Any],
) -> CompletedProcess[Any]:
    """Invoke ``subprocess.run`` using the sanitized command and options."""

    options = dict(run_kwargs)
    options["args"] = command
    return subprocess.run(**options)


def run_validated_command(
    command: Sequence[str],
    *,
    allowed_executables: Collection[str],
    timeout: float | None = None,
    cwd: str | os.PathLike[str] | None = None,
    env: Mapping[str, Any] | None = None,
) -> CompletedProcess[str]:
    """Execute a validated command with ``shell=False`` and captured text output.

    Args:
        command: Candidate command sequence to execute.
        allowed_executables: Allow-list of absolute paths or executable basenames.
        timeout: Maximum duration to wait; ``subprocess.TimeoutExpired`` propagates.
        cwd: Working directory for the child process.
        env: Optional full environment for the subprocess.
    """

    normalized_command = normalize_command(command)
    normalized_command = _ensure_allowed_executable(normalized_command, allowed_executables)
    sanitized_env = _sanitize_environment(env)

    if timeout is not None and timeout <= 0:
        raise UnsafeSubprocessError("Timeout must be greater than zero when provided.")

    run_kwargs: dict[str, Any] = {
        "check": False,
        "shell": False,
        "capture_output": True,
        "text": True,
        "stdin": subprocess.DEVNULL,
    }
    if timeout is not None:
        run_kwargs["timeout"] = timeout
    if cwd is not None:
        run_kwargs["cwd"] = os.fspath(cwd)
    if sanitized_env is not None:
        run_kwargs["env"] = sanitized_env

    return _invoke_subprocess(normalized_command, run_kwargs)
