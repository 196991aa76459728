"""
Command-line generation client.

Purpose:
    Drive an installed model CLI (``codex`` or ``claude``) as the generation
    capability. Each call runs one non-interactive subprocess with the prompt as
    a single argument.
External Dependencies:
    The CLI executable on ``PATH`` (or an explicit path). ``claude`` also needs
    ``ANTHROPIC_API_KEY`` in the environment.
Fallback Semantics:
    Output that holds no recoverable JSON is returned as ``{"text": ...}``;
    callers decide whether that satisfies their contract.
Timeout Strategy:
    ``subprocess.run`` enforces the per-call timeout (60 s by default); expiry
    maps to GenerationTimeoutError, which the retry policy treats as transient.
    Output size is not capped.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Mapping, Optional

from intrdrm.integration.adapters.base import (
    AuthenticationError,
    ConfigurationError,
    ExecutableNotFoundError,
    GenerationClient,
    GenerationResult,
    GenerationTimeoutError,
    TransportError,
)
from intrdrm.integration.extraction import extract_structured
from intrdrm.utils.safe_subprocess import (
    UnsafeSubprocessError,
    resolve_executable,
    run_validated_command,
)

logger = logging.getLogger(__name__)

AUTH_MARKERS = ("authentication", "unauthorized", "not logged in", "login required", "api key", "api_key")
VERSION_TIMEOUT = 5.0


@dataclass(frozen=True)
class CLIProfile:
    """How to invoke one model CLI."""

    name: str
    executable: str
    build_args: Callable[[str, float, Optional[str]], list[str]]
    required_env: tuple[str, ...] = field(default_factory=tuple)
    default_model: Optional[str] = None


def _codex_args(prompt: str, temperature: float, model: Optional[str]) -> list[str]:
    args = ["exec", "--skip-git-repo-check", "--temperature", f"{temperature:g}"]
    if model:
        args += ["--model", model]
    return args + [prompt]


def _claude_args(prompt: str, temperature: float, model: Optional[str]) -> list[str]:
    return ["--model", model or "claude-sonnet-4-5", "--temperature", f"{temperature:g}", "--format", "json", prompt]


PROFILES: dict[str, CLIProfile] = {
    "codex": CLIProfile(name="codex", executable="codex", build_args=_codex_args),
    "claude": CLIProfile(
        name="claude",
        executable="claude",
        build_args=_claude_args,
        required_env=("ANTHROPIC_API_KEY",),
        default_model="claude-sonnet-4-5",
    ),
}


class CLIGenerationClient(GenerationClient):
    """Generation client backed by a local model CLI."""

    name: ClassVar[str] = "cli"

    def __init__(
        self,
        profile: str | CLIProfile = "codex",
        executable: Optional[str] = None,
        model_name: Optional[str] = None,
        timeout: float = 60.0,
        environ: Optional[Mapping[str, str]] = None,
        workdir: Optional[str] = None,
    ):
        if isinstance(profile, str):
            if profile not in PROFILES:
                raise ConfigurationError(f"Unknown CLI profile '{profile}'")
            profile = PROFILES[profile]
        super().__init__(model_name=model_name or profile.default_model, timeout=timeout)
        self.profile = profile
        self.executable = executable or profile.executable
        self._environ = dict(os.environ if environ is None else environ)
        self.workdir = workdir or tempfile.gettempdir()

    @property
    def model_used(self) -> str:
        return f"{self.profile.name}:{self.model_name}" if self.model_name else self.profile.name

    def _missing_env(self) -> list[str]:
        return [name for name in self.profile.required_env if not self._environ.get(name)]

    def _run(self, args: list[str], timeout: float) -> subprocess.CompletedProcess:
        resolved = resolve_executable(self.executable)
        if resolved is None:
            raise ExecutableNotFoundError(
                f"{self.profile.name} CLI not found ('{self.executable}'); install it or set INTRDRM_GENERATOR_EXECUTABLE"
            )
        try:
            return run_validated_command(
                [resolved, *args],
                allowed_executables={resolved},
                timeout=timeout,
                cwd=self.workdir,
                env=self._environ,
            )
        except FileNotFoundError as e:
            raise ExecutableNotFoundError(f"{self.profile.name} CLI not found: {e}") from e
        except UnsafeSubprocessError as e:
            raise ConfigurationError(f"Refusing to run {self.profile.name} CLI: {e}") from e

    def _classify_exit(self, completed: subprocess.CompletedProcess) -> TransportError | AuthenticationError | ExecutableNotFoundError:
        detail = (completed.stderr or completed.stdout or "").strip()
        lowered = detail.lower()
        if any(marker in lowered for marker in AUTH_MARKERS):
            return AuthenticationError(f"{self.profile.name} CLI authentication failed: {detail[:500]}")
        if completed.returncode == 127 or "command not found" in lowered:
            return ExecutableNotFoundError(f"{self.profile.name} CLI not found: {detail[:500]}")
        return TransportError(
            f"{self.profile.name} CLI exited with status {completed.returncode}: {detail[:500] or 'no output'}"
        )

    @staticmethod
    def parse_output(stdout: str) -> object:
        """Return the JSON value in ``stdout`` or ``{"text": trimmed}``."""
        result = extract_structured(stdout)
        if result.found:
            return result.value
        logger.debug("CLI output is not JSON, returning as text")
        return {"text": stdout.strip()}

    async def _invoke(self, prompt: str, temperature: float) -> GenerationResult:
        missing = self._missing_env()
        if missing:
            return GenerationResult.failure(
                AuthenticationError(f"{', '.join(missing)} not set; the {self.profile.name} CLI requires it")
            )

        args = self.profile.build_args(prompt, temperature, self.model_name)
        loop = asyncio.get_running_loop()
        try:
            completed = await loop.run_in_executor(None, functools.partial(self._run, args, self.timeout))
        except subprocess.TimeoutExpired:
            return GenerationResult.failure(
                GenerationTimeoutError(f"{self.profile.name} CLI timed out after {self.timeout:.0f}s")
            )
        except (ExecutableNotFoundError, ConfigurationError) as e:
            return GenerationResult.failure(e)
        except OSError as e:
            return GenerationResult.failure(TransportError(f"{self.profile.name} CLI could not start: {e}"))

        stderr = (completed.stderr or "").strip()
        if stderr and "WARNING" not in stderr:
            self.logger.warning("%s CLI stderr: %s", self.profile.name, stderr[:500])

        if completed.returncode != 0:
            return GenerationResult.failure(self._classify_exit(completed), raw_output=completed.stdout)

        stdout = completed.stdout or ""
        if not stdout.strip():
            return GenerationResult.failure(
                TransportError(f"{self.profile.name} CLI returned no output"), raw_output=stdout
            )
        return GenerationResult.ok(self.parse_output(stdout), raw_output=stdout)

    async def validate(self) -> bool:
        """Probe ``<cli> --version``; False when missing, unauthenticated or failing."""
        if self._missing_env():
            return False
        loop = asyncio.get_running_loop()
        try:
            completed = await loop.run_in_executor(
                None, functools.partial(self._run, ["--version"], VERSION_TIMEOUT)
            )
        except (ExecutableNotFoundError, ConfigurationError, subprocess.TimeoutExpired, OSError) as e:
            self.logger.info("%s CLI unavailable: %s", self.profile.name, e)
            return False
        if completed.returncode == 0:
            self.logger.info("%s CLI available: %s", self.profile.name, (completed.stdout or "").strip())
        return completed.returncode == 0


__all__ = ["CLIGenerationClient", "CLIProfile", "PROFILES"]
