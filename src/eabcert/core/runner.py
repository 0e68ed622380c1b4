"""Command-execution boundary.

Every external tool (``gcloud``, ``certbot``, ``openssl``, the package
managers and operator scripts) is invoked through :class:`CommandRunner`
so that the workflow steps never touch :mod:`subprocess` directly and
tests can substitute a recording fake.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from eabcert.core.errors import CommandError, CommandTimeoutError
from eabcert.logging.sanitize import sanitize_argv, sanitize_for_logs

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for tools that report on either."""
        return f"{self.stdout}{self.stderr}"


class CommandRunner:
    """Run external commands with logging and uniform error handling.

    Parameters
    ----------
    cwd:
        Default working directory for commands that do not pass one.

    """

    def __init__(self, *, cwd: str | Path | None = None) -> None:
        self.cwd = cwd

    def run(  # noqa: PLR0913
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        capture: bool = True,
        input_text: str | None = None,
        timeout: float | None = None,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run *argv* and return a :class:`CommandResult`.

        With ``capture=False`` the command shares the terminal with the
        operator, which is how interactive prompts reach them.

        Raises
        ------
        CommandError
            The command could not be started, or exited non-zero while
            ``check`` is true.
        CommandTimeoutError
            The command outlived *timeout* seconds.

        """
        safe_argv = sanitize_argv(argv)
        log.debug("Running: %s", shlex.join(safe_argv))
        try:
            proc = subprocess.run(  # noqa: S603
                list(argv),
                check=False,
                capture_output=capture,
                text=True,
                input=input_text,
                timeout=timeout,
                cwd=cwd if cwd is not None else self.cwd,
                env=dict(env) if env is not None else None,
            )
        except FileNotFoundError as exc:
            raise CommandError(safe_argv, None, stderr=str(exc)) from exc
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(safe_argv, timeout or 0) from exc

        result = CommandResult(
            argv=tuple(safe_argv),
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
        log.debug("Exit status %d from %s", result.returncode, safe_argv[0])
        if check and not result.ok:
            raise CommandError(
                safe_argv,
                result.returncode,
                sanitize_for_logs(result.stdout),
                sanitize_for_logs(result.stderr),
            )
        return result
