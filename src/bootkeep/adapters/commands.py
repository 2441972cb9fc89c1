"""Subprocess-backed command runner shared by the ecosystem adapters."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from typing import TYPE_CHECKING

from bootkeep.domain.errors import AdapterTimeoutError, AdapterUnavailableError
from bootkeep.domain.ports import CommandOptions, CommandResult

if TYPE_CHECKING:
    from collections.abc import Sequence

log = logging.getLogger(__name__)

DEFAULT_OPTIONS = CommandOptions()


class SubprocessCommandRunner:
    """Run programs with a hard timeout, mapping failures to adapter errors."""

    def __init__(self, *, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        program: str,
        args: Sequence[str],
        options: CommandOptions | None = None,
    ) -> CommandResult:
        opts = options or DEFAULT_OPTIONS
        argv = (program, *args)
        rendered = shlex.join(argv)
        log.debug("Running %s", rendered)
        env = {**os.environ, **opts.env} if opts.env else None
        try:
            completed = subprocess.run(  # noqa: S603
                argv,
                cwd=opts.cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise AdapterTimeoutError(rendered, self.timeout_seconds) from exc
        except FileNotFoundError as exc:
            raise AdapterUnavailableError(f"'{program}' is not installed") from exc
        except OSError as exc:
            raise AdapterUnavailableError(f"Could not run '{rendered}': {exc}") from exc

        result = CommandResult(
            args=argv,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
        log.debug("%s exited with %d", rendered, result.returncode)
        if opts.check and not result.ok:
            raise AdapterUnavailableError(_failure_message(rendered, result))
        return result


def _failure_message(rendered: str, result: CommandResult) -> str:
    detail = result.stderr.strip() or result.stdout.strip()
    if detail:
        last_line = detail.splitlines()[-1]
        return f"'{rendered}' failed with exit code {result.returncode}: {last_line}"
    return f"'{rendered}' failed with exit code {result.returncode}"


def output_lines(result: CommandResult) -> list[str]:
    """Non-blank, stripped lines of a command's standard output."""

    return [line.strip() for line in result.stdout.splitlines() if line.strip()]
