"""Process runner: executes block scripts and click handlers with a deadline."""

import os
import shlex
import shutil
import subprocess
import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional

from .errors import (
    ExecutionFailedError,
    ExecutionTimeoutError,
    InterpreterMissingError,
    InterpreterNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class Invocation:
    """What to run: a script handed to an interpreter, or a direct command."""

    interpreter: str = ""
    script: Optional[str] = None
    command: Optional[str] = None

    @classmethod
    def for_block(cls, block) -> "Invocation":
        return cls(interpreter=block.interpreter, script=block.script, command=block.command)

    @classmethod
    def for_handler(cls, handler, block) -> "Invocation":
        """Build a handler invocation, inheriting the block's interpreter if unset."""
        return cls(
            interpreter=handler.interpreter or block.interpreter,
            script=handler.script,
            command=handler.command,
        )

    @property
    def is_command(self) -> bool:
        return self.command is not None


def _split(spec: str) -> List[str]:
    try:
        return shlex.split(spec)
    except ValueError as e:
        raise InterpreterMissingError(f"cannot parse '{spec}': {e}", context={"spec": spec}) from e


def build_argv(invocation: Invocation) -> List[str]:
    """
    Resolve an invocation into an argv list.

    Script style: interpreter words + [script]. Command style: the command's
    words, run directly without an interpreter.

    Raises:
        InterpreterMissingError: Empty interpreter or empty command
        InterpreterNotFoundError: Launcher not found on PATH
    """
    if invocation.is_command:
        words = _split(invocation.command)
        if not words:
            raise InterpreterMissingError("command is empty")
    else:
        words = _split(invocation.interpreter or "")
        if not words:
            raise InterpreterMissingError("interpreter not specified")
        words.append(invocation.script or "")

    launcher = shutil.which(words[0])
    if not launcher:
        raise InterpreterNotFoundError(
            f"'{words[0]}' does not exist on PATH",
            context={"launcher": words[0]},
        )
    return [launcher] + words[1:]


class ProcessRunner:
    """Runs one child process per call and returns its trimmed stdout."""

    def run(
        self,
        invocation: Invocation,
        timeout: float = DEFAULT_TIMEOUT,
        env: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Execute an invocation and capture its output.

        Args:
            invocation: Script or command to run
            timeout: Seconds before the child is killed
            env: Variables added to a copy of the current environment for
                this child only; the process environment is never modified

        Returns:
            Standard output with surrounding whitespace removed

        Raises:
            InterpreterMissingError, InterpreterNotFoundError: Bad launcher
            ExecutionTimeoutError: Deadline expired (child killed)
            ExecutionFailedError: Spawn failure or non-zero exit
        """
        argv = build_argv(invocation)

        child_env = None
        if env:
            child_env = dict(os.environ)
            child_env.update(env)

        logger.debug(f"Running: {argv[0]} ({'command' if invocation.is_command else 'script'})")
        try:
            result = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=timeout,
                env=child_env,
                check=True,
            )
        except subprocess.TimeoutExpired as e:
            raise ExecutionTimeoutError(
                f"{argv[0]} timed out after {timeout}s",
                context={"launcher": argv[0], "timeout": timeout},
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
            message = f"{argv[0]} exited with status {e.returncode}"
            if stderr:
                message = f"{message}: {stderr}"
            raise ExecutionFailedError(
                message,
                context={"launcher": argv[0]},
                returncode=e.returncode,
                stderr=stderr,
            ) from e
        except OSError as e:
            raise ExecutionFailedError(f"failed to start {argv[0]}: {e}", context={"launcher": argv[0]}) from e

        return result.stdout.decode("utf-8", errors="replace").strip()
