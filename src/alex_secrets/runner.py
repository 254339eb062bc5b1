"""Run commands with secrets injected into their environment."""

import logging
import os
import shutil
import subprocess
from typing import Callable, Dict, Mapping, Sequence

from .classifier import ClassificationVerdict, classify
from .errors import CommandDeclinedError, CommandNotFoundError, ExecFailureError

logger = logging.getLogger(__name__)


def authorize(
    argv: Sequence[str],
    confirm: Callable[[ClassificationVerdict], bool],
    force: bool = False,
) -> ClassificationVerdict:
    """
    Gate a command on the safety classifier.

    ``confirm`` is asked only for suspicious commands and must return True
    to proceed. ``force`` skips classification for this one invocation.

    Raises:
        CommandDeclinedError: the user refused a suspicious command
    """
    if force:
        logger.debug("Classification skipped (--force)")
        return ClassificationVerdict(suspicious=False, reason="classification skipped")

    verdict = classify(argv)
    if verdict.suspicious and not confirm(verdict):
        raise CommandDeclinedError(f"Declined to run: {' '.join(argv)}")
    return verdict


def build_env(secrets: Mapping[str, str], base: Mapping[str, str] = None) -> Dict[str, str]:
    """Inherited environment with secrets added; secrets win on conflict."""
    env = dict(os.environ if base is None else base)
    env.update(secrets)
    return env


def resolve_executable(command: str) -> str:
    executable = shutil.which(command)
    if executable is None:
        raise CommandNotFoundError(f"command not found: {command}")
    return executable


def run_with_secrets(argv: Sequence[str], secrets: Mapping[str, str]) -> None:
    """
    Replace the current process with ``argv``, secrets in its environment.

    Does not return on success. Where the OS cannot replace the process
    (Windows), the command runs as a child and its exit code is raised as
    SystemExit so nothing else runs in this process afterwards.
    """
    if not argv:
        raise CommandNotFoundError("no command specified")

    executable = resolve_executable(argv[0])
    env = build_env(secrets)
    logger.debug("Executing %s with %d injected secrets", executable, len(secrets))

    try:
        if os.name == "nt":
            result = subprocess.run([executable, *argv[1:]], env=env)
            raise SystemExit(result.returncode)
        os.execve(executable, list(argv), env)
    except OSError as e:
        raise ExecFailureError(f"failed to execute {argv[0]}: {e}") from e


def run_with_output(argv: Sequence[str], secrets: Mapping[str, str]) -> subprocess.CompletedProcess:
    """Run a child process with secrets injected and capture its output."""
    if not argv:
        raise CommandNotFoundError("no command specified")

    executable = resolve_executable(argv[0])
    try:
        return subprocess.run(
            [executable, *argv[1:]],
            env=build_env(secrets),
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise ExecFailureError(f"failed to execute {argv[0]}: {e}") from e
