"""Project detection: bind a project scope to the current codebase."""

import hashlib
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

METHOD_GIT_REMOTE = "git-remote"
METHOD_GIT_ROOT = "git-root"
METHOD_CWD = "cwd"

METHOD_DESCRIPTIONS = {
    METHOD_GIT_REMOTE: "git remote URL (stable across moves)",
    METHOD_GIT_ROOT: "git root path (breaks if moved)",
    METHOD_CWD: "current directory (not in git repo)",
}


def project_id(identity: str) -> str:
    """Hash a project identity so paths and URLs never appear on disk."""
    return hashlib.sha256(identity.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ProjectIdentity:
    value: str
    method: str

    @property
    def id(self) -> str:
        return project_id(self.value)

    @property
    def description(self) -> str:
        return METHOD_DESCRIPTIONS[self.method]


def _git(args, cwd: Path) -> Optional[str]:
    """Run a git query, returning stripped stdout or None on any failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError, NotADirectoryError):
        return None

    output = result.stdout.strip()
    return output or None


def resolve_project_identity(cwd: Path = None) -> ProjectIdentity:
    """
    Work out which project ``cwd`` belongs to.

    Tries, in order: the ``origin`` remote URL, the repository root path,
    and finally ``cwd`` itself.
    """
    cwd = Path(cwd) if cwd else Path.cwd()

    remote = _git(["remote", "get-url", "origin"], cwd)
    if remote:
        identity = ProjectIdentity(value=remote, method=METHOD_GIT_REMOTE)
    else:
        root = _git(["rev-parse", "--show-toplevel"], cwd)
        if root:
            identity = ProjectIdentity(value=root, method=METHOD_GIT_ROOT)
        else:
            identity = ProjectIdentity(value=str(cwd), method=METHOD_CWD)

    logger.debug("Project detected via %s (id %s)", identity.method, identity.id)
    return identity
