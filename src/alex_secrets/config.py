"""Configuration for alex."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

SECRETS_FILENAME = "secrets.enc"
PROJECTS_DIRNAME = "projects"


def get_alex_home(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Get the per-user alex directory (``$ALEX_HOME`` or ``~/.alex``)."""
    environ = os.environ if environ is None else environ
    override = environ.get("ALEX_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".alex"


@dataclass(frozen=True)
class Config:
    """Where stores live and which directory project detection starts from."""

    home: Path
    cwd: Path

    @property
    def global_store_file(self) -> Path:
        return self.home / SECRETS_FILENAME

    @property
    def projects_dir(self) -> Path:
        return self.home / PROJECTS_DIRNAME

    def project_store_file(self, project_id: str) -> Path:
        """Store file for a hashed project identity."""
        return self.projects_dir / project_id / SECRETS_FILENAME


def load_config(environ: Optional[Mapping[str, str]] = None, cwd: Optional[Path] = None) -> Config:
    """Build the configuration once per invocation."""
    return Config(
        home=get_alex_home(environ),
        cwd=Path(cwd) if cwd else Path.cwd(),
    )
