"""Global and project scopes: locating, opening and merging stores."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from .config import Config
from .project import ProjectIdentity, resolve_project_identity
from .store import SecretInfo, SecretStore

logger = logging.getLogger(__name__)


class Scope(str, Enum):
    GLOBAL = "global"
    PROJECT = "project"


def store_path(config: Config, scope: Scope, project: Optional[ProjectIdentity] = None) -> Path:
    """File backing ``scope``; the project is detected from ``config.cwd`` if not given."""
    if scope is Scope.GLOBAL:
        return config.global_store_file
    project = project or resolve_project_identity(config.cwd)
    return config.project_store_file(project.id)


def global_store_exists(config: Config) -> bool:
    """Check for a global store without decrypting it."""
    return store_path(config, Scope.GLOBAL).is_file()


def project_store_exists(config: Config, project: Optional[ProjectIdentity] = None) -> bool:
    """Check for a project store without decrypting it."""
    return store_path(config, Scope.PROJECT, project).is_file()


def open_store(
    config: Config,
    scope: Scope,
    passphrase: str,
    project: Optional[ProjectIdentity] = None,
) -> SecretStore:
    return SecretStore.open(store_path(config, scope, project), passphrase)


@dataclass
class ResolvedSecrets:
    """Merged view handed to the runner. Never written back."""

    values: Dict[str, str] = field(default_factory=dict)
    global_count: int = 0
    project_count: int = 0


def resolve_secrets(
    config: Config,
    passphrase: str,
    project: Optional[ProjectIdentity] = None,
) -> ResolvedSecrets:
    """Merge global and project secrets; project values override global ones."""
    project = project or resolve_project_identity(config.cwd)

    global_values = open_store(config, Scope.GLOBAL, passphrase).get_all()

    project_values = {}
    if project_store_exists(config, project):
        project_values = open_store(config, Scope.PROJECT, passphrase, project).get_all()

    merged = dict(global_values)
    merged.update(project_values)

    overridden = sorted(set(global_values) & set(project_values))
    if overridden:
        logger.debug("Project overrides global for: %s", ", ".join(overridden))

    return ResolvedSecrets(
        values=merged,
        global_count=len(global_values),
        project_count=len(project_values),
    )


def list_secrets(
    config: Config,
    passphrase: str,
    project: Optional[ProjectIdentity] = None,
) -> Dict[Scope, Dict[str, SecretInfo]]:
    """Metadata for both scopes, kept separate for display."""
    project = project or resolve_project_identity(config.cwd)

    listing = {
        Scope.GLOBAL: open_store(config, Scope.GLOBAL, passphrase).list(),
        Scope.PROJECT: {},
    }
    if project_store_exists(config, project):
        listing[Scope.PROJECT] = open_store(config, Scope.PROJECT, passphrase, project).list()
    return listing
