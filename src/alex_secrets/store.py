"""Core secrets storage: one encrypted file per scope."""

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from . import crypto
from .errors import (
    ConcurrentModificationError,
    CorruptedError,
    EmptyValueError,
    InvalidNameError,
    SecretNotFoundError,
    StoreIOError,
)

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = 1

NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass
class Secret:
    name: str
    value: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class SecretInfo:
    """Secret metadata without the value."""

    created_at: datetime
    updated_at: datetime


def is_valid_name(name: str) -> bool:
    """Check a name against the environment variable grammar."""
    return bool(name) and NAME_PATTERN.fullmatch(name) is not None


def validate_secret(name: str, value: str) -> None:
    """Reject bad names and empty values before touching the disk."""
    if not is_valid_name(name):
        raise InvalidNameError(
            f"Invalid secret name '{name}': must match [A-Za-z_][A-Za-z0-9_]*"
        )
    if not value:
        raise EmptyValueError(f"Value for '{name}' cannot be empty")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _fingerprint(path: Path) -> Optional[Tuple[int, int, int]]:
    """Identify the file version on disk; None if it does not exist."""
    try:
        st = path.stat()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise StoreIOError(f"Cannot stat {path}: {e}") from e
    return (st.st_ino, st.st_size, st.st_mtime_ns)


def _dump(secrets: Mapping[str, Secret]) -> bytes:
    document = {
        "version": DOCUMENT_VERSION,
        "secrets": {
            name: {
                "value": secret.value,
                "created_at": secret.created_at.isoformat(),
                "updated_at": secret.updated_at.isoformat(),
            }
            for name, secret in secrets.items()
        },
    }
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=True).encode("utf-8")


def _load(data: bytes) -> Dict[str, Secret]:
    try:
        document = yaml.safe_load(data.decode("utf-8"))
    except (UnicodeDecodeError, yaml.YAMLError) as e:
        raise CorruptedError(f"corrupted secrets file (unreadable payload): {e}") from e

    if not isinstance(document, dict) or document.get("version") != DOCUMENT_VERSION:
        raise CorruptedError("corrupted secrets file (unsupported document)")

    raw = document.get("secrets") or {}
    if not isinstance(raw, dict):
        raise CorruptedError("corrupted secrets file ('secrets' is not a mapping)")

    secrets = {}
    for name, entry in raw.items():
        try:
            secrets[name] = Secret(
                name=name,
                value=str(entry["value"]),
                created_at=datetime.fromisoformat(entry["created_at"]),
                updated_at=datetime.fromisoformat(entry["updated_at"]),
            )
        except (TypeError, KeyError, ValueError) as e:
            raise CorruptedError(f"corrupted secrets file (bad entry '{name}')") from e
    return secrets


def _put(secrets: Dict[str, Secret], name: str, value: str, now: datetime) -> bool:
    """Insert or replace ``name``, keeping its creation time. True if it existed."""
    existing = secrets.get(name)
    secrets[name] = Secret(
        name=name,
        value=value,
        created_at=existing.created_at if existing else now,
        updated_at=now,
    )
    return existing is not None


class SecretStore:
    """
    Encrypted map of secret name to value, bound to one file.

    Every mutating call rewrites the whole file atomically. If another
    process replaced the file after this store loaded it, the write is
    refused with ConcurrentModificationError rather than discarding the
    other process's changes.
    """

    def __init__(self, path: Path, passphrase: str, log_n: int = None):
        self.path = Path(path)
        self._passphrase = passphrase
        self._log_n = log_n
        self._secrets: Dict[str, Secret] = {}
        self._fingerprint = None

    @classmethod
    def open(cls, path: Path, passphrase: str, log_n: int = None) -> "SecretStore":
        """Open a store, creating its directory if needed."""
        store = cls(path, passphrase, log_n=log_n)

        # Ensure parent directory exists
        try:
            store.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"Cannot create {store.path.parent}: {e}") from e

        store._read()
        return store

    def _read(self) -> None:
        self._fingerprint = _fingerprint(self.path)
        if self._fingerprint is None:
            logger.debug("No store at %s, starting empty", self.path)
            return

        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise StoreIOError(f"Cannot read {self.path}: {e}") from e

        self._secrets = _load(crypto.decrypt(data, self._passphrase))
        logger.debug("Loaded %d secrets from %s", len(self._secrets), self.path)

    def _save(self, secrets: Dict[str, Secret]) -> None:
        """
        Serialize, encrypt and atomically replace the store file.

        ``secrets`` becomes the in-memory state only once it is on disk.
        """
        if _fingerprint(self.path) != self._fingerprint:
            raise ConcurrentModificationError(
                f"{self.path} was modified by another process; re-run the command"
            )

        encrypted = crypto.encrypt(_dump(secrets), self._passphrase, log_n=self._log_n)

        fd, temp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=".secrets-", suffix=".tmp"
        )
        temp_file = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(encrypted)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_file, 0o600)
            os.replace(temp_file, self.path)
        except OSError as e:
            raise StoreIOError(f"Cannot write {self.path}: {e}") from e
        finally:
            # Clean up temp file if it still exists
            if temp_file.exists():
                temp_file.unlink()

        self._secrets = secrets
        self._fingerprint = _fingerprint(self.path)
        logger.debug("Saved %d secrets to %s", len(secrets), self.path)

    def get(self, name: str) -> Optional[str]:
        """Return the value for ``name``, or None if it is not stored."""
        secret = self._secrets.get(name)
        return secret.value if secret else None

    def set(self, name: str, value: str) -> None:
        """Store a secret and persist."""
        validate_secret(name, value)
        secrets = dict(self._secrets)
        _put(secrets, name, value, _now())
        self._save(secrets)

    def update(self, pairs: Mapping[str, str]) -> Tuple[List[str], List[str]]:
        """
        Store several secrets with a single write.

        The whole batch is validated first, so nothing is stored if any
        entry is invalid.

        Returns:
            (added, updated) names, sorted
        """
        for name, value in pairs.items():
            validate_secret(name, value)

        now = _now()
        secrets = dict(self._secrets)
        added, updated = [], []
        for name, value in pairs.items():
            (updated if _put(secrets, name, value, now) else added).append(name)

        if pairs:
            self._save(secrets)
        return sorted(added), sorted(updated)

    def delete(self, name: str) -> None:
        """Remove a secret and persist."""
        if name not in self._secrets:
            raise SecretNotFoundError(f"Secret not found: {name}")
        secrets = dict(self._secrets)
        del secrets[name]
        self._save(secrets)

    def list(self) -> Dict[str, SecretInfo]:
        """Names with timestamps. Values are never included."""
        return {
            name: SecretInfo(created_at=s.created_at, updated_at=s.updated_at)
            for name, s in self._secrets.items()
        }

    def get_all(self) -> Dict[str, str]:
        """All values, for injection into a command's environment."""
        return {name: s.value for name, s in self._secrets.items()}

    def names(self) -> Iterable[str]:
        return sorted(self._secrets)

    def __contains__(self, name: str) -> bool:
        return name in self._secrets

    def __len__(self) -> int:
        return len(self._secrets)
