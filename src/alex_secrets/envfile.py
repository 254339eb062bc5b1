"""Read secrets from .env files for import."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from dotenv import dotenv_values

from .errors import EnvFileNotFoundError
from .store import is_valid_name

logger = logging.getLogger(__name__)


@dataclass
class ParsedEnvFile:
    values: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)

    def with_prefix(self, prefix: str) -> Dict[str, str]:
        """Only the entries whose name starts with ``prefix``."""
        return {k: v for k, v in self.values.items() if k.startswith(prefix)}


def parse_env_file(path: Path) -> ParsedEnvFile:
    """
    Parse KEY=VALUE pairs from a .env file.

    Comments, blank lines, quoting and ``export`` prefixes are handled by
    python-dotenv. Values are taken literally (no ``${VAR}`` interpolation).
    Entries with an invalid name or an empty value are reported in
    ``skipped`` instead of failing the whole import.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise EnvFileNotFoundError(f"File not found: {path}")

    parsed = ParsedEnvFile()
    for key, value in dotenv_values(path, interpolate=False, encoding="utf-8").items():
        if not is_valid_name(key):
            parsed.skipped.append(f"invalid key '{key}'")
        elif value is None:
            parsed.skipped.append(f"no '=' found for '{key}'")
        elif not value:
            parsed.skipped.append(f"empty value for '{key}'")
        else:
            parsed.values[key] = value

    logger.debug("Parsed %d entries from %s (%d skipped)", len(parsed.values), path, len(parsed.skipped))
    return parsed
