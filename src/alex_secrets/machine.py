"""Machine identity and passphrase derivation."""

import getpass
import hashlib
import logging
import platform
import socket
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MACHINE_ID_SALT = "alex-salt-v1"

LINUX_MACHINE_ID_FILES = (
    Path("/etc/machine-id"),
    Path("/var/lib/dbus/machine-id"),
)

FALLBACK_SOURCE = "hostname + username (fallback)"


@dataclass(frozen=True)
class MachineIdentity:
    """Raw machine identifier and where it came from."""

    value: str
    source: str
    used_fallback: bool = False


@dataclass(frozen=True)
class DerivedPassphrase:
    passphrase: str
    used_weak_fallback: bool


def _macos_machine_id() -> Optional[str]:
    """Read IOPlatformUUID from ioreg."""
    try:
        result = subprocess.run(
            ["ioreg", "-rd1", "-c", "IOPlatformExpertDevice"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None

    for line in result.stdout.splitlines():
        if "IOPlatformUUID" in line:
            # "IOPlatformUUID" = "XXXXXXXX-..."
            parts = line.split('"')
            if len(parts) >= 4 and parts[3]:
                return parts[3]
    return None


def _linux_machine_id() -> Optional[str]:
    for path in LINUX_MACHINE_ID_FILES:
        try:
            value = path.read_text().strip()
        except OSError:
            continue
        if value:
            return value
    return None


def _windows_machine_id() -> Optional[str]:
    try:
        import winreg
    except ImportError:
        return None

    try:
        with winreg.OpenKey(
            winreg.HKEY_LOCAL_MACHINE,
            r"SOFTWARE\Microsoft\Cryptography",
            0,
            winreg.KEY_READ | winreg.KEY_WOW64_64KEY,
        ) as key:
            value, _ = winreg.QueryValueEx(key, "MachineGuid")
    except OSError:
        return None
    return str(value) or None


def _fallback_id() -> str:
    """hostname-username, guessable on shared hosts."""
    try:
        hostname = socket.gethostname() or "unknown"
    except OSError:
        hostname = "unknown"

    try:
        user = getpass.getuser()
    except (OSError, KeyError):
        # no USER/LOGNAME and no passwd entry
        user = "unknown"

    return f"{hostname}-{user}"


_PROBES = {
    "Darwin": (_macos_machine_id, "macOS hardware UUID"),
    "Linux": (_linux_machine_id, "/etc/machine-id"),
    "Windows": (_windows_machine_id, "Windows MachineGuid"),
}


def get_machine_identity(system: Optional[str] = None) -> MachineIdentity:
    """Probe the platform for a persistent machine identifier."""
    system = system or platform.system()
    probe = _PROBES.get(system)

    if probe is not None:
        read, source = probe
        value = read()
        if value:
            logger.debug("Machine identity from %s", source)
            return MachineIdentity(value=value, source=source)

    logger.debug("No platform machine identity on %s, using fallback", system)
    return MachineIdentity(value=_fallback_id(), source=FALLBACK_SOURCE, used_fallback=True)


def hash_machine_identity(identity: str) -> str:
    """Normalize an identity to a fixed-length hex passphrase."""
    return hashlib.sha256((identity + MACHINE_ID_SALT).encode("utf-8")).hexdigest()


def derive_passphrase(explicit: Optional[str] = None) -> DerivedPassphrase:
    """
    Return the passphrase to encrypt stores with.

    An explicit passphrase is used verbatim. Otherwise the machine identity
    is hashed into one; ``used_weak_fallback`` tells the caller that the
    identity was only hostname + username.
    """
    if explicit:
        return DerivedPassphrase(passphrase=explicit, used_weak_fallback=False)

    identity = get_machine_identity()
    return DerivedPassphrase(
        passphrase=hash_machine_identity(identity.value),
        used_weak_fallback=identity.used_fallback,
    )
