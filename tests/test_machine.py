"""Tests for machine identity and passphrase derivation."""

import subprocess

import pytest

from alex_secrets import machine
from alex_secrets.machine import MachineIdentity, derive_passphrase, hash_machine_identity


class TestDerivePassphrase:
    def test_explicit_passphrase_used_verbatim(self, monkeypatch):
        monkeypatch.setattr(machine, "get_machine_identity", pytest.fail)

        result = derive_passphrase("my passphrase")
        assert result.passphrase == "my passphrase"
        assert result.used_weak_fallback is False

    @pytest.mark.parametrize("explicit", [None, ""])
    def test_machine_identity_is_hashed(self, monkeypatch, explicit):
        monkeypatch.setattr(
            machine, "get_machine_identity",
            lambda: MachineIdentity(value="raw-machine-id", source="test"),
        )

        result = derive_passphrase(explicit)
        assert result.passphrase == hash_machine_identity("raw-machine-id")
        assert "raw-machine-id" not in result.passphrase
        assert result.used_weak_fallback is False

    def test_weak_fallback_is_flagged(self, monkeypatch):
        monkeypatch.setattr(
            machine, "get_machine_identity",
            lambda: MachineIdentity(value="host-user", source=machine.FALLBACK_SOURCE, used_fallback=True),
        )
        assert derive_passphrase().used_weak_fallback is True

    def test_deterministic(self):
        assert derive_passphrase().passphrase == derive_passphrase().passphrase


class TestHashing:
    def test_fixed_length_hex(self):
        for identity in ["", "a", "x" * 1000]:
            digest = hash_machine_identity(identity)
            assert len(digest) == 64
            int(digest, 16)

    def test_salted(self):
        import hashlib
        assert hash_machine_identity("abc") != hashlib.sha256(b"abc").hexdigest()


class TestProbes:
    def test_linux_machine_id_file(self, tmp_path, monkeypatch):
        id_file = tmp_path / "machine-id"
        id_file.write_text("0123456789abcdef\n")
        monkeypatch.setattr(machine, "LINUX_MACHINE_ID_FILES", (tmp_path / "missing", id_file))

        identity = machine.get_machine_identity(system="Linux")
        assert identity.value == "0123456789abcdef"
        assert identity.used_fallback is False

    def test_linux_without_machine_id_falls_back(self, tmp_path, monkeypatch):
        monkeypatch.setattr(machine, "LINUX_MACHINE_ID_FILES", (tmp_path / "missing",))

        identity = machine.get_machine_identity(system="Linux")
        assert identity.used_fallback is True
        assert identity.source == machine.FALLBACK_SOURCE
        assert "-" in identity.value

    def test_macos_ioreg(self, monkeypatch):
        output = (
            '+-o J314sAP  <class IOPlatformExpertDevice>\n'
            '    "IOPlatformSerialNumber" = "C02XXXX"\n'
            '    "IOPlatformUUID" = "12345678-ABCD-EF00-1234-567890ABCDEF"\n'
        )

        def fake_run(cmd, **kwargs):
            assert cmd[0] == "ioreg"
            return subprocess.CompletedProcess(cmd, 0, stdout=output, stderr="")

        monkeypatch.setattr(machine.subprocess, "run", fake_run)

        identity = machine.get_machine_identity(system="Darwin")
        assert identity.value == "12345678-ABCD-EF00-1234-567890ABCDEF"
        assert identity.source == "macOS hardware UUID"

    def test_macos_without_ioreg_falls_back(self, monkeypatch):
        def missing(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(machine.subprocess, "run", missing)
        assert machine.get_machine_identity(system="Darwin").used_fallback is True

    def test_unknown_platform_falls_back(self, monkeypatch):
        monkeypatch.setattr(machine.socket, "gethostname", lambda: "devbox")
        monkeypatch.setattr(machine.getpass, "getuser", lambda: "alice")

        identity = machine.get_machine_identity(system="Plan9")
        assert identity.value == "devbox-alice"
        assert identity.used_fallback is True
