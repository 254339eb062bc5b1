"""Tests for scope layout, existence probes and merging."""

from alex_secrets import scopes
from alex_secrets.config import Config, get_alex_home, load_config
from alex_secrets.errors import WrongPassphraseError
from alex_secrets.project import METHOD_CWD, ProjectIdentity
from alex_secrets.scopes import Scope

import pytest

PASSPHRASE = "scope-test"


class TestConfig:
    def test_alex_home_override(self, tmp_path):
        assert get_alex_home({"ALEX_HOME": str(tmp_path)}) == tmp_path

    def test_alex_home_default(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_alex_home({}).name == ".alex"

    def test_load_config(self, tmp_path):
        config = load_config({"ALEX_HOME": str(tmp_path / "h")}, cwd=tmp_path)
        assert config == Config(home=tmp_path / "h", cwd=tmp_path)


class TestLayout:
    def test_global_path(self, config):
        assert scopes.store_path(config, Scope.GLOBAL) == config.home / "secrets.enc"

    def test_project_path_uses_hash(self, config, project):
        path = scopes.store_path(config, Scope.PROJECT, project)
        assert path == config.home / "projects" / project.id / "secrets.enc"
        assert "acme" not in str(path)

    def test_project_detected_from_cwd(self, config, monkeypatch):
        detected = ProjectIdentity(str(config.cwd), METHOD_CWD)
        monkeypatch.setattr(scopes, "resolve_project_identity", lambda cwd: detected)

        assert scopes.store_path(config, Scope.PROJECT) == config.project_store_file(detected.id)

    def test_scopes_never_share_a_file(self, config, project):
        assert scopes.store_path(config, Scope.GLOBAL) != scopes.store_path(config, Scope.PROJECT, project)


class TestExistence:
    def test_probes_without_passphrase(self, config, project):
        assert not scopes.global_store_exists(config)
        assert not scopes.project_store_exists(config, project)

        scopes.open_store(config, Scope.PROJECT, PASSPHRASE, project).set("K", "v")

        assert not scopes.global_store_exists(config)
        assert scopes.project_store_exists(config, project)


class TestMerge:
    def test_project_overrides_global(self, config, project):
        scopes.open_store(config, Scope.GLOBAL, PASSPHRASE).set("K", "1")
        scopes.open_store(config, Scope.GLOBAL, PASSPHRASE).set("ONLY_GLOBAL", "g")
        scopes.open_store(config, Scope.PROJECT, PASSPHRASE, project).set("K", "2")

        resolved = scopes.resolve_secrets(config, PASSPHRASE, project)

        assert resolved.values == {"K": "2", "ONLY_GLOBAL": "g"}
        assert resolved.global_count == 2
        assert resolved.project_count == 1

    def test_merge_is_not_written_back(self, config, project):
        scopes.open_store(config, Scope.GLOBAL, PASSPHRASE).set("K", "1")
        scopes.open_store(config, Scope.PROJECT, PASSPHRASE, project).set("K", "2")

        scopes.resolve_secrets(config, PASSPHRASE, project)

        assert scopes.open_store(config, Scope.GLOBAL, PASSPHRASE).get_all() == {"K": "1"}
        assert scopes.open_store(config, Scope.PROJECT, PASSPHRASE, project).get_all() == {"K": "2"}

    def test_missing_project_store_not_created(self, config, project):
        scopes.open_store(config, Scope.GLOBAL, PASSPHRASE).set("K", "1")

        resolved = scopes.resolve_secrets(config, PASSPHRASE, project)

        assert resolved.values == {"K": "1"}
        assert resolved.project_count == 0
        assert not scopes.project_store_exists(config, project)

    def test_nothing_stored(self, config, project):
        resolved = scopes.resolve_secrets(config, PASSPHRASE, project)
        assert resolved.values == {}

    def test_wrong_passphrase_propagates(self, config, project):
        scopes.open_store(config, Scope.PROJECT, PASSPHRASE, project).set("K", "1")
        with pytest.raises(WrongPassphraseError):
            scopes.resolve_secrets(config, "other", project)

    def test_listing_keeps_scopes_apart(self, config, project):
        scopes.open_store(config, Scope.GLOBAL, PASSPHRASE).set("K", "1")
        scopes.open_store(config, Scope.PROJECT, PASSPHRASE, project).set("K", "2")
        scopes.open_store(config, Scope.PROJECT, PASSPHRASE, project).set("P", "3")

        listing = scopes.list_secrets(config, PASSPHRASE, project)

        assert sorted(listing[Scope.GLOBAL]) == ["K"]
        assert sorted(listing[Scope.PROJECT]) == ["K", "P"]
