"""Tests for the credential store."""

import json

from huely.credentials import CredentialStore


def test_missing_file_reads_as_empty(tmp_path):
    assert CredentialStore(str(tmp_path / "config.json")).get_key() is None


def test_set_get_and_clear_key(tmp_path):
    path = tmp_path / ".huely" / "config.json"
    store = CredentialStore(str(path))

    store.set_key("sk-abc")
    assert store.get_key() == "sk-abc"
    assert json.loads(path.read_text()) == {"openaiApiKey": "sk-abc"}
    assert CredentialStore(str(path)).get_key() == "sk-abc"

    store.clear_key()
    assert store.get_key() is None
    assert json.loads(path.read_text()) == {}


def test_unknown_keys_are_preserved(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"theme": "dark", "openaiApiKey": "sk-old"}))

    store = CredentialStore(str(path))
    store.set_key("sk-new")

    assert json.loads(path.read_text()) == {"theme": "dark", "openaiApiKey": "sk-new"}


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert CredentialStore(str(path)).get_key() is None


def test_environment_key_is_the_fallback(tmp_path, clean_env, monkeypatch):
    store = CredentialStore(str(tmp_path / "config.json"))
    assert store.resolve_key() is None

    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    assert store.resolve_key() == "sk-env"

    store.set_key("sk-file")
    assert store.resolve_key() == "sk-file"
