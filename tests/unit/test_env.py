"""Tests for splitter/lib/env.py - environment expansion and .env loading."""

import os

import pytest

from splitter.lib.env import expand_env_vars, expand_options, load_env_file


class TestExpandEnvVars:
    """Tests for expand_env_vars()."""

    def test_expands_set_variable(self, monkeypatch):
        monkeypatch.setenv("SPLIT_DELIM", "|")
        assert expand_env_vars("${SPLIT_DELIM}") == "|"
        assert expand_env_vars("a${SPLIT_DELIM}b") == "a|b"

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("SPLIT_MISSING", raising=False)
        assert expand_env_vars("${SPLIT_MISSING:-,}") == ","

    def test_set_variable_beats_default(self, monkeypatch):
        monkeypatch.setenv("SPLIT_SET", "x")
        assert expand_env_vars("${SPLIT_SET:-y}") == "x"

    def test_unset_left_as_is(self, monkeypatch):
        monkeypatch.delenv("SPLIT_MISSING", raising=False)
        assert expand_env_vars("${SPLIT_MISSING}") == "${SPLIT_MISSING}"

    def test_strict_raises(self, monkeypatch):
        monkeypatch.delenv("SPLIT_MISSING", raising=False)
        with pytest.raises(KeyError, match="SPLIT_MISSING"):
            expand_env_vars("${SPLIT_MISSING}", strict=True)

    def test_bare_dollar_untouched(self):
        assert expand_env_vars("cost $5") == "cost $5"


class TestExpandOptions:
    """Tests for expand_options()."""

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("OUT_DIR", "/tmp/out")
        result = expand_options({
            "output_dir": "${OUT_DIR}",
            "nested": {"path": "${OUT_DIR}/x"},
            "drop_values": ["${OUT_DIR}", 3],
            "chunk_size_limit": 16,
        })
        assert result == {
            "output_dir": "/tmp/out",
            "nested": {"path": "/tmp/out/x"},
            "drop_values": ["/tmp/out", 3],
            "chunk_size_limit": 16,
        }

    def test_input_not_modified(self, monkeypatch):
        monkeypatch.setenv("OUT_DIR", "/tmp/out")
        options = {"output_dir": "${OUT_DIR}"}
        expand_options(options)
        assert options == {"output_dir": "${OUT_DIR}"}


class TestLoadEnvFile:
    """Tests for load_env_file()."""

    def test_loads_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SPLITTER_TEST_VALUE", "before")
        env_file = tmp_path / ".env"
        env_file.write_text("SPLITTER_TEST_VALUE=from-file\n")

        assert load_env_file(env_file, override=True) is True
        assert os.environ["SPLITTER_TEST_VALUE"] == "from-file"

    def test_does_not_override_by_default(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SPLITTER_TEST_VALUE", "kept")
        env_file = tmp_path / ".env"
        env_file.write_text("SPLITTER_TEST_VALUE=ignored\n")

        load_env_file(env_file)
        assert os.environ["SPLITTER_TEST_VALUE"] == "kept"
