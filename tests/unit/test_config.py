"""Tests for splitter/lib/config.py - runtime config and settings loading."""

import pytest

from splitter.lib.config import (
    SplitterConfig,
    SplitterSettings,
    decode_delimiter,
    load_settings,
    make_drop_filter,
)
from splitter.lib.errors import ConfigurationError


class TestDecodeDelimiter:
    """Tests for delimiter escapes."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            (",", b","),
            ("\\n", b"\n"),
            ("\\r\\n", b"\r\n"),
            ("\\t", b"\t"),
            ("\\x00", b"\x00"),
            ("||", b"||"),
            ("\\\\", b"\\"),
            ("\u2192", "\u2192".encode("utf-8")),
            ("\\xff", b"\xff"),
            ("caf\u00e9|\\n", "caf\u00e9|\n".encode("utf-8")),
        ],
    )
    def test_decodes(self, text, expected):
        assert decode_delimiter(text) == expected

    def test_trailing_backslash_rejected(self):
        with pytest.raises(ValueError):
            decode_delimiter("abc\\")

    def test_escape_above_byte_range_rejected(self):
        with pytest.raises(ValueError):
            decode_delimiter("\\u2603")


class TestSplitterConfig:
    """Tests for the SplitterConfig dataclass."""

    def test_defaults(self):
        config = SplitterConfig(delimiter=b",")
        assert config.chunk_size_limit == 16
        assert config.value_max_scan_size == 4096
        assert config.start_chunk_sn == 0
        assert config.rate_limit == 0
        assert config.flush_handler is None
        assert config.value_filter is None

    def test_resolved_limits_clamp(self):
        config = SplitterConfig(delimiter=b",", chunk_size_limit=-5, value_max_scan_size=0)
        assert config.resolved_chunk_size_limit == 16
        assert config.resolved_value_max_scan_size == 4096

    def test_resolved_limits_keep_larger_values(self):
        config = SplitterConfig(delimiter=b",", chunk_size_limit=1024, value_max_scan_size=65536)
        assert config.resolved_chunk_size_limit == 1024
        assert config.resolved_value_max_scan_size == 65536


class TestMakeDropFilter:
    """Tests for make_drop_filter()."""

    def test_drops_listed_values(self):
        drop = make_drop_filter(["banana", b"kiwi"])
        assert drop(b"banana") is None
        assert drop(b"kiwi") is None
        assert drop(b"apple") == b"apple"

    def test_exact_match_only(self):
        drop = make_drop_filter(["ban"])
        assert drop(b"banana") == b"banana"


class TestSplitterSettings:
    """Tests for the pydantic settings model."""

    def test_defaults(self):
        settings = SplitterSettings()
        assert settings.delimiter_bytes == b"\n"
        assert settings.log_level == "INFO"
        assert settings.log_format == "console"
        assert settings.drop_values == []

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("SPLITTER_CHUNK_SIZE_LIMIT", "2048")
        monkeypatch.setenv("SPLITTER_DELIMITER", "|")
        settings = SplitterSettings()
        assert settings.chunk_size_limit == 2048
        assert settings.delimiter_bytes == b"|"

    def test_empty_delimiter_rejected(self):
        with pytest.raises(ValueError):
            SplitterSettings(delimiter="")

    def test_log_level_normalized(self):
        assert SplitterSettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValueError):
            SplitterSettings(log_level="LOUD")

    def test_invalid_log_format_rejected(self):
        with pytest.raises(ValueError):
            SplitterSettings(log_format="xml")

    def test_negative_rate_limit_rejected(self):
        with pytest.raises(ValueError):
            SplitterSettings(rate_limit=-1)

    def test_negative_start_chunk_sn_rejected(self):
        with pytest.raises(ValueError):
            SplitterSettings(start_chunk_sn=-3)

    def test_unencodable_delimiter_escape_rejected(self):
        with pytest.raises(ValueError):
            SplitterSettings(delimiter="\\u2603")

    def test_below_minimum_limits_accepted(self):
        """Small limits are clamped later, not rejected."""
        settings = SplitterSettings(chunk_size_limit=1, value_max_scan_size=1)
        config = settings.to_config()
        assert config.resolved_chunk_size_limit == 16
        assert config.resolved_value_max_scan_size == 4096

    def test_to_config_builds_drop_filter(self):
        settings = SplitterSettings(delimiter=",", drop_values=["banana"], start_chunk_sn=4)
        config = settings.to_config()
        assert config.delimiter == b","
        assert config.start_chunk_sn == 4
        assert config.value_filter(b"banana") is None
        assert config.value_filter(b"apple") == b"apple"

    def test_to_config_explicit_filter_wins(self):
        def keep(value):
            return value

        settings = SplitterSettings(drop_values=["banana"])
        assert settings.to_config(value_filter=keep).value_filter is keep

    def test_to_config_without_drop_values_has_no_filter(self):
        assert SplitterSettings().to_config().value_filter is None


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_without_file_uses_defaults(self):
        settings = load_settings()
        assert settings.delimiter_bytes == b"\n"

    def test_splitter_section(self, tmp_path):
        path = tmp_path / "splitter.yaml"
        path.write_text(
            "splitter:\n"
            "  delimiter: ','\n"
            "  chunk_size_limit: 1024\n"
            "  drop_values: [banana]\n"
        )
        settings = load_settings(path)
        assert settings.delimiter_bytes == b","
        assert settings.chunk_size_limit == 1024
        assert settings.drop_values == ["banana"]

    def test_flat_mapping(self, tmp_path):
        path = tmp_path / "flat.yaml"
        path.write_text("delimiter: '\\t'\nvalue_max_scan_size: 8192\n")
        settings = load_settings(path)
        assert settings.delimiter_bytes == b"\t"
        assert settings.value_max_scan_size == 8192

    def test_yaml_double_quoted_newline(self, tmp_path):
        path = tmp_path / "nl.yaml"
        path.write_text('delimiter: "\\n"\n')
        assert load_settings(path).delimiter_bytes == b"\n"

    def test_env_references_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CHUNK_OUT", "/data/chunks")
        monkeypatch.delenv("SPLIT_PREFIX", raising=False)
        path = tmp_path / "env.yaml"
        path.write_text("output_dir: ${CHUNK_OUT}\nchunk_prefix: ${SPLIT_PREFIX:-events}\n")
        settings = load_settings(path)
        assert settings.output_dir == "/data/chunks"
        assert settings.chunk_prefix == "events"

    def test_overrides_take_precedence(self, tmp_path):
        path = tmp_path / "base.yaml"
        path.write_text("chunk_size_limit: 100\ndelimiter: ';'\n")
        settings = load_settings(path, {"chunk_size_limit": 200, "delimiter": None})
        assert settings.chunk_size_limit == 200
        assert settings.delimiter_bytes == b";"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(path).chunk_size_limit == 16

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("splitter: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_settings(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(path)

    def test_validation_error_wrapped(self):
        with pytest.raises(ConfigurationError) as excinfo:
            load_settings(overrides={"delimiter": ""})
        assert excinfo.value.field == "delimiter"
