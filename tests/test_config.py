"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from sight2sense.config import DEFAULT_CONFIG, load_config, resolve_api_key


class ConfigTests(unittest.TestCase):
    """Validate config merge and fallback behavior."""

    def test_missing_config_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config = load_config(config_path=Path(temp_dir) / "config.toml")
        self.assertEqual(config, DEFAULT_CONFIG)
        self.assertEqual(config["gemini"]["temperature"], 0.4)
        self.assertEqual(config["gemini"]["top_p"], 0.9)
        self.assertEqual(config["gemini"]["skill_level"], "Intermediate")

    def test_partial_config_overrides_selected_values(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[gemini]
model = "gemini-2.5-flash"
skill_level = "advanced"

[ui]
show_timestamps = false
                """.strip(),
                encoding="utf-8",
            )
            config = load_config(config_path=config_path)
        self.assertEqual(config["gemini"]["model"], "gemini-2.5-flash")
        self.assertEqual(config["gemini"]["skill_level"], "Advanced")
        self.assertFalse(config["ui"]["show_timestamps"])
        self.assertEqual(config["gemini"]["top_p"], DEFAULT_CONFIG["gemini"]["top_p"])
        self.assertEqual(config["app"]["title"], DEFAULT_CONFIG["app"]["title"])

    def test_invalid_values_fallback_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[gemini]
temperature = 9.5
skill_level = "wizard"
                """.strip(),
                encoding="utf-8",
            )
            with self.assertLogs("sight2sense.config", level="WARNING"):
                config = load_config(config_path=config_path)
        self.assertEqual(config, DEFAULT_CONFIG)

    def test_unparseable_toml_falls_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text("[gemini\nmodel = ", encoding="utf-8")
            with self.assertLogs("sight2sense.config", level="WARNING"):
                config = load_config(config_path=config_path)
        self.assertEqual(config, DEFAULT_CONFIG)

    def test_resolve_api_key_reads_environment(self) -> None:
        self.assertEqual(resolve_api_key({"GEMINI_API_KEY": " abc "}), "abc")
        self.assertIsNone(resolve_api_key({"GEMINI_API_KEY": "   "}))
        self.assertIsNone(resolve_api_key({}))


if __name__ == "__main__":
    unittest.main()
