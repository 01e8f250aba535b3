"""
Integration tests for logging infrastructure

Tests the compiler writing its diagnostics through a configured logger:
- Config file + File handler
- Feature compilation events
- Command line run with a `logging:` section
"""

import unittest
import tempfile
import shutil
import json
import sys
from pathlib import Path
from unittest import mock

from click.testing import CliRunner

from featurecli.cli import cli
from featurecli.logging.config import LoggingConfig
from featurecli.logging.file_handler import RotatingFileHandler
from featurecli.logging.structured_logger import LoggerFactory
from featurecli.readers.feature_file_parser import FeatureFileParser

FEATURE_DIR = Path(__file__).parent.parent / "test_data" / "FEATURE"


class TestCompilerLogging(unittest.TestCase):
    """Test log entries produced while compiling feature files"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.log_file = Path(self.temp_dir) / "logs" / "compile.log"
        self.config_file = Path(self.temp_dir) / "config.yml"
        LoggerFactory.reset()

    def tearDown(self):
        if isinstance(LoggerFactory._default_stream, RotatingFileHandler):
            LoggerFactory._default_stream.close()
        LoggerFactory.reset()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, level="INFO", log_format="json", extra=""):
        self.config_file.write_text(
            "logging:\n"
            f"  level: {level}\n"
            f"  format: {log_format}\n"
            "  output: file\n"
            f"  file_path: '{self.log_file}'\n" + extra,
            encoding="utf-8",
        )

    def _read_entries(self):
        LoggerFactory._default_stream.close()
        lines = self.log_file.read_text(encoding="utf-8").strip().split("\n")
        return [json.loads(line) for line in lines if line]

    def test_compiled_feature_is_logged(self):
        self._write_config()
        LoggingConfig.setup_logging(str(self.config_file))

        FeatureFileParser().compile_files([FEATURE_DIR / "login_outline.feature"])

        entries = [entry for entry in self._read_entries() if entry["message"] == "Feature compiled"]
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["level"], "INFO")
        self.assertEqual(entries[0]["logger"], "featurecli.readers.feature_file_parser")
        self.assertTrue(entries[0]["uri"].endswith("login_outline.feature"))
        self.assertEqual(entries[0]["scenarios"], 2)

    def test_skipped_file_is_logged(self):
        self._write_config(level="ERROR")
        LoggingConfig.setup_logging(str(self.config_file))

        FeatureFileParser().compile_files(
            [FEATURE_DIR / "login_outline.feature", FEATURE_DIR / "missing_steps.feature"]
        )

        entries = self._read_entries()
        self.assertEqual([entry["message"] for entry in entries], ["Skipping feature file"])
        self.assertEqual(entries[0]["level"], "ERROR")
        self.assertEqual(entries[0]["error"], "Scenario must have at least one step")
        self.assertEqual(entries[0]["line"], 2)

    def test_truncated_outline_is_logged(self):
        self._write_config(level="WARNING")
        LoggingConfig.setup_logging(str(self.config_file))

        FeatureFileParser(max_examples_per_outline=1).compile_files([FEATURE_DIR / "login_outline.feature"])

        entries = self._read_entries()
        truncated = [entry for entry in entries if entry.get("limit") == 1]
        self.assertEqual(len(truncated), 1)
        self.assertEqual(truncated[0]["level"], "WARNING")
        self.assertEqual(truncated[0]["outline"], "try login")
        self.assertNotIn("Feature compiled", [entry["message"] for entry in entries])

    def test_text_format(self):
        self._write_config(log_format="text")
        LoggingConfig.setup_logging(str(self.config_file))

        FeatureFileParser().compile_files([FEATURE_DIR / "login_outline.feature"])
        LoggerFactory._default_stream.close()

        content = self.log_file.read_text(encoding="utf-8")
        self.assertIn("[INFO]", content)
        self.assertIn("| Feature compiled |", content)
        self.assertIn("scenarios=2", content)

    def test_command_line_run_uses_logging_section(self):
        feature_file = FEATURE_DIR / "login_outline.feature"
        self._write_config(extra=f"file: '{feature_file}'\n")
        args = ["--config", str(self.config_file), "parse_feature"]

        with mock.patch.object(sys, "argv", ["featurecli", *args]):
            result = CliRunner().invoke(cli, args)

        self.assertEqual(result.exit_code, 0, result.output)
        messages = [entry["message"] for entry in self._read_entries()]
        self.assertIn("Feature compiled", messages)

    def test_disabled_logging_writes_nothing(self):
        self._write_config(extra="")
        self.config_file.write_text(
            self.config_file.read_text(encoding="utf-8").replace("logging:\n", "logging:\n  enabled: false\n"),
            encoding="utf-8",
        )
        LoggingConfig.setup_logging(str(self.config_file))

        FeatureFileParser().compile_files([FEATURE_DIR / "login_outline.feature"])

        self.assertFalse(self.log_file.exists())


if __name__ == "__main__":
    unittest.main()
