# Copyright (C) 2026 Alex Stoyanov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with this program.
# If not, see <https://www.gnu.org/licenses/>.

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from drivemirror.config import installer, load_app_config, load_cli_defaults
from drivemirror.config.installer import DEFAULT_CONFIG_PATH
from drivemirror.core.models import OutputMode, VerifyMode
from drivemirror.engine.robocopy import EngineSettings


def _write_config(root: Path, text: str) -> Path:
    path = root / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestConfigLoader(unittest.TestCase):
    def test_packaged_defaults(self) -> None:
        config = load_app_config(DEFAULT_CONFIG_PATH)
        self.assertEqual(config.engine_command, ("robocopy",))
        self.assertIsNone(config.engine_encoding)
        self.assertEqual(config.engine, EngineSettings(threads=16, retries=3, retry_wait=5))
        self.assertEqual(config.work_dir, "BackupLogs")
        self.assertIn("$RECYCLE.BIN", config.excluded_dirs)
        self.assertEqual(config.destination_pattern, "^BACKUP")
        self.assertEqual(config.lock_timeout, 10.0)
        self.assertIs(config.cli_defaults.backup.output, OutputMode.SILENT)
        self.assertIs(config.cli_defaults.backup.verify, VerifyMode.ASK)

        settings = config.orchestrator_settings()
        self.assertEqual(settings.work_dir, "BackupLogs")
        self.assertEqual(settings.excluded_names, config.excluded_dirs)
        self.assertIsNone(settings.report_encoding)

    def test_overrides(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_config(
                Path(tmpdir),
                "\n".join(
                    [
                        "[engine]",
                        'command = ["python", "fake_engine.py"]',
                        "threads = 4",
                        'encoding = "cp437"',
                        "[paths]",
                        'work_dir = "MirrorLogs"',
                        "excluded_dirs = []",
                        "[policy]",
                        'destination_pattern = "^OFFSITE"',
                        "lock_timeout = 2",
                        "[defaults.backup]",
                        'output = "Progress"',
                        'verify = "always"',
                        "[ui]",
                        'quiet = "yes"',
                    ]
                ),
            )
            config = load_app_config(path)
            defaults = load_cli_defaults(path)

        self.assertEqual(config.engine_command, ("python", "fake_engine.py"))
        self.assertEqual(config.engine.threads, 4)
        self.assertEqual(config.engine.retries, 3)
        self.assertEqual(config.engine_encoding, "cp437")
        self.assertEqual(config.orchestrator_settings().report_encoding, "cp437")
        self.assertEqual(config.work_dir, "MirrorLogs")
        self.assertEqual(config.excluded_dirs, ())
        self.assertEqual(config.destination_pattern, "^OFFSITE")
        self.assertEqual(config.lock_timeout, 2.0)
        self.assertIs(defaults.backup.output, OutputMode.PROGRESS)
        self.assertIs(defaults.backup.verify, VerifyMode.ALWAYS)
        self.assertTrue(defaults.ui.quiet)
        self.assertEqual(defaults.backup.mode().describe(), "--progress --verify=always")

    def test_invalid_values_name_the_field(self) -> None:
        cases = (
            ("[engine]\ncommand = 5", "engine.command"),
            ('[engine]\ncommand = ""', "engine.command"),
            ("[engine]\nthreads = 0", "engine.threads"),
            ("[engine]\nthreads = 1.5", "engine.threads"),
            ("[engine]\nretries = true", "engine.retries"),
            ('[paths]\nwork_dir = "a/b"', "paths.work_dir"),
            ('[paths]\nexcluded_dirs = "x"', "paths.excluded_dirs"),
            ('[policy]\ndestination_pattern = "(["', "policy.destination_pattern"),
            ("[policy]\nlock_timeout = 0", "policy.lock_timeout"),
            ('[defaults.backup]\noutput = "loud"', "defaults.backup.output"),
            ('[defaults.backup]\nverify = "maybe"', "defaults.backup.verify"),
            ('[ui]\nno_color = "sometimes"', "ui.no_color"),
        )
        for text, field in cases:
            with self.subTest(field=field, text=text):
                with tempfile.TemporaryDirectory() as tmpdir:
                    path = _write_config(Path(tmpdir), text)
                    with self.assertRaises(ValueError) as ctx:
                        load_app_config(path)
                self.assertIn(field, str(ctx.exception))

    def test_empty_file_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = load_app_config(_write_config(Path(tmpdir), ""))
        self.assertEqual(config.engine_command, ("robocopy",))
        self.assertEqual(config.work_dir, "BackupLogs")


class TestConfigInstaller(unittest.TestCase):
    def test_user_config_path_honours_xdg(self) -> None:
        with mock.patch.dict(os.environ, {installer.XDG_CONFIG_ENV: "/tmp/xdg"}, clear=False):
            self.assertEqual(
                installer.user_config_path(),
                Path("/tmp/xdg/drivemirror/config.toml"),
            )

    def test_resolve_config_path_precedence(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            xdg = Path(tmpdir) / "xdg"
            env = {installer.XDG_CONFIG_ENV: str(xdg)}
            with mock.patch.dict(os.environ, env, clear=False):
                os.environ.pop(installer.CONFIG_ENV, None)
                explicit = installer.resolve_config_path("explicit.toml")
                self.assertEqual(explicit, Path("explicit.toml"))

                resolved = installer.resolve_config_path()
                self.assertEqual(resolved, xdg / "drivemirror" / "config.toml")
                self.assertTrue(resolved.exists())
                self.assertFalse(installer.user_config_needs_init())

                with mock.patch.dict(os.environ, {installer.CONFIG_ENV: "from-env.toml"}):
                    self.assertEqual(installer.resolve_config_path(), Path("from-env.toml"))

    def test_resolve_falls_back_to_packaged_defaults(self) -> None:
        with mock.patch.object(installer, "_ensure_user_config", return_value=False):
            with mock.patch.dict(os.environ, {}, clear=False):
                os.environ.pop(installer.CONFIG_ENV, None)
                self.assertEqual(installer.resolve_config_path(), DEFAULT_CONFIG_PATH)

    def test_init_user_config_reports_failure(self) -> None:
        with mock.patch.object(installer, "_ensure_user_config", return_value=False):
            with self.assertRaises(OSError):
                installer.init_user_config()


if __name__ == "__main__":
    unittest.main()
