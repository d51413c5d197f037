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

import importlib
import re
import tempfile
import unittest
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from unittest import mock

import typer
from typer.testing import CliRunner

from drivemirror.cli import app
from drivemirror.cli.commands import config as config_command
from drivemirror.config import UiDefaults
from drivemirror.config.installer import DEFAULT_CONFIG_PATH
from drivemirror.core.models import TimingEntry
from drivemirror.ledger.history import record_backup
from drivemirror.ledger.timing import record_timing
from tests.test_support import temp_env

app_module = importlib.import_module("drivemirror.cli.app")

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")


def _strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


@dataclass
class _Ctx:
    invoked_subcommand: str | None = None
    obj: dict[str, object] | None = None

    def ensure_object(self, _type):
        if self.obj is None:
            self.obj = {}
        return self.obj


def _callback_kwargs() -> dict[str, object]:
    return dict(
        config=None,
        debug=False,
        quiet=False,
        no_color=False,
        no_animations=False,
        init_config=False,
        version=False,
    )


class TestCliCallback(unittest.TestCase):
    @mock.patch("drivemirror.cli.app.console.print")
    def test_version_callback(self, print_mock: mock.MagicMock) -> None:
        with self.assertRaises(typer.Exit):
            app_module._version_callback(True)
        print_mock.assert_called_once()
        app_module._version_callback(False)

    @mock.patch("drivemirror.cli.app.console_err.print")
    @mock.patch("drivemirror.cli.app.run_startup", side_effect=OSError("read-only home"))
    def test_startup_exception_returns_exit_2(
        self,
        _run_startup: mock.MagicMock,
        print_err: mock.MagicMock,
    ) -> None:
        with self.assertRaises(typer.Exit) as exc_info:
            app_module.cli(_Ctx(invoked_subcommand="backup"), **_callback_kwargs())
        self.assertEqual(exc_info.exception.exit_code, 2)
        print_err.assert_called_once()

    @mock.patch("drivemirror.cli.app.run_startup", return_value=True)
    def test_startup_should_exit(self, _run_startup: mock.MagicMock) -> None:
        with self.assertRaises(typer.Exit) as exc_info:
            app_module.cli(_Ctx(), **_callback_kwargs())
        self.assertEqual(exc_info.exception.exit_code, 0)

    @mock.patch("drivemirror.cli.app.apply_ui_defaults")
    @mock.patch("drivemirror.cli.app.run_startup", return_value=False)
    def test_options_are_stored_for_subcommands(
        self,
        _run_startup: mock.MagicMock,
        apply_ui_defaults: mock.MagicMock,
    ) -> None:
        apply_ui_defaults.return_value = UiDefaults(quiet=True, no_animations=True)
        ctx = _Ctx(invoked_subcommand="history")
        kwargs = _callback_kwargs()
        kwargs.update(config="custom.toml", quiet=True)
        app_module.cli(ctx, **kwargs)
        apply_ui_defaults.assert_called_once_with(
            "custom.toml", quiet=True, no_color=False, no_animations=False
        )
        self.assertEqual(ctx.obj["config"], "custom.toml")
        self.assertTrue(ctx.obj["quiet"])
        self.assertTrue(ctx.obj["no_animations"])
        self.assertFalse(ctx.obj["no_color"])

    @mock.patch("drivemirror.cli.app.apply_ui_defaults")
    @mock.patch("drivemirror.cli.app.run_startup", return_value=False)
    def test_config_command_skips_ui_defaults(
        self,
        _run_startup: mock.MagicMock,
        apply_ui_defaults: mock.MagicMock,
    ) -> None:
        ctx = _Ctx(invoked_subcommand="config")
        app_module.cli(ctx, **_callback_kwargs())
        apply_ui_defaults.assert_not_called()
        self.assertFalse(ctx.obj["quiet"])


class TestCliTyper(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()
        patcher = mock.patch("drivemirror.cli.app.run_startup", return_value=False)
        patcher.start()
        self.addCleanup(patcher.stop)
        ui_patcher = mock.patch(
            "drivemirror.cli.app.apply_ui_defaults",
            side_effect=lambda _config, **flags: UiDefaults(**flags),
        )
        ui_patcher.start()
        self.addCleanup(ui_patcher.stop)

    def test_root_info_commands(self) -> None:
        cases = (
            (["--help"], ("backup", "history", "timings", "config")),
            (["--version"], ("drivemirror",)),
        )
        for args, expected in cases:
            with self.subTest(args=args):
                result = self.runner.invoke(app, args)
                self.assertEqual(result.exit_code, 0)
                output = _strip_ansi(result.output)
                for text in expected:
                    self.assertIn(text, output)

    def test_no_subcommand_references_help(self) -> None:
        result = self.runner.invoke(app, [])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("drivemirror --help", _strip_ansi(result.output))

    def test_backup_rejects_bad_options(self) -> None:
        cases = (
            ["--echo", "--progress"],
            ["--verify", "sometimes"],
        )
        for extra in cases:
            with self.subTest(extra=extra):
                with mock.patch(
                    "drivemirror.cli.commands.backup.run_backup_command"
                ) as run_backup:
                    result = self.runner.invoke(app, ["backup", "src", "dst", "--yes", *extra])
                self.assertEqual(result.exit_code, 2)
                run_backup.assert_not_called()

    def test_backup_exit_code_is_propagated(self) -> None:
        with mock.patch(
            "drivemirror.cli.commands.backup.run_backup_command", return_value=3
        ) as run_backup:
            result = self.runner.invoke(
                app,
                ["--config", "custom.toml", "backup", "src", "BACKUP_A", "--verify", "always"],
            )
        self.assertEqual(result.exit_code, 3)
        args = run_backup.call_args.args[0]
        self.assertEqual(args.config, "custom.toml")
        self.assertEqual(args.verify, "always")
        self.assertFalse(args.assume_yes)

    def test_backup_precondition_error_exits_2(self) -> None:
        with mock.patch(
            "drivemirror.cli.commands.backup.run_backup_command",
            side_effect=ValueError("destination label 'DATA' does not match"),
        ):
            result = self.runner.invoke(app, ["backup", "src", "DATA", "--yes"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("does not match", _strip_ansi(result.output))

    def test_history_and_timings(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            source = Path(tmpdir)
            base = ["--config", str(DEFAULT_CONFIG_PATH)]

            empty = self.runner.invoke(app, [*base, "history", str(source)])
            self.assertEqual(empty.exit_code, 0)
            self.assertIn("No backups recorded", _strip_ansi(empty.output))

            history_dir = source / "BackupLogs" / "history"
            record_backup(history_dir / "drive_history.txt", "BACKUP_A", datetime(2026, 10, 1))
            record_timing(
                history_dir / "timing_log.txt",
                TimingEntry(
                    started=datetime(2026, 10, 1),
                    source=str(source),
                    destination="BACKUP_A",
                    count_duration=None,
                    copy_duration=None,
                    verify_duration=None,
                    total_duration=None,
                    flags="--verify=never",
                    status="FAILED",
                ),
            )

            history = self.runner.invoke(app, [*base, "history", str(source)])
            timings = self.runner.invoke(app, [*base, "timings", str(source)])

        self.assertEqual(history.exit_code, 0)
        self.assertIn("BACKUP_A", _strip_ansi(history.output))
        self.assertIn("NEWEST", _strip_ansi(history.output))
        self.assertEqual(timings.exit_code, 0)
        self.assertIn("Recent backups", _strip_ansi(timings.output))

    def test_config_print_path(self) -> None:
        result = self.runner.invoke(
            app, ["config", "--config", str(DEFAULT_CONFIG_PATH), "--print-path"]
        )
        self.assertEqual(result.exit_code, 0)
        self.assertIn("default.toml", _strip_ansi(result.output))

    def test_config_show(self) -> None:
        result = self.runner.invoke(
            app, ["config", "--config", str(DEFAULT_CONFIG_PATH), "--show"]
        )
        self.assertEqual(result.exit_code, 0)
        output = _strip_ansi(result.output)
        self.assertIn("robocopy", output)
        self.assertIn("^BACKUP", output)

    def test_config_opens_editor(self) -> None:
        with mock.patch("drivemirror.cli.commands.config.subprocess.run") as run:
            result = self.runner.invoke(
                app,
                [
                    "--quiet",
                    "config",
                    "--config",
                    str(DEFAULT_CONFIG_PATH),
                    "--editor",
                    "myedit --wait",
                ],
            )
        self.assertEqual(result.exit_code, 0)
        run.assert_called_once_with(["myedit", "--wait", str(DEFAULT_CONFIG_PATH)], check=False)

    def test_config_missing_file_suggests_init(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            missing = Path(tmpdir) / "missing.toml"
            with mock.patch("drivemirror.cli.commands.config.subprocess.run") as run:
                result = self.runner.invoke(
                    app, ["config", "--config", str(missing), "--editor", "myedit"]
                )
        self.assertEqual(result.exit_code, 2)
        self.assertIn("--init-config", _strip_ansi(result.output))
        run.assert_not_called()


class TestEditorCommand(unittest.TestCase):
    def test_editor_resolution(self) -> None:
        cases = (
            ({}, None, None),
            ({"EDITOR": "vi"}, None, ["vi"]),
            ({"VISUAL": "code --wait", "EDITOR": "vi"}, None, ["code", "--wait"]),
            ({"EDITOR": "vi"}, "default", None),
            ({"EDITOR": "vi"}, " System ", None),
            ({}, "nano -w", ["nano", "-w"]),
        )
        for env, editor, expected in cases:
            with self.subTest(env=env, editor=editor):
                with temp_env(env, clear=True):
                    self.assertEqual(config_command._editor_command(editor), expected)


if __name__ == "__main__":
    unittest.main()
