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

import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from drivemirror.cli.core.types import EXIT_DIFFERENCES, EXIT_FAILED, EXIT_OK, BackupArgs
from drivemirror.cli.flows import backup as flow
from drivemirror.config import AppConfig, BackupDefaults
from drivemirror.core.errors import PreconditionError
from drivemirror.core.models import (
    AttemptStatus,
    BackupAttempt,
    BackupMode,
    OutputMode,
    VerifyMode,
)
from tests.test_support import TEST_LABEL, TEST_STARTED, suppress_output


class TestResolveMode(unittest.TestCase):
    def test_mode_matrix(self) -> None:
        defaults = BackupDefaults(output=OutputMode.ECHO, verify=VerifyMode.NEVER)
        cases = (
            ({}, BackupMode(OutputMode.ECHO, VerifyMode.NEVER)),
            ({"progress": True}, BackupMode(OutputMode.PROGRESS, VerifyMode.NEVER)),
            ({"echo": True, "verify": "ASK"}, BackupMode(OutputMode.ECHO, VerifyMode.ASK)),
            ({"verify": " always "}, BackupMode(OutputMode.ECHO, VerifyMode.ALWAYS)),
        )
        for overrides, expected in cases:
            with self.subTest(overrides=overrides):
                args = BackupArgs(source="src", destination="dst", **overrides)
                self.assertEqual(flow.resolve_mode(args, defaults), expected)

    def test_invalid_combinations(self) -> None:
        defaults = BackupDefaults()
        for overrides in ({"echo": True, "progress": True}, {"verify": "sometimes"}):
            with self.subTest(overrides=overrides):
                args = BackupArgs(source="src", destination="dst", **overrides)
                with self.assertRaises(ValueError):
                    flow.resolve_mode(args, defaults)

    def test_default_label_is_last_component(self) -> None:
        self.assertEqual(flow.default_label(Path("/mnt/BACKUP_B")), "BACKUP_B")


class TestRunBackupCommand(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        root = Path(tmp.name)
        self.source = root / "source"
        self.destination = root / TEST_LABEL
        self.source.mkdir()
        self.destination.mkdir()
        config = AppConfig(engine_command=(sys.executable,))
        patchers = (
            mock.patch.object(flow, "load_app_config", return_value=config),
            mock.patch.object(flow, "BackupOrchestrator"),
            mock.patch.object(flow, "confirm_mirror", return_value=True),
            mock.patch.object(flow.sys, "stdin"),
        )
        mocks = [patcher.start() for patcher in patchers]
        for patcher in patchers:
            self.addCleanup(patcher.stop)
        _, self.orchestrator_cls, self.prompt, self.stdin = mocks
        self.stdin.isatty.return_value = True

    def _args(self, **overrides) -> BackupArgs:
        values = dict(
            source=str(self.source),
            destination=str(self.destination),
            verify="never",
            quiet=True,
        )
        values.update(overrides)
        return BackupArgs(**values)

    def _attempt(self, status: AttemptStatus, **fields) -> BackupAttempt:
        attempt = BackupAttempt(
            source=str(self.source),
            destination=TEST_LABEL,
            mode=BackupMode(),
            started=TEST_STARTED,
            **fields,
        )
        attempt.finalize(status, finished=TEST_STARTED)
        return attempt

    def test_status_maps_to_exit_code(self) -> None:
        cases = (
            (AttemptStatus.OK, EXIT_OK),
            (AttemptStatus.OK_WITH_DIFFERENCES, EXIT_DIFFERENCES),
            (AttemptStatus.FAILED, EXIT_FAILED),
        )
        for status, expected in cases:
            with self.subTest(status=status):
                run = self.orchestrator_cls.return_value.run
                run.return_value = self._attempt(status, exit_code=8)
                with suppress_output():
                    code = flow.run_backup_command(self._args(assume_yes=True))
                self.assertEqual(code, expected)
                call = run.call_args
                self.assertEqual(call.args[0], self.source.resolve())
                self.assertEqual(call.args[2], TEST_LABEL)
                self.assertEqual(call.args[3], BackupMode(OutputMode.SILENT, VerifyMode.NEVER))
        self.prompt.assert_not_called()

    def test_declined_confirmation_cancels(self) -> None:
        self.prompt.return_value = False
        with suppress_output():
            code = flow.run_backup_command(self._args())
        self.assertEqual(code, EXIT_FAILED)
        self.orchestrator_cls.return_value.run.assert_not_called()

    def test_non_interactive_run_requires_yes(self) -> None:
        self.stdin.isatty.return_value = False
        with self.assertRaises(ValueError) as ctx:
            flow.run_backup_command(self._args())
        self.assertIn("--yes", str(ctx.exception))
        self.orchestrator_cls.return_value.run.assert_not_called()

    def test_precondition_failure_never_starts_engine(self) -> None:
        cases = (
            ("label", self._args(label="DATA", assume_yes=True)),
            (
                "nested",
                self._args(
                    destination=str(self.source / "inner"), label=TEST_LABEL, assume_yes=True
                ),
            ),
        )
        (self.source / "inner").mkdir()
        for name, args in cases:
            with self.subTest(name=name):
                with self.assertRaises(PreconditionError):
                    flow.run_backup_command(args)
        self.orchestrator_cls.assert_not_called()

    def test_ask_mode_without_terminal_disables_prompt_hook(self) -> None:
        self.stdin.isatty.return_value = False
        run = self.orchestrator_cls.return_value.run
        run.return_value = self._attempt(AttemptStatus.OK, exit_code=1)
        with suppress_output():
            code = flow.run_backup_command(self._args(verify="ask", assume_yes=True))
        self.assertEqual(code, EXIT_OK)
        hooks = run.call_args.kwargs["hooks"]
        self.assertIsNone(hooks.ask_verify)

    def test_write_errors_are_reported(self) -> None:
        run = self.orchestrator_cls.return_value.run
        run.return_value = self._attempt(
            AttemptStatus.OK, exit_code=1, write_errors=["history ledger: disk full"]
        )
        with mock.patch.object(flow, "_warn") as warn:
            with suppress_output():
                code = flow.run_backup_command(self._args(assume_yes=True))
        self.assertEqual(code, EXIT_OK)
        messages = [call.args[0] for call in warn.call_args_list]
        self.assertIn("could not record history ledger: disk full", messages)


if __name__ == "__main__":
    unittest.main()
