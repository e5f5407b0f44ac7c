"""End-to-end CLI tests with the adapter provider replaced by a fake."""
from __future__ import annotations

import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from cfgbump import cli
from cfgbump.errors import ElevationError
from cfgbump.models import AdapterSnapshot, AdapterStatus
from cfgbump.snapshot import SnapshotStore

from tests.fakes import VERSION_XML, three_adapters


class CliTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.target = self.dir / "settings.xml"
        self.target.write_text(VERSION_XML.format(value="41"), encoding="utf-8")
        self.provider = three_adapters()
        patcher = patch("cfgbump.cli.default_provider", return_value=self.provider)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _bump_args(self, *extra: str) -> list:
        return [
            "bump",
            str(self.target),
            "--code", "APP",
            "--key", "Version",
            "--log", str(self.dir / "journal.csv"),
            "--snapshot-dir", str(self.dir),
            "--settle-delay", "0",
            "--no-elevate",
            *extra,
        ]

    def test_bump_waits_for_key_then_restores(self) -> None:
        with patch("cfgbump.cli._wait_for_key") as gate:
            code = cli.main(self._bump_args())
        self.assertEqual(code, 0)
        gate.assert_called_once()
        self.assertEqual(gate.call_args.args[0].new, "42")
        self.assertIn(">42<", self.target.read_text(encoding="utf-8"))
        self.assertEqual(self.provider.status["Ethernet"], AdapterStatus.UP)
        self.assertEqual(list(self.dir.glob("cfgbump-adapters-*.json")), [])
        self.assertTrue((self.dir / "journal.csv").exists())

    def test_yes_skips_the_gate(self) -> None:
        with patch("cfgbump.cli._wait_for_key") as gate:
            self.assertEqual(cli.main(self._bump_args("--yes")), 0)
        gate.assert_not_called()

    def test_unparsable_node_exits_non_zero_and_restores(self) -> None:
        self.target.write_text(VERSION_XML.format(value="abc"), encoding="utf-8")
        self.assertEqual(cli.main(self._bump_args("--yes")), 1)
        self.assertIn(("disable", "Ethernet"), self.provider.calls)
        self.assertEqual(self.provider.status["Ethernet"], AdapterStatus.UP)

    def test_missing_file_exits_before_adapters(self) -> None:
        self.target.unlink()
        self.assertEqual(cli.main(self._bump_args("--yes")), 1)
        self.assertEqual(self.provider.calls, [])

    def test_elevation_failure_exits_before_adapters(self) -> None:
        args = [arg for arg in self._bump_args("--yes") if arg != "--no-elevate"]
        with patch("cfgbump.cli.ensure_elevated", side_effect=ElevationError("denied")):
            self.assertEqual(cli.main(args), 1)
        self.assertEqual(self.provider.calls, [])

    def test_elevated_relaunch_hands_off(self) -> None:
        args = [arg for arg in self._bump_args("--yes") if arg != "--no-elevate"]
        with patch("cfgbump.cli.ensure_elevated", return_value=False) as ensure:
            self.assertEqual(cli.main(args), 0)
        self.assertEqual(ensure.call_args.args[0], args)
        self.assertEqual(self.provider.calls, [])

    def test_missing_key_is_a_usage_error(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            with self.assertRaises(SystemExit) as ctx:
                cli.main(["bump", str(self.target), "--code", "APP", "--no-elevate"])
        self.assertEqual(ctx.exception.code, 2)

    def test_show_json(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = cli.main(["show", str(self.target), "--code", "APP", "--key", "Version", "--json"])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(buffer.getvalue())["value"], "41")

    def test_show_value_past_int_conversion_limit(self) -> None:
        self.target.write_text(VERSION_XML.format(value="9" * 5000), encoding="utf-8")
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = cli.main(["show", str(self.target), "--code", "APP", "--key", "Version", "--json"])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(buffer.getvalue())["value"], "9" * 5000)

    def test_runtime_value_error_is_not_a_usage_error(self) -> None:
        with patch("cfgbump.cli.VersionMutator.read", side_effect=ValueError("corrupt")):
            code = cli.main(["show", str(self.target), "--code", "APP", "--key", "Version"])
        self.assertEqual(code, 1)

    def test_negative_settle_delay_is_a_usage_error(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            cli.main(self._bump_args("--settle-delay", "-1"))
        self.assertEqual(ctx.exception.code, 2)
        self.assertEqual(self.provider.calls, [])

    def test_adapters_json_lists_active_only(self) -> None:
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            self.assertEqual(cli.main(["adapters", "--json"]), 0)
        self.assertEqual([item["name"] for item in json.loads(buffer.getvalue())], ["Ethernet", "Wi-Fi"])

    def test_restore_from_leftover_snapshot(self) -> None:
        records = [record for record in self.provider.list_adapters() if record.status.is_active]
        SnapshotStore.for_pid(555, self.dir).save(AdapterSnapshot.of(records, pid=555))
        for record in records:
            self.provider.disable(record)

        code = cli.main([
            "restore", "--pid", "555", "--snapshot-dir", str(self.dir),
            "--settle-delay", "0", "--no-elevate",
        ])

        self.assertEqual(code, 0)
        self.assertEqual(self.provider.status["Wi-Fi"], AdapterStatus.UP)
        self.assertFalse((self.dir / "cfgbump-adapters-555.json").exists())

    def test_restore_without_snapshot(self) -> None:
        code = cli.main(["restore", "--snapshot", str(self.dir / "nope.json"), "--no-elevate"])
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
