"""Tests for the PowerShell and ip-link providers with the OS patched out."""
from __future__ import annotations

import json
import subprocess
import unittest
from types import SimpleNamespace
from unittest.mock import patch

import psutil

from cfgbump.adapters import LinuxAdapterProvider, WindowsAdapterProvider, default_provider
from cfgbump.errors import AdapterError
from cfgbump.models import AdapterRecord, AdapterStatus

ETHERNET = AdapterRecord("Ethernet", 4, AdapterStatus.UP, "00-11-22-33-44-55")


def _completed(stdout: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr="")


class WindowsAdapterProviderTest(unittest.TestCase):
    def setUp(self) -> None:
        self.provider = WindowsAdapterProvider("powershell.exe")

    def test_list_adapters_parses_json(self) -> None:
        payload = [
            {"Name": "Ethernet", "InterfaceIndex": 4, "Status": "Up", "MacAddress": "00-11-22-33-44-55"},
            {"Name": "Wi-Fi", "InterfaceIndex": 7, "Status": "Disconnected", "MacAddress": None},
        ]
        with patch("cfgbump.adapters.subprocess.run", return_value=_completed(json.dumps(payload))) as run:
            records = self.provider.list_adapters()

        self.assertEqual(records[0], ETHERNET)
        self.assertEqual(records[1].status, AdapterStatus.DISCONNECTED)
        self.assertEqual(records[1].mac_address, "")
        argv = run.call_args.args[0]
        self.assertEqual(argv[:4], ["powershell.exe", "-NoProfile", "-NonInteractive", "-Command"])
        self.assertIn("Get-NetAdapter", argv[4])

    def test_single_adapter_is_a_bare_object(self) -> None:
        payload = {"Name": "Ethernet", "InterfaceIndex": 4, "Status": "Up", "MacAddress": "00-11-22-33-44-55"}
        with patch("cfgbump.adapters.subprocess.run", return_value=_completed(json.dumps(payload))):
            self.assertEqual(self.provider.list_adapters(), [ETHERNET])

    def test_no_adapters(self) -> None:
        with patch("cfgbump.adapters.subprocess.run", return_value=_completed("")):
            self.assertEqual(self.provider.list_adapters(), [])

    def test_commands_quote_names(self) -> None:
        record = AdapterRecord("Bob's NIC", 9, AdapterStatus.UP)
        with patch("cfgbump.adapters.subprocess.run", return_value=_completed()) as run:
            self.provider.disable(record)
            self.provider.enable(record)
            self.provider.enable_by_index(record)
        scripts = [call.args[0][4] for call in run.call_args_list]
        self.assertTrue(scripts[0].endswith("Disable-NetAdapter -Name 'Bob''s NIC' -Confirm:$false"))
        self.assertTrue(scripts[1].endswith("Enable-NetAdapter -Name 'Bob''s NIC' -Confirm:$false"))
        self.assertTrue(scripts[2].endswith("Get-NetAdapter -InterfaceIndex 9 | Enable-NetAdapter -Confirm:$false"))

    def test_status_of(self) -> None:
        with patch("cfgbump.adapters.subprocess.run", return_value=_completed("Disabled\r\n")):
            self.assertEqual(self.provider.status_of(ETHERNET), AdapterStatus.DISABLED)

    def test_command_failure_raises_adapter_error(self) -> None:
        failure = subprocess.CalledProcessError(1, ["powershell.exe"], stderr="Access is denied.")
        with patch("cfgbump.adapters.subprocess.run", side_effect=failure):
            with self.assertRaises(AdapterError) as ctx:
                self.provider.disable(ETHERNET)
        self.assertEqual(ctx.exception.adapter, "Ethernet")
        self.assertIn("Access is denied.", str(ctx.exception))

    def test_missing_executable(self) -> None:
        with patch("cfgbump.adapters.subprocess.run", side_effect=FileNotFoundError("powershell.exe")):
            with self.assertRaises(AdapterError):
                self.provider.list_adapters()


class LinuxAdapterProviderTest(unittest.TestCase):
    def setUp(self) -> None:
        self.provider = LinuxAdapterProvider("/sbin/ip")

    def test_list_adapters_skips_loopback(self) -> None:
        stats = {
            "lo": SimpleNamespace(isup=True),
            "eth0": SimpleNamespace(isup=True),
            "wlan0": SimpleNamespace(isup=False),
        }
        addrs = {"eth0": [SimpleNamespace(family=psutil.AF_LINK, address="aa:bb:cc:dd:ee:ff")]}
        with patch("cfgbump.adapters.psutil.net_if_stats", return_value=stats), \
                patch("cfgbump.adapters.psutil.net_if_addrs", return_value=addrs), \
                patch("cfgbump.adapters.socket.if_nametoindex", side_effect=lambda name: {"eth0": 2, "wlan0": 3}[name]):
            records = self.provider.list_adapters()

        self.assertEqual(
            records,
            [
                AdapterRecord("eth0", 2, AdapterStatus.UP, "aa:bb:cc:dd:ee:ff"),
                AdapterRecord("wlan0", 3, AdapterStatus.DOWN, ""),
            ],
        )

    def test_link_state_changes(self) -> None:
        record = AdapterRecord("eth0", 2, AdapterStatus.UP)
        with patch("cfgbump.adapters.subprocess.run", return_value=_completed()) as run, \
                patch("cfgbump.adapters.socket.if_indextoname", return_value="eth0"):
            self.provider.disable(record)
            self.provider.enable(record)
            self.provider.enable_by_index(record)
        argvs = [call.args[0] for call in run.call_args_list]
        self.assertEqual(argvs[0], ["/sbin/ip", "link", "set", "dev", "eth0", "down"])
        self.assertEqual(argvs[1], ["/sbin/ip", "link", "set", "dev", "eth0", "up"])
        self.assertEqual(argvs[2], argvs[1])

    def test_enable_by_unknown_index(self) -> None:
        with patch("cfgbump.adapters.socket.if_indextoname", side_effect=OSError("no such device")):
            with self.assertRaises(AdapterError):
                self.provider.enable_by_index(AdapterRecord("eth9", 99))

    def test_status_of_vanished_adapter(self) -> None:
        with patch("cfgbump.adapters.psutil.net_if_stats", return_value={}):
            self.assertEqual(self.provider.status_of(AdapterRecord("eth0", 2)), AdapterStatus.NOT_PRESENT)


class DefaultProviderTest(unittest.TestCase):
    def test_platform_selection(self) -> None:
        with patch("cfgbump.adapters.sys.platform", "win32"):
            self.assertIsInstance(default_provider(), WindowsAdapterProvider)
        with patch("cfgbump.adapters.sys.platform", "linux"):
            self.assertIsInstance(default_provider(), LinuxAdapterProvider)
        with patch("cfgbump.adapters.sys.platform", "darwin"):
            with self.assertRaises(AdapterError):
                default_provider()


if __name__ == "__main__":
    unittest.main()
