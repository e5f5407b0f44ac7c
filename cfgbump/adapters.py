"""OS adapter providers behind a small capability interface."""
from __future__ import annotations

import json
import logging
import shutil
import socket
import subprocess
import sys
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

import psutil

from cfgbump.errors import AdapterError
from cfgbump.models import AdapterRecord, AdapterStatus

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 60.0


@runtime_checkable
class AdapterProvider(Protocol):
	"""What the manager needs from the operating system."""

	def list_adapters(self) -> List[AdapterRecord]: ...

	def disable(self, record: AdapterRecord) -> None: ...

	def enable(self, record: AdapterRecord) -> None: ...

	def enable_by_index(self, record: AdapterRecord) -> None: ...

	def status_of(self, record: AdapterRecord) -> AdapterStatus: ...


def _run(argv: Sequence[str], *, adapter: Optional[str] = None, timeout: float = DEFAULT_COMMAND_TIMEOUT) -> str:
	logger.debug("Running %s", " ".join(argv))
	try:
		result = subprocess.run(
			list(argv),
			capture_output=True,
			text=True,
			check=True,
			timeout=timeout,
		)
	except subprocess.CalledProcessError as exc:
		raise AdapterError(
			f"{argv[0]} exited with status {exc.returncode}",
			adapter=adapter,
			stderr=exc.stderr or "",
		) from exc
	except (OSError, subprocess.TimeoutExpired) as exc:
		raise AdapterError(f"could not run {argv[0]}: {exc}", adapter=adapter) from exc
	return result.stdout


def _ps_quote(value: str) -> str:
	return "'" + value.replace("'", "''") + "'"


class WindowsAdapterProvider:
	"""Drives the NetAdapter cmdlets through PowerShell."""

	def __init__(self, executable: Optional[str] = None, *, timeout: float = DEFAULT_COMMAND_TIMEOUT) -> None:
		self.executable = executable or shutil.which("powershell") or "powershell.exe"
		self.timeout = timeout

	def list_adapters(self) -> List[AdapterRecord]:
		output = self._powershell(
			"Get-NetAdapter | Select-Object Name,InterfaceIndex,Status,MacAddress | ConvertTo-Json -Compress"
		)
		return [self._to_record(item) for item in self._decode(output)]

	def disable(self, record: AdapterRecord) -> None:
		self._powershell(
			f"Disable-NetAdapter -Name {_ps_quote(record.name)} -Confirm:$false",
			adapter=record.name,
		)

	def enable(self, record: AdapterRecord) -> None:
		self._powershell(
			f"Enable-NetAdapter -Name {_ps_quote(record.name)} -Confirm:$false",
			adapter=record.name,
		)

	def enable_by_index(self, record: AdapterRecord) -> None:
		self._powershell(
			f"Get-NetAdapter -InterfaceIndex {int(record.interface_index)} | Enable-NetAdapter -Confirm:$false",
			adapter=record.name,
		)

	def status_of(self, record: AdapterRecord) -> AdapterStatus:
		output = self._powershell(
			f"(Get-NetAdapter -Name {_ps_quote(record.name)}).Status",
			adapter=record.name,
		)
		return AdapterStatus.parse(output)

	def _powershell(self, script: str, *, adapter: Optional[str] = None) -> str:
		# cmdlet errors are non-terminating unless told otherwise, and would exit 0
		command = f"$ErrorActionPreference = 'Stop'; {script}"
		argv = [self.executable, "-NoProfile", "-NonInteractive", "-Command", command]
		return _run(argv, adapter=adapter, timeout=self.timeout)

	@staticmethod
	def _decode(output: str) -> List[Dict[str, Any]]:
		text = output.strip()
		if not text:
			return []
		try:
			data = json.loads(text)
		except json.JSONDecodeError as exc:
			raise AdapterError(f"unexpected Get-NetAdapter output: {exc}") from exc
		# ConvertTo-Json emits a bare object when there is a single adapter
		if isinstance(data, dict):
			return [data]
		return list(data)

	@staticmethod
	def _to_record(item: Dict[str, Any]) -> AdapterRecord:
		return AdapterRecord(
			name=str(item.get("Name")),
			interface_index=int(item.get("InterfaceIndex") or -1),
			status=AdapterStatus.parse(item.get("Status")),
			mac_address=str(item.get("MacAddress") or ""),
		)


class LinuxAdapterProvider:
	"""Uses psutil for discovery and ``ip link`` for state changes."""

	def __init__(self, executable: Optional[str] = None, *, timeout: float = DEFAULT_COMMAND_TIMEOUT, include_loopback: bool = False) -> None:
		self.executable = executable or shutil.which("ip") or "ip"
		self.timeout = timeout
		self.include_loopback = include_loopback

	def list_adapters(self) -> List[AdapterRecord]:
		stats = psutil.net_if_stats()
		addrs = psutil.net_if_addrs()
		records: List[AdapterRecord] = []
		for name, stat in sorted(stats.items()):
			if name == "lo" and not self.include_loopback:
				continue
			records.append(
				AdapterRecord(
					name=name,
					interface_index=self._index_of(name),
					status=AdapterStatus.UP if stat.isup else AdapterStatus.DOWN,
					mac_address=self._mac_of(addrs.get(name, [])),
				)
			)
		return records

	def disable(self, record: AdapterRecord) -> None:
		self._ip_link(record.name, "down")

	def enable(self, record: AdapterRecord) -> None:
		self._ip_link(record.name, "up")

	def enable_by_index(self, record: AdapterRecord) -> None:
		try:
			name = socket.if_indextoname(record.interface_index)
		except (OSError, OverflowError) as exc:
			raise AdapterError(f"no interface with index {record.interface_index}", adapter=record.name) from exc
		self._ip_link(name, "up", adapter=record.name)

	def status_of(self, record: AdapterRecord) -> AdapterStatus:
		stat = psutil.net_if_stats().get(record.name)
		if stat is None:
			return AdapterStatus.NOT_PRESENT
		return AdapterStatus.UP if stat.isup else AdapterStatus.DOWN

	def _ip_link(self, name: str, state: str, *, adapter: Optional[str] = None) -> None:
		_run(
			[self.executable, "link", "set", "dev", name, state],
			adapter=adapter or name,
			timeout=self.timeout,
		)

	@staticmethod
	def _index_of(name: str) -> int:
		try:
			return socket.if_nametoindex(name)
		except OSError:
			return -1

	@staticmethod
	def _mac_of(addresses: Sequence[Any]) -> str:
		for address in addresses:
			if address.family == psutil.AF_LINK:
				return str(address.address)
		return ""


def default_provider() -> AdapterProvider:
	if sys.platform.startswith("win"):
		return WindowsAdapterProvider()
	if sys.platform.startswith("linux"):
		return LinuxAdapterProvider()
	raise AdapterError(f"no adapter provider for platform {sys.platform!r}")


__all__ = [
	"AdapterProvider",
	"WindowsAdapterProvider",
	"LinuxAdapterProvider",
	"default_provider",
]
