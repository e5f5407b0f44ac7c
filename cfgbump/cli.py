"""cfgbump command-line interface."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cfgbump.adapters import default_provider
from cfgbump.config import DEFAULT_SETTLE_DELAY, RunConfig
from cfgbump.elevation import ensure_elevated
from cfgbump.errors import CfgBumpError, SnapshotError
from cfgbump.journal import RunJournal
from cfgbump.manager import AdapterManager
from cfgbump.models import AdapterRecord, VersionChange
from cfgbump.runner import recover_snapshot, run_session
from cfgbump.snapshot import SnapshotStore
from cfgbump.xml_version import VersionMutator

logger = logging.getLogger("cfgbump")

console = Console()


def _configure_logging(verbose: bool) -> None:
	logging.basicConfig(
		level=logging.DEBUG if verbose else logging.INFO,
		format="%(message)s",
		datefmt="[%X]",
		handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
		force=True,
	)


def _wait_for_key(change: VersionChange) -> None:
	console.print(
		f"[bold green]{change.key.display_path()}[/] is now [bold]{change.new}[/] (was {change.old})."
	)
	if sys.platform.startswith("win"):
		import msvcrt

		console.print("Press any key to bring the network back...")
		msvcrt.getwch()
	else:
		console.input("Press Enter to bring the network back...")


def _config_from_args(args: argparse.Namespace) -> RunConfig:
	return RunConfig.resolve(
		target=args.target,
		code=args.code,
		key=args.key,
		code_attribute=args.code_attr,
		key_attribute=args.key_attr,
		log_path=getattr(args, "log", None),
		snapshot_dir=getattr(args, "snapshot_dir", None),
		settle_delay=getattr(args, "settle_delay", None),
		elevate=not getattr(args, "no_elevate", False),
		confirm=not getattr(args, "yes", False),
	)


def _elevated(elevate: bool, argv: List[str]) -> Optional[int]:
	"""Return an exit code when this process should stop, else ``None``."""
	if not elevate:
		return None
	if ensure_elevated(argv):
		return None
	logger.info("Continuing in the elevated process")
	return 0


def _build_manager(config: RunConfig, store: SnapshotStore) -> AdapterManager:
	return AdapterManager(
		default_provider(),
		store,
		journal=RunJournal(config.log_path),
		settle_delay=config.settle_delay,
	)


def _cmd_bump(args: argparse.Namespace) -> int:
	config: RunConfig = args.config
	handoff = _elevated(config.elevate, args.argv)
	if handoff is not None:
		return handoff

	store = SnapshotStore.for_pid(directory=config.snapshot_dir)
	manager = _build_manager(config, store)
	confirm: Optional[Callable[[VersionChange], None]] = _wait_for_key if config.confirm else None
	outcome = run_session(config.target, config.key, manager, confirm=confirm)

	if outcome.change is not None:
		console.print(f"Version {outcome.change.old} -> [bold]{outcome.change.new}[/] in {config.target}")
	if outcome.restore is not None and not outcome.restore.ok:
		names = ", ".join(record.name for record in outcome.restore.failed)
		console.print(f"[bold red]Adapters not restored:[/] {names}")
	return 0


def _cmd_show(args: argparse.Namespace) -> int:
	config: RunConfig = args.config
	value = VersionMutator(config.target, config.key).read()
	if args.json:
		json.dump({"path": config.key.display_path(), "value": str(value)}, sys.stdout)
		sys.stdout.write("\n")
	else:
		console.print(f"{config.key.display_path()} = [bold]{value}[/]")
	return 0


def _render_adapters(records: List[AdapterRecord], title: str) -> None:
	table = Table(title=title, show_lines=False)
	for column in ("name", "index", "status", "mac"):
		table.add_column(column.upper())
	for record in records:
		table.add_row(record.name, str(record.interface_index), record.status.value, record.mac_address)
	console.print(table)


def _cmd_adapters(args: argparse.Namespace) -> int:
	records = default_provider().list_adapters()
	if not args.all:
		records = [record for record in records if record.status.is_active]
	if args.json:
		data: List[Dict[str, Any]] = [record.to_dict() for record in records]
		json.dump(data, sys.stdout, indent=2)
		sys.stdout.write("\n")
	else:
		_render_adapters(records, "Network adapters" if args.all else "Active network adapters")
	return 0


def _cmd_restore(args: argparse.Namespace) -> int:
	if args.snapshot:
		store = SnapshotStore.from_path(args.snapshot)
	else:
		store = SnapshotStore.for_pid(args.pid, args.snapshot_dir)
	if not store.exists():
		raise SnapshotError(f"no snapshot at {store.path}")
	handoff = _elevated(not args.no_elevate, args.argv)
	if handoff is not None:
		return handoff

	manager = AdapterManager(
		default_provider(),
		store,
		journal=RunJournal(args.log),
		settle_delay=args.settle_delay if args.settle_delay is not None else DEFAULT_SETTLE_DELAY,
	)
	report = recover_snapshot(manager)
	_render_adapters(list(report.restored), "Restored adapters")
	if not report.ok:
		names = ", ".join(record.name for record in report.failed)
		console.print(f"[bold red]Still down:[/] {names}")
		return 1
	return 0


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
	parser.add_argument("target", nargs="?", help="XML file to edit (default: $CFGBUMP_TARGET or config.xml)")
	parser.add_argument("--code", help="Value of the Other element's code attribute")
	parser.add_argument("--key", help="Value of the Data element's key attribute")
	parser.add_argument("--code-attr", dest="code_attr", help="Code attribute name (default: Code)")
	parser.add_argument("--key-attr", dest="key_attr", help="Key attribute name (default: Key)")


def _add_adapter_arguments(parser: argparse.ArgumentParser) -> None:
	parser.add_argument("--log", help="Path of the CSV run journal")
	parser.add_argument("--settle-delay", dest="settle_delay", type=float, help="Seconds to wait before checking an adapter came back up")
	parser.add_argument("--no-elevate", dest="no_elevate", action="store_true", help="Do not request administrator rights")


def _build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="cfgbump",
		description="Bump a version number in an XML config while the network is down",
	)
	parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
	sub = parser.add_subparsers(dest="command", required=True)

	bump = sub.add_parser("bump", help="Disable adapters, increment the version, restore adapters")
	_add_target_arguments(bump)
	_add_adapter_arguments(bump)
	bump.add_argument("--snapshot-dir", dest="snapshot_dir", help="Directory for the adapter snapshot file")
	bump.add_argument("-y", "--yes", action="store_true", help="Restore adapters without waiting for a keypress")
	bump.set_defaults(handler=_cmd_bump, needs_config=True)

	show = sub.add_parser("show", help="Print the current version value")
	_add_target_arguments(show)
	show.add_argument("--json", action="store_true", help="Output JSON")
	show.set_defaults(handler=_cmd_show, needs_config=True)

	adapters = sub.add_parser("adapters", help="List network adapters")
	adapters.add_argument("--all", action="store_true", help="Include adapters that are not up")
	adapters.add_argument("--json", action="store_true", help="Output JSON")
	adapters.set_defaults(handler=_cmd_adapters)

	restore = sub.add_parser("restore", help="Re-enable adapters from a leftover snapshot file")
	source = restore.add_mutually_exclusive_group(required=True)
	source.add_argument("--pid", type=int, help="Process id of the run that left the snapshot")
	source.add_argument("--snapshot", help="Path of the snapshot file")
	restore.add_argument("--snapshot-dir", dest="snapshot_dir", help="Directory to look for --pid snapshots")
	_add_adapter_arguments(restore)
	restore.set_defaults(handler=_cmd_restore)

	return parser


def main(argv: Optional[List[str]] = None) -> int:
	raw_argv = list(sys.argv[1:] if argv is None else argv)
	parser = _build_parser()
	args = parser.parse_args(raw_argv)
	args.argv = raw_argv
	args.config = None
	if getattr(args, "needs_config", False):
		try:
			args.config = _config_from_args(args)
		except ValueError as exc:
			parser.error(str(exc))
	_configure_logging(args.verbose)
	try:
		return args.handler(args)
	except KeyboardInterrupt:
		logger.warning("Interrupted")
		return 130
	except CfgBumpError as exc:
		logger.error("%s", exc)
		return 1
	except Exception:
		logger.exception("Unexpected failure")
		return 1


if __name__ == "__main__":
	sys.exit(main())
