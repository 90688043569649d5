from __future__ import annotations

import argparse
import json
import logging

from .app import PosApp, build_app
from .config import ConfigError, load_config
from .console import KioskConsole
from .exceptions import StoreError
from .feedback import ConsoleNotifier
from .logging import configure_logging, log_event

logger = logging.getLogger(__name__)


def _open_app(args: argparse.Namespace) -> PosApp:
    config = load_config(args.env_file)
    configure_logging(config.log_level)
    answer = "y" if getattr(args, "yes", False) else "n"
    notifier = ConsoleNotifier() if args.command == "kiosk" else ConsoleNotifier(input_func=lambda _prompt: answer)
    app = build_app(config, notifier)
    if args.command != "kiosk":
        app.start()
        if not app.is_ready:
            raise StoreError(code="SIGN_IN_REQUIRED", message="Sign in from the kiosk before running this command")
    return app


def cmd_kiosk(args: argparse.Namespace) -> None:
    KioskConsole(_open_app(args)).run()


def cmd_inventory(args: argparse.Namespace) -> None:
    app = _open_app(args)
    items = {name: item.model_dump(mode="json", exclude={"name"}) for name, item in app.inventory.snapshot().items()}
    print(json.dumps(items, indent=2, ensure_ascii=False))


def cmd_history(args: argparse.Namespace) -> None:
    app = _open_app(args)
    rows = [record.model_dump(mode="json", by_alias=True) for record in app.history.records]
    print(json.dumps(rows, indent=2, ensure_ascii=False))


def cmd_add_item(args: argparse.Namespace) -> None:
    app = _open_app(args)
    if not app.inventory.add_item(args.name, args.price, args.quantity, app.owner):
        raise SystemExit(1)


def cmd_export(args: argparse.Namespace) -> None:
    app = _open_app(args)
    include_timestamp = app.config.export_timestamps and not args.no_timestamp
    path = app.history.write_export(args.out, app.owner, include_timestamp=include_timestamp)
    if path is None:
        raise SystemExit(1)
    print(path)


def cmd_clear_history(args: argparse.Namespace) -> None:
    app = _open_app(args)
    if not app.history.clear(app.owner):
        raise SystemExit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="merch-pos", description="Merchandise point-of-sale kiosk")
    parser.add_argument("--env-file", default=None)
    subparsers = parser.add_subparsers(dest="command")

    kiosk_parser = subparsers.add_parser("kiosk", help="interactive kiosk (default)")
    kiosk_parser.set_defaults(func=cmd_kiosk)

    inventory_parser = subparsers.add_parser("inventory", help="print inventory as JSON")
    inventory_parser.set_defaults(func=cmd_inventory)

    history_parser = subparsers.add_parser("history", help="print sales history as JSON")
    history_parser.set_defaults(func=cmd_history)

    add_parser = subparsers.add_parser("add-item", help="add an inventory item")
    add_parser.add_argument("--name", required=True)
    add_parser.add_argument("--price", required=True)
    add_parser.add_argument("--quantity", required=True)
    add_parser.set_defaults(func=cmd_add_item)

    export_parser = subparsers.add_parser("export", help="write sales-history.csv")
    export_parser.add_argument("--out", default=".")
    export_parser.add_argument("--no-timestamp", action="store_true")
    export_parser.set_defaults(func=cmd_export)

    clear_parser = subparsers.add_parser("clear-history", help="delete all sales history")
    clear_parser.add_argument("--yes", action="store_true", help="confirm the deletion")
    clear_parser.set_defaults(func=cmd_clear_history)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "kiosk"
        args.func = cmd_kiosk
    try:
        args.func(args)
    except ConfigError as exc:
        print(json.dumps({"error": "CONFIG_ERROR", "message": str(exc)}, indent=2))
        raise SystemExit(2) from exc
    except StoreError as exc:
        log_event(logger, {"module": "cli", "action": args.command, "outcome": "error", "code": exc.code}, level=logging.ERROR)
        print(json.dumps({"error": exc.code, "message": exc.message}, indent=2))
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
