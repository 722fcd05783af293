#!/usr/bin/env python3
"""
pixelmint CLI

Paint a 32x32 canvas and publish it.

Usage:
  pixelmint show
  pixelmint paint <x> <y> <color>
  pixelmint clear
  pixelmint export <out.png> [--scale N]
  pixelmint identity create <username> [--display-name NAME]
  pixelmint identity list
  pixelmint publish --identity <username> [--store-dir DIR | --store-url URL] [--yes]
  pixelmint serve-store [--host H] [--port P] [--store-dir DIR]
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .encoder import Encoder
from .errors import EncodingError
from .identity import IdentityStore, LocalIdentityProvider
from .ledger import Ledger, LedgerCommitter
from .pipeline import PhaseEvent, PipelineConfig, PublicationPipeline
from .raster import DEFAULT_COLOR, STORAGE_KEY, RasterStore
from .storage import ContentStore, StoreAssetPublisher, StoreClient, StoreRecordPublisher, StoreServer

DEFAULT_HOME = Path.home() / ".pixelmint"


def _home(args) -> Path:
    return Path(args.home) if args.home else DEFAULT_HOME


def _canvas(args) -> RasterStore:
    path = Path(args.canvas) if args.canvas else _home(args) / f"{STORAGE_KEY}.json"
    return RasterStore(path)


def cmd_show(args):
    """Print a canvas summary."""
    canvas = _canvas(args)
    raster = canvas.raster
    painted = sum(1 for color in raster.pixels if color != DEFAULT_COLOR)
    print(f"{raster.width}x{raster.height} pixels ({painted} painted)")
    print(f"Canvas file: {canvas.path}")


def cmd_paint(args):
    """Paint one cell."""
    canvas = _canvas(args)
    try:
        changed = canvas.paint(args.x, args.y, args.color)
    except IndexError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"({args.x}, {args.y}) = {args.color}" + ("" if changed else " (unchanged)"))


def cmd_clear(args):
    """Reset the canvas to blank."""
    canvas = _canvas(args)
    canvas.clear()
    print("Canvas cleared")


def cmd_export(args):
    """Write the canvas to a PNG file."""
    canvas = _canvas(args)
    try:
        asset = Encoder(scale=args.scale).encode(canvas.snapshot(), name=Path(args.output).stem)
    except EncodingError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)
    Path(args.output).write_bytes(asset.data)
    print(f"Exported {asset.size} bytes to {args.output}")


def cmd_identity(args):
    """Create or list identities."""
    store = IdentityStore(_home(args) / "identities")
    if args.identity_command == "create":
        try:
            identity = store.create(args.username, args.display_name)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Created identity {identity.username}")
        print(f"Address: {identity.address}")
    else:
        for identity in store.list():
            print(f"{identity.username}\t{identity.display_name}\t{identity.address}")


def _confirm(payload) -> bool:
    print("\nSignature request:")
    print(json.dumps(payload, indent=2))
    answer = input("Approve? [y/N] ").strip().lower()
    return answer in ("y", "yes")


def cmd_publish(args):
    """Run the publication pipeline for the current canvas."""
    home = _home(args)
    identity = IdentityStore(home / "identities").get(args.identity)
    if identity is None:
        print(f"Error: unknown identity {args.identity!r} (create one with 'identity create')", file=sys.stderr)
        sys.exit(1)

    config = PipelineConfig.from_file(args.config) if args.config else PipelineConfig()

    if args.store_url:
        blob_store = StoreClient(args.store_url)
    else:
        blob_store = ContentStore(Path(args.store_dir) if args.store_dir else home / "store")

    provider = LocalIdentityProvider(identity, approve=None if args.yes else _confirm)
    ledger = Ledger(Path(args.ledger_dir) if args.ledger_dir else home / "ledger")

    def show(event: PhaseEvent):
        print(f"  {event.message}")

    pipeline = PublicationPipeline(
        asset_publisher=StoreAssetPublisher(blob_store),
        record_publisher=StoreRecordPublisher(blob_store),
        committer=LedgerCommitter(ledger),
        identity=provider,
        config=config,
        on_event=show,
    )

    result = asyncio.run(pipeline.run(_canvas(args).snapshot()))

    if not result.ok:
        print(f"\n{result.message}", file=sys.stderr)
        sys.exit(1)

    confirmation = result.confirmation
    print("\n=== Published ===")
    print(f"Name: {confirmation.name}")
    print(f"Registration: {confirmation.registration_id}")
    print(f"Image: {confirmation.image}")
    print(f"Metadata: {confirmation.record}")


def cmd_serve_store(args):
    """Serve a content store over HTTP."""
    server = StoreServer(
        store_dir=Path(args.store_dir) if args.store_dir else _home(args) / "store",
        host=args.host,
        port=args.port,
    )
    server.start()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixelmint",
        description="pixelmint - Paint and publish pixel art",
    )
    parser.add_argument("--home", help=f"State directory (default: {DEFAULT_HOME})")
    parser.add_argument("--canvas", help="Canvas file (default: <home>/pixel-canvas-v1.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("show", help="Show canvas summary")

    paint_parser = subparsers.add_parser("paint", help="Paint one cell")
    paint_parser.add_argument("x", type=int, help="Column (0-31)")
    paint_parser.add_argument("y", type=int, help="Row (0-31)")
    paint_parser.add_argument("color", help="Color, e.g. '#ff0000' or 'red'")

    subparsers.add_parser("clear", help="Reset the canvas")

    export_parser = subparsers.add_parser("export", help="Export the canvas as PNG")
    export_parser.add_argument("output", help="Output PNG file")
    export_parser.add_argument("--scale", type=int, default=20, help="Pixels per cell (default: 20)")

    identity_parser = subparsers.add_parser("identity", help="Manage signing identities")
    identity_sub = identity_parser.add_subparsers(dest="identity_command", required=True)
    create_parser = identity_sub.add_parser("create", help="Create an identity")
    create_parser.add_argument("username")
    create_parser.add_argument("--display-name", help="Human-readable name")
    identity_sub.add_parser("list", help="List identities")

    publish_parser = subparsers.add_parser("publish", help="Publish the canvas")
    publish_parser.add_argument("--identity", required=True, help="Identity username")
    store_group = publish_parser.add_mutually_exclusive_group()
    store_group.add_argument("--store-dir", help="Local content store directory")
    store_group.add_argument("--store-url", help="Remote store server URL")
    publish_parser.add_argument("--ledger-dir", help="Ledger directory")
    publish_parser.add_argument("--config", help="Pipeline config YAML file")
    publish_parser.add_argument("--yes", "-y", action="store_true",
                                help="Approve the signature request without prompting")

    serve_parser = subparsers.add_parser("serve-store", help="Serve a content store over HTTP")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8090, help="Port to bind to")
    serve_parser.add_argument("--store-dir", help="Store directory")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    commands = {
        "show": cmd_show,
        "paint": cmd_paint,
        "clear": cmd_clear,
        "export": cmd_export,
        "identity": cmd_identity,
        "publish": cmd_publish,
        "serve-store": cmd_serve_store,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)
    command(args)


if __name__ == "__main__":
    main()
