from __future__ import annotations

import argparse
from datetime import datetime, timezone

from rich.table import Table

from mediaregistry.application.bootstrap import build_registry_service
from mediaregistry.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("list", help="List the reconciled view of a collection")
    parser.add_argument("collection", help="Collection name (gallery, projects)")
    parser.add_argument("--limit", type=int, default=50)
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = build_registry_service(ctx.paths, ctx.settings)
    records = service.read_collection(args.collection)
    shown = records[: max(args.limit, 0)]

    table = Table(title=f"{args.collection} ({len(records)})")
    table.add_column("Uploaded")
    table.add_column("Remote ID", overflow="fold")
    table.add_column("URL", overflow="fold")
    table.add_column("Details", overflow="fold")

    for record in shown:
        uploaded = datetime.fromtimestamp(record.timestamp / 1000, tz=timezone.utc)
        details = ", ".join(f"{key}={value}" for key, value in record.extra.items())
        table.add_row(
            uploaded.strftime("%Y-%m-%d %H:%M:%S"),
            record.remote_id or "-",
            record.url,
            details,
        )

    ctx.console.print(table)
    return 0
