from __future__ import annotations

import argparse

from mediaregistry.application.bootstrap import build_registry_service
from mediaregistry.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("delete", help="Remove an asset from the index and the remote store")
    parser.add_argument("collection", help="Collection name (gallery, projects)")
    parser.add_argument("identifier", help="Index position, remote ID or URL of the asset")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = build_registry_service(ctx.paths, ctx.settings)
    removed = service.delete_asset(args.collection, args.identifier)
    ctx.console.print(f"[green]Deleted[/green] {removed.url}")
    return 0
