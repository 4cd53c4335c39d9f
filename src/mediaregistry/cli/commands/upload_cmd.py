from __future__ import annotations

import argparse
from pathlib import Path

from mediaregistry.application.bootstrap import build_registry_service
from mediaregistry.application.services.registry_service import UploadedFile
from mediaregistry.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("upload", help="Upload a file to the remote store and index it")
    parser.add_argument("collection", help="Collection name (gallery, projects)")
    parser.add_argument("path", type=Path, help="Local file to upload")
    parser.add_argument("--title")
    parser.add_argument("--category")
    parser.add_argument("--description")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = build_registry_service(ctx.paths, ctx.settings)
    path = args.path.expanduser().resolve()
    metadata = {
        key: value
        for key, value in (
            ("title", args.title),
            ("category", args.category),
            ("description", args.description),
        )
        if value is not None
    }

    record = service.create_asset(
        args.collection,
        UploadedFile(path=path, filename=path.name, temporary=False),
        metadata,
    )

    ctx.console.print(f"[green]Uploaded[/green] {record.url}")
    if record.remote_id:
        ctx.console.print(f"Remote ID: {record.remote_id}")
    return 0
