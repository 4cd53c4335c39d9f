from __future__ import annotations

import argparse

from mediaregistry.application.bootstrap import build_registry_service
from mediaregistry.cli.context import CLIContext
from mediaregistry.core.files import ensure_directory


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("init", help="Create registry data directories and empty indexes")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    for path in (ctx.paths.registry_dir, ctx.paths.index_dir, ctx.paths.uploads_dir):
        ensure_directory(path)

    service = build_registry_service(ctx.paths, ctx.settings)
    created = service.initialize()

    if created:
        for name in created:
            ctx.console.print(f"[green]Created[/green] {service.index.path_for(name)}")
    else:
        ctx.console.print("[yellow]Indexes already existed[/yellow]")

    ctx.console.print(f"[green]Registry ready[/green] {ctx.paths.registry_dir}")
    return 0
