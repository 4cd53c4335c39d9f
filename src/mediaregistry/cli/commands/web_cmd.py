from __future__ import annotations

import argparse
import os

from mediaregistry.cli.context import CLIContext
from mediaregistry.web.app import create_app


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("web", help="Run the HTTP API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=4000)
    parser.add_argument("--reload", action="store_true")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    try:
        import uvicorn
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("uvicorn is required for web mode. Install project dependencies.") from exc

    if args.reload:
        # The reloader imports the app in a fresh process, so pass paths via the environment.
        os.environ["MEDIAREG_HOME"] = str(ctx.paths.registry_dir)
        uvicorn.run(
            "mediaregistry.web.app:create_app_from_env",
            factory=True,
            host=args.host,
            port=args.port,
            reload=True,
        )
        return 0

    app = create_app(ctx.paths, ctx.settings)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0
