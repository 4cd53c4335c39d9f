from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console

from mediaregistry.core.config import AppPaths, RegistrySettings


@dataclass(slots=True)
class CLIContext:
    paths: AppPaths
    settings: RegistrySettings
    console: Console
