"""Top-level package for the replay recorder."""

from __future__ import annotations

import asyncio
from importlib import metadata
from typing import Optional, Sequence

try:
    __version__ = metadata.version("replay-recorder")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"

from .app.main import main


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Convenience wrapper that runs the async CLI entry point."""
    return asyncio.run(main(list(argv) if argv is not None else None))


__all__ = ["__version__", "main", "run"]
