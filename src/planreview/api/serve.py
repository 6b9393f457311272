"""Uvicorn server launcher.

Console scripts must point to a callable, not an ASGI app object.
"""

from __future__ import annotations

from typing import Annotated

import uvicorn

import typer

from planreview.config import load_settings


def main(
    host: Annotated[str | None, typer.Option(help="Bind host (overrides PLANREVIEW_HOST)")] = None,
    port: Annotated[int | None, typer.Option(help="Bind port (overrides PLANREVIEW_PORT)")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload (dev)")] = False,
) -> None:
    """Start the planreview API server."""

    settings = load_settings()
    uvicorn.run(
        "planreview.api.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    typer.run(main)
