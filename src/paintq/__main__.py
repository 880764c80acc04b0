"""Entry point for running PaintQ via ``python -m paintq``."""

from __future__ import annotations

import uvicorn

from .config import configure_logging, settings


def main() -> None:
    """Start the FastAPI-powered PaintQ web server."""

    configure_logging()
    uvicorn.run("paintq.ui:app", host=settings.HOST, port=settings.PORT, reload=False)


if __name__ == "__main__":
    main()
