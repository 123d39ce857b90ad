"""Run the hashserve HTTP server."""

import logging

import uvicorn

from .app import create_app
from .config import Settings


def main():
    logging.basicConfig(level=logging.INFO)
    settings = Settings.from_env()
    app = create_app(settings)
    logging.getLogger(__name__).info("Server listening on port %d...", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
