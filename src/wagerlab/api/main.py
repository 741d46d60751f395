"""CLI entrypoint to run the WagerLab FastAPI server."""

from __future__ import annotations

import logging
import os

import uvicorn

from wagerlab.db.database import init_db


def main() -> None:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("wagerlab.api.server:app", host=os.getenv("HOST", "127.0.0.1"), port=port, reload=False)


if __name__ == "__main__":  # pragma: no cover
    main()
