"""Entry point for running GridXO via ``python -m gridxo``."""

from __future__ import annotations

import logging
import os

import uvicorn


def main() -> None:
    """Start the FastAPI-powered GridXO server."""

    logging.basicConfig(
        level=os.environ.get("GRIDXO_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.environ.get("GRIDXO_HOST", "0.0.0.0")
    port = int(os.environ.get("GRIDXO_PORT", "8000"))
    uvicorn.run("gridxo.api:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
