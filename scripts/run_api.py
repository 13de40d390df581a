# Use postponed evaluation of annotations so type hints don't require importing types at runtime.
from __future__ import annotations

# Allow running scripts without requiring an editable install (`pip install -e .`).
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

import os

# `uvicorn` runs the FastAPI application as a local ASGI server.
import uvicorn

from cyclestats.api.app import create_app
from cyclestats.config.loader import load_config


def main() -> None:
    config = load_config()
    app = create_app(config)

    # Ride history is personal data: bind to localhost unless told otherwise.
    host = os.getenv("CYCLESTATS_HOST", "127.0.0.1")
    port = int(os.getenv("CYCLESTATS_PORT", "8000"))

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
