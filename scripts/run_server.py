"""Script to launch the thread gateway."""

from __future__ import annotations

import argparse
import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv

# Ensure src/ is on sys.path (so imports work when run without installing)
SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from thread_gateway.config import load_config  # noqa: E402
from thread_gateway.server import create_app  # noqa: E402


def main() -> None:
    # .env first so OPENAI_API_KEY / PORT reach load_config.
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run the thread gateway.")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML config file (default: $THREAD_GATEWAY_CONFIG or config/default.yaml)",
    )
    parser.add_argument("--host", type=str, default=None, help="Host to bind (default: server.host)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind (default: server.port, 3001)")
    args = parser.parse_args()

    cfg = load_config(args.config)
    level = str(cfg.get("logging", {}).get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    host = args.host or cfg["server"]["host"]
    port = args.port or int(cfg["server"]["port"])
    app = create_app(args.config)
    logging.getLogger("thread_gateway").info("Server is running on http://localhost:%s", port)

    uvicorn.run(app, host=host, port=port, log_level=level.lower())


if __name__ == "__main__":
    main()
