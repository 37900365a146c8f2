"""Serve the home screen over HTTP as a 1-bit BMP."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from epd_home.config import load_config
from epd_home.logging_setup import configure_logging
from epd_home.server import make_server

logger = logging.getLogger("serve_home")


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", default="config/config.yaml")
    parser.add_argument("--listen", default=os.environ.get("LISTEN_ADDRESS", "127.0.0.1:8080"))
    args = parser.parse_args()

    config = load_config(args.config)
    configure_logging(config.log)

    host, _, port = args.listen.rpartition(":")
    server = make_server(config, host or "127.0.0.1", int(port))
    logger.info("Serving on %s", args.listen)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        return 0
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
