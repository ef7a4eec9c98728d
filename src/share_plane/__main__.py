"""Run the share-plane API with uvicorn.

    python -m share_plane [--host 0.0.0.0] [--port 8000]

Settings are read from the environment (see SharePlaneSettings.from_env).
"""

from __future__ import annotations

import argparse

import uvicorn

from .app import SharePlaneSettings, create_app


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="share_plane")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args(argv)

    app = create_app(SharePlaneSettings.from_env())
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
