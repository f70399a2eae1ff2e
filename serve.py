"""
Flask server entrypoint for the paper search API.

Development:
    python serve.py --port 5000

Production (WSGI):
    gunicorn -w 2 -b 0.0.0.0:5000 serve:app
"""

import argparse

from loguru import logger

from backend import create_app
from config import settings

app = create_app()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Paper search server")
    parser.add_argument("--host", default=settings.host, help="interface to bind")
    parser.add_argument("-p", "--port", type=int, default=settings.serve_port, help="port to serve on")
    parser.add_argument("--debug", action="store_true", default=False, help="enable the Flask debugger")
    args = parser.parse_args(argv)

    logger.info(f"Serving paper search on http://{args.host}:{args.port} (data: {settings.db_path})")
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
