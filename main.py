"""
FAQ Site Preview: Main Entry Point
==================================
Starts the Flask preview server for a built site.

Usage:
    python main.py                         # Default: 127.0.0.1:8000, ./site
    python main.py --port 9000             # Custom port
    python main.py --site-dir build/site   # Custom site directory
    python main.py --debug                 # Debug mode
"""

import argparse
import logging

from faqsite.server import app, create_app

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="FAQ Site Preview")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument("--site-dir", default="site", help="Built site directory")
    parser.add_argument("--content-dir", default="FAQ", help="Markdown corpus")
    parser.add_argument("--samples-dir", default=None, help="Code samples directory")
    parser.add_argument("--debug", action="store_true", help="Debug mode")
    args = parser.parse_args()

    create_app({
        "SITE_DIR": args.site_dir,
        "CONTENT_DIR": args.content_dir,
        "SAMPLES_DIR": args.samples_dir,
    })

    logger.info(f"Serving {args.site_dir} (corpus: {args.content_dir})")
    logger.info(f"Starting server on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
