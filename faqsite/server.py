"""
Preview Server
==============
Flask-based preview of a built site plus a small JSON API over the corpus.

Endpoints:
    GET    /                       → Site index
    GET    /<path>                 → Any generated page or asset
    GET    /api/health             → Health check
    GET    /api/info               → Builder version and configured paths
    GET    /api/report             → report.json of the last build
    GET    /api/documents          → Document summaries (read from disk)
    GET    /api/documents/<path>   → One scanned document
    POST   /api/rebuild            → Rebuild the site
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS

from . import __version__
from . import storage
from .engine import BuildError, SiteConfig, SiteEngine
from .loader import CorpusError, MarkdownLoader

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# One build at a time
build_lock = threading.Lock()


def create_app(config: dict = None) -> Flask:
    """Create and configure the Flask app."""
    if config:
        app.config.update(config)

    app.config.setdefault("SITE_DIR", "site")
    app.config.setdefault("CONTENT_DIR", "FAQ")
    app.config.setdefault("SAMPLES_DIR", None)

    storage.init_site(app.config["SITE_DIR"])
    return app


def _site_dir() -> str:
    return str(Path(app.config["SITE_DIR"]).absolute())


# ─── Site Pages ───────────────────────────────────────────────────────────────


@app.route("/")
def index():
    return send_from_directory(_site_dir(), "index.html")


@app.route("/<path:filename>")
def site_file(filename: str):
    target = storage.resolve_site_path(_site_dir(), filename)
    if target is not None and target.is_dir():
        filename = filename.rstrip("/") + "/index.html"
    return send_from_directory(_site_dir(), filename)


# ─── API ──────────────────────────────────────────────────────────────────────


@app.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "version": __version__,
        "building": build_lock.locked(),
    })


@app.route("/api/info", methods=["GET"])
def info():
    return jsonify({
        "name": "faqsite",
        "version": __version__,
        "site_dir": app.config["SITE_DIR"],
        "content_dir": app.config["CONTENT_DIR"],
        "samples_dir": app.config["SAMPLES_DIR"],
        "pages": len(storage.list_pages(app.config["SITE_DIR"])),
    })


@app.route("/api/report", methods=["GET"])
def report():
    path = storage.resolve_site_path(_site_dir(), "report.json")
    if path is None:
        return jsonify({"error": "Site has not been built yet"}), 404
    with open(path, "r", encoding="utf-8") as f:
        return jsonify(json.load(f))


@app.route("/api/documents", methods=["GET"])
def list_documents():
    try:
        documents = MarkdownLoader(app.config["CONTENT_DIR"]).load_corpus()
    except FileNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except CorpusError as e:
        return jsonify({"error": str(e)}), 500

    return jsonify({
        "documents": [
            {
                "path": doc.path,
                "title": doc.title,
                "output_name": doc.output_name,
                "links": len(doc.links),
                "code_blocks": len(doc.code_blocks),
                "has_footer": doc.has_footer,
                "issues": len(doc.issues),
            }
            for doc in documents
        ],
        "total": len(documents),
    })


@app.route("/api/documents/<path:doc_path>", methods=["GET"])
def get_document(doc_path: str):
    content_dir = app.config["CONTENT_DIR"]
    path = storage.resolve_site_path(content_dir, doc_path)
    if path is None or not path.is_file() or path.suffix.lower() != ".md":
        return jsonify({"error": "Document not found", "path": doc_path}), 404

    try:
        doc = MarkdownLoader(content_dir).load(path)
    except CorpusError as e:
        return jsonify({"error": str(e)}), 500
    return jsonify(doc.model_dump(mode="json"))


@app.route("/api/rebuild", methods=["POST"])
def rebuild():
    if not build_lock.acquire(blocking=False):
        return jsonify({"error": "A build is already running"}), 409

    try:
        engine = SiteEngine(SiteConfig(
            content_dir=app.config["CONTENT_DIR"],
            output_dir=app.config["SITE_DIR"],
            samples_dir=app.config["SAMPLES_DIR"],
            strict=app.config.get("STRICT", False),
            log_level=app.config.get("LOG_LEVEL", "INFO"),
        ))
        result = engine.build()
    except BuildError as e:
        return jsonify({
            "error": str(e),
            "report": e.report.model_dump(mode="json") if e.report else None,
        }), 422
    except (FileNotFoundError, CorpusError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("Rebuild failed")
        return jsonify({"error": str(e)}), 500
    finally:
        build_lock.release()

    bv = result.build_version
    return jsonify({
        "success": True,
        "pages": len(result.pages),
        "pages_written": bv.pages_written,
        "pages_unchanged": bv.pages_unchanged,
        "pages_removed": bv.pages_removed,
        "error_count": result.report.error_count,
    })


@app.errorhandler(404)
def not_found(error):
    return jsonify({"error": "Not found"}), 404


# ─── Run Server ──────────────────────────────────────────────────────────────


def run_server(
    host: str = "127.0.0.1",
    port: int = 8000,
    debug: bool = False,
    site_dir: str = "site",
    content_dir: str = "FAQ",
    samples_dir: str = None,
):
    """Start the preview server."""
    create_app({
        "SITE_DIR": site_dir,
        "CONTENT_DIR": content_dir,
        "SAMPLES_DIR": samples_dir,
    })
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server(debug=True)
