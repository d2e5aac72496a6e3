"""
Jinja2 environment shared by the footer injector and the HTML renderer.
HTML templates are autoescaped; Markdown templates (*.md.j2) are not.
"""

from __future__ import annotations

import hashlib
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

TEMPLATE_DIR = Path(__file__).parent / "templates"


@lru_cache(maxsize=None)
def get_environment(template_dir: str = str(TEMPLATE_DIR)) -> Environment:
    return Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=select_autoescape(enabled_extensions=("html", "xml")),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def template_fingerprint(template_dir: str = str(TEMPLATE_DIR)) -> str:
    """SHA-256 over template names and sources."""
    sha256 = hashlib.sha256()
    for path in sorted(Path(template_dir).iterdir()):
        if path.is_file():
            sha256.update(path.name.encode("utf-8"))
            sha256.update(path.read_bytes())
    return sha256.hexdigest()
