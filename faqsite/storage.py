"""
Filesystem Storage Manager
===========================
Manages the generated site directory. Pages are written only when their
bytes change, so an unchanged corpus rebuilds to an untouched tree.

Directory Layout:
    site/
    ├── index.html
    ├── <article>.html      # one page per Markdown article
    ├── compare/            # code sample comparison pages
    ├── report.json         # corpus integrity report
    └── sitemap.xml         # when a base URL is configured
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def init_site(output_dir: str) -> Path:
    """Ensure the site directory exists."""
    root = Path(output_dir)
    root.mkdir(parents=True, exist_ok=True)
    logger.info(f"Site directory: {root.absolute()}")
    return root


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


# ─── Page Storage ─────────────────────────────────────────────────────────────


def write_if_changed(output_dir: str, relative: str, content: str) -> bool:
    """
    Write a page unless the file already holds exactly these bytes.
    Returns True when the file was written.
    """
    dest = resolve_site_path(output_dir, relative, must_exist=False)
    if dest is None:
        raise ValueError(f"Refusing to write outside the site: {relative}")

    data = content.encode("utf-8")
    if dest.exists() and dest.read_bytes() == data:
        return False

    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_name(dest.name + ".tmp")
    tmp.write_bytes(data)
    os.replace(tmp, dest)
    logger.debug(f"Wrote {relative}")
    return True


def remove_page(output_dir: str, relative: str) -> bool:
    """Delete a generated page and any directories it leaves empty."""
    path = resolve_site_path(output_dir, relative)
    if path is None or not path.is_file():
        return False

    path.unlink()
    logger.info(f"Removed stale page: {relative}")

    root = Path(output_dir).resolve()
    parent = path.parent
    while parent != root and not any(parent.iterdir()):
        parent.rmdir()
        parent = parent.parent
    return True


def list_pages(output_dir: str) -> list[str]:
    """Relative paths of every generated HTML page."""
    root = Path(output_dir)
    if not root.is_dir():
        return []
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*.html"))


def resolve_site_path(
    output_dir: str,
    relative: str,
    must_exist: bool = True,
) -> Optional[Path]:
    """
    Resolve a site-relative path. Returns None for paths that leave the site
    directory, or that don't exist when must_exist is set.
    """
    root = Path(output_dir).resolve()
    candidate = (root / relative).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    if must_exist and not candidate.exists():
        return None
    return candidate


# ─── Helpers ──────────────────────────────────────────────────────────────────


def sanitize_name(name: str) -> str:
    """Sanitize a name for filesystem use."""
    return "".join(
        c if c.isalnum() or c in "-_ " else "_"
        for c in name
    ).strip().replace(" ", "_")[:100]
