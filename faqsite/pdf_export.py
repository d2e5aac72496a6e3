"""
PDF Export
==========
Lays out a rendered FAQ article as a printable PDF using PyMuPDF's Story
API. Input is the HTML fragment produced by StaticRenderer.render_markdown.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

MEDIABOX = fitz.paper_rect("letter")
WHERE = MEDIABOX + (54, 54, -54, -54)

PRINT_CSS = """
* { font-family: sans-serif; font-size: 11px; }
h1 { font-size: 20px; }
h2 { font-size: 16px; }
h3 { font-size: 13px; }
pre, code { font-family: monospace; font-size: 9px; }
pre { background-color: #f3f3f3; }
"""


def export_html_to_pdf(
    html: str,
    output_path: str,
    title: str = "",
    resource_dir: Optional[str] = None,
    css: str = PRINT_CSS,
) -> int:
    """
    Flow an HTML fragment across as many pages as it needs.

    Args:
        html: Article body HTML.
        output_path: Destination PDF file.
        title: Written to the PDF metadata.
        resource_dir: Directory relative image references resolve against.
        css: Stylesheet applied on top of the Story defaults.

    Returns:
        Number of pages written.
    """
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    story = fitz.Story(html=html, user_css=css, archive=resource_dir)
    buffer = io.BytesIO()
    writer = fitz.DocumentWriter(buffer)
    page_count = 0
    try:
        more = True
        while more:
            device = writer.begin_page(MEDIABOX)
            more, _ = story.place(WHERE)
            story.draw(device)
            writer.end_page()
            page_count += 1
    finally:
        writer.close()

    with fitz.open(stream=buffer.getvalue(), filetype="pdf") as doc:
        doc.set_metadata({"title": title, "creator": "faqsite"})
        doc.save(output_path, garbage=3, deflate=True)

    logger.info(f"Exported {page_count} page(s) to {output_path}")
    return page_count
