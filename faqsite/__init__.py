"""
FAQ Site Builder
================
Quality checks and static publishing for a corpus of Markdown FAQ articles.

Architecture:
    - Loader: Reads Markdown files and scans them into Documents
    - Scanner: Line state machine for headings, code fences, links, footers
    - Validator: Cross-link, anchor, fence and footer integrity report
    - Footer Injector: Applies the canonical Related Resources / author footer
    - Sample Catalog: Pairs competitor code samples with IronPDF samples
    - Renderer: Markdown to deterministic HTML pages

Version: 1.0.0
"""

__version__ = "1.0.0"
