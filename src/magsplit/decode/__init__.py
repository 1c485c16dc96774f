"""Decode stage — PDF text layer and embedded images to pages.

Public API
----------
- :func:`extract_pages` — decode every page of an issue PDF
- :func:`extract_page` — decode one open pdfplumber Page
- :func:`extract_images` — record a page's embedded images
"""

from .extract import extract_images, extract_page, extract_pages

__all__ = [
    "extract_images",
    "extract_page",
    "extract_pages",
]
