from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass
class PageFragment:
    """Smallest unit: one positioned run of decoded text.

    ``y`` is in PDF user space (grows upward), so the top of the page has
    the largest value.
    """

    x: float
    y: float
    text: str = ""
    page: int = 0

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "page": self.page,
            "x": round(self.x, 3),
            "y": round(self.y, 3),
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "PageFragment":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(
            x=d["x"],
            y=d["y"],
            text=d.get("text", ""),
            page=d.get("page", 0),
        )


@dataclass
class PageImage:
    """An embedded image found on a page."""

    index: int  # issue-wide ordinal
    page: int
    name: str = ""
    width: int = 0  # source pixels
    height: int = 0
    bbox: Optional[Tuple[float, float, float, float]] = None  # x0, top, x1, bottom
    base64: Optional[str] = None  # PNG payload

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict; the payload only when present."""
        d: dict = {
            "index": self.index,
            "name": self.name,
            "width": self.width,
            "height": self.height,
        }
        if self.bbox is not None:
            d["bbox"] = [round(v, 3) for v in self.bbox]
        if self.base64:
            d["base64"] = self.base64
        return d

    @classmethod
    def from_dict(cls, d: dict, page: int = 0) -> "PageImage":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        bbox = d.get("bbox")
        return cls(
            index=d["index"],
            page=page,
            name=d.get("name", ""),
            width=d.get("width", 0),
            height=d.get("height", 0),
            bbox=tuple(bbox) if bbox else None,
            base64=d.get("base64"),
        )


@dataclass
class Page:
    """One physical page of an issue (1-based, physical order)."""

    number: int
    text: str = ""
    fragments: List[PageFragment] = field(default_factory=list)
    images: List[PageImage] = field(default_factory=list)

    def lines(self) -> List[str]:
        """Stripped, non-empty lines of the page text."""
        return [ln.strip() for ln in (self.text or "").split("\n") if ln.strip()]

    def to_dict(self) -> dict:
        """Serialize to the page-dump layout (``page``, ``text``, ``images``)."""
        d: dict = {"page": self.number, "text": self.text}
        if self.images:
            d["images"] = [img.to_dict() for img in self.images]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Page":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        number = int(d["page"])
        return cls(
            number=number,
            text=d.get("text") or "",
            images=[PageImage.from_dict(i, page=number) for i in d.get("images", [])],
        )


@dataclass
class TocEntry:
    """A (page, title) anchor from the table of contents or a section header."""

    page: int
    title: str
    source: str = "toc"  # "toc" | "header"


@dataclass
class ArticleCandidate:
    """A provisionally bounded article.

    ``end_page`` is the last page of the article's range (the page before the
    successor's start, or the capped tail); ``pages`` lists the pages whose
    text actually went into ``content``.
    """

    title: str
    start_page: int
    end_page: int = 0
    content: str = ""
    pages: List[int] = field(default_factory=list)
    source: str = "toc"

    def is_empty(self) -> bool:
        """True when the accumulated content is whitespace only."""
        return not self.content.strip()

    def to_dict(self) -> dict:
        """Serialize to the per-article record layout."""
        return {
            "title": self.title,
            "start_page": self.start_page,
            "end_page": self.end_page,
            "pages": list(self.pages),
            "content": self.content,
        }

    def to_summary_dict(self, filename: str) -> dict:
        """Issue-summary row for this article."""
        return {
            "title": self.title,
            "start_page": self.start_page,
            "pages": list(self.pages),
            "filename": filename,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ArticleCandidate":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(
            title=d["title"],
            start_page=d["start_page"],
            end_page=d.get("end_page", d["start_page"]),
            content=d.get("content", ""),
            pages=list(d.get("pages", [])),
            source=d.get("source", "toc"),
        )
