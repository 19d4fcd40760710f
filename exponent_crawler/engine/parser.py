"""Extraction of question records from listing-page markup."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Iterable
from urllib.parse import urljoin, urlsplit

from selectolax.parser import HTMLParser, Node

from .dates import normalize_date

if TYPE_CHECKING:
    from .fetcher import RawPageContent

SITE_ORIGIN = "https://www.tryexponent.com"

# Each question card is a clickable block wrapped in a list item.
CARD_SELECTOR = "li div.block.cursor-pointer"
LINK_SELECTOR = "a[href]"
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4"})
COMPANY_SELECTOR = "img[alt]"
# Tags are either bordered pills (div.border.rounded-md.text-xs) or spans
# whose class mentions "tag"; both kinds are read in one document-order walk.
TAG_PILL_CLASSES = frozenset({"border", "rounded-md", "text-xs"})
TAG_CLASS_MARKER = "tag"
ANSWERS_SELECTOR = 'a[href$="#answers"]'
TIME_SELECTOR = "time"
MUTED_DATE_SELECTOR = "span.text-gray-500"

ITEM_PATH_PREFIX = "/questions/"
ITEM_PATH_SEGMENTS = 3
ACTION_MARKERS = ("contribute",)

_ANSWERS_PATTERN = re.compile(r"(\d+)\s+answers?", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class Record:
    """One question card, fully populated."""

    question: str
    link: str
    companies: tuple[str, ...] = field(default_factory=tuple)
    tags: tuple[str, ...] = field(default_factory=tuple)
    answer_count: int = 0
    asked_when: str = ""

    def to_payload(self) -> dict[str, Any]:
        """Sink representation using the published field names."""

        return {
            "question": self.question,
            "companies": list(self.companies),
            "tags": list(self.tags),
            "answerCount": self.answer_count,
            "askedWhen": self.asked_when,
            "link": self.link,
        }


def is_item_link(href: str, origin: str = SITE_ORIGIN) -> bool:
    """True when ``href`` points at a question detail page.

    Detail pages live at ``/questions/<id>/<slug>``; anything deeper or
    shallower, off-site, or carrying an action marker is a sub-action link.
    """

    if not href:
        return False
    if any(marker in href for marker in ACTION_MARKERS):
        return False
    parts = urlsplit(urljoin(origin + "/", href))
    if parts.netloc and parts.netloc != urlsplit(origin).netloc:
        return False
    if not parts.path.startswith(ITEM_PATH_PREFIX):
        return False
    segments = [segment for segment in parts.path.split("/") if segment]
    return len(segments) == ITEM_PATH_SEGMENTS


def _in_heading(node: Node) -> bool:
    parent = node.parent
    while parent is not None and parent.tag not in ("li", "body"):
        if parent.tag in HEADING_TAGS:
            return True
        parent = parent.parent
    return False


def _is_tag(node: Node) -> bool:
    classes = (node.attributes.get("class") or "").split()
    if node.tag == "div":
        return TAG_PILL_CLASSES.issubset(classes)
    if node.tag == "span":
        return any(TAG_CLASS_MARKER in name for name in classes)
    return False


class RecordExtractor:
    """Turn a listing page into deduplicated :class:`Record` objects."""

    def __init__(self, origin: str = SITE_ORIGIN) -> None:
        self.origin = origin.rstrip("/")

    def extract(self, content: "RawPageContent | HTMLParser | str", now: datetime | date) -> list[Record]:
        tree = self._tree(content)
        records: list[Record] = []
        seen: set[str] = set()
        for card in tree.css(CARD_SELECTOR):
            anchor = self._title_anchor(card)
            if anchor is None:
                continue
            href = (anchor.attributes.get("href") or "").strip()
            link = urljoin(self.origin + "/", href)
            if link in seen:
                continue
            question = anchor.text(separator=" ", strip=True)
            if not question:
                continue
            seen.add(link)
            records.append(
                Record(
                    question=question,
                    link=link,
                    companies=tuple(self._companies(card)),
                    tags=tuple(self._texts(node for node in card.traverse() if _is_tag(node))),
                    answer_count=self._answer_count(card),
                    asked_when=normalize_date(self._raw_date(card), now),
                )
            )
        return records

    # ------------------------------------------------------------------
    @staticmethod
    def _tree(content: "RawPageContent | HTMLParser | str") -> HTMLParser:
        if isinstance(content, HTMLParser):
            return content
        if isinstance(content, str):
            return HTMLParser(content)
        return content.tree

    def _title_anchor(self, card: Node) -> Node | None:
        for anchor in card.css(LINK_SELECTOR):
            if not _in_heading(anchor):
                continue
            if is_item_link((anchor.attributes.get("href") or "").strip(), self.origin):
                return anchor
        return None

    @staticmethod
    def _companies(card: Node) -> list[str]:
        names: list[str] = []
        for image in card.css(COMPANY_SELECTOR):
            alt = (image.attributes.get("alt") or "").strip()
            if alt:
                names.append(alt)
        return names

    @staticmethod
    def _texts(nodes: Iterable[Node]) -> list[str]:
        values: list[str] = []
        for node in nodes:
            text = node.text(separator=" ", strip=True)
            if text:
                values.append(text)
        return values

    @staticmethod
    def _answer_count(card: Node) -> int:
        node = card.css_first(ANSWERS_SELECTOR)
        if node is None:
            return 0
        match = _ANSWERS_PATTERN.search(node.text(separator=" ", strip=True))
        return int(match.group(1)) if match else 0

    @staticmethod
    def _raw_date(card: Node) -> str:
        time_node = card.css_first(TIME_SELECTOR)
        if time_node is not None:
            value = time_node.attributes.get("datetime")
            if value:
                return value.strip()
        muted = card.css_first(MUTED_DATE_SELECTOR)
        if muted is not None:
            return muted.text(strip=True)
        return ""


__all__ = [
    "CARD_SELECTOR",
    "Record",
    "RecordExtractor",
    "SITE_ORIGIN",
    "is_item_link",
]
