# cvtransformer/services/cv/segmenter.py
"""
CV Section Segmenter - splits extracted document text into named sections.

Strategies are tried in order of confidence and the first one that finds at
least two headers wins:
  1. HtmlStructureStrategy: headings, then bold runs, then short paragraphs
     in the mammoth HTML rendering of a Word document.
  2. PlainTextHeaderStrategy: stand-alone header lines in the raw text.
If both fail the whole text comes back as a single "header" section.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag

from cvtransformer.schemas.cv import SectionMap
from cvtransformer.services.cv.section_vocabulary import (
    PREAMBLE_SECTION,
    header_pattern_alternation,
    match_vocabulary,
)

logger = logging.getLogger("cv.segmenter")

MIN_SECTIONS = 2
SHORT_PARAGRAPH_CHARS = 100
# A header may carry a few words beyond its vocabulary entry ("Selected Publications 2015-2023")
MAX_EXTRA_HEADER_WORDS = 3


@dataclass
class SegmentationAttempt:
    """Outcome of one strategy: ordered sections plus how sure the strategy is."""
    strategy: str
    sections: Dict[str, str] = field(default_factory=dict)
    headers_found: int = 0
    confidence: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.headers_found >= MIN_SECTIONS

    def add(self, name: str, content: str) -> None:
        # Same header twice (e.g. two "Experience" blocks): keep both, in order.
        name = _display_name(name)
        content = content.strip()
        if name in self.sections and self.sections[name]:
            self.sections[name] = f"{self.sections[name]}\n\n{content}".strip()
        else:
            self.sections[name] = content

    def to_section_map(self) -> SectionMap:
        return SectionMap(sections=dict(self.sections), strategy=self.strategy, segmented=self.succeeded)


class SegmentationStrategy:
    """Common interface: try to segment, return None when the input kind is not applicable."""
    name = "base"

    def attempt(self, text: str, html: Optional[str] = None) -> Optional[SegmentationAttempt]:
        raise NotImplementedError


def _display_name(raw: str) -> str:
    s = re.sub(r"\s+", " ", raw or "").strip()
    return s.rstrip(":").strip() or PREAMBLE_SECTION


def _is_header_like(raw: str, vocab_entry: str) -> bool:
    if len(raw) >= SHORT_PARAGRAPH_CHARS:
        return False
    return len(raw.split()) <= len(vocab_entry.split()) + MAX_EXTRA_HEADER_WORDS


# ---------------------------------------------------------------------------
# HTML strategy
# ---------------------------------------------------------------------------

class HtmlStructureStrategy(SegmentationStrategy):
    """
    Three passes of decreasing confidence over the document's top-level blocks:
    semantic headings, bold/strong runs opening a block, short plain paragraphs.
    Each recognised header owns every following block up to the next header.
    """
    name = "html"

    PASSES: Tuple[Tuple[str, float], ...] = (
        ("headings", 1.0),
        ("bold", 0.8),
        ("short_paragraphs", 0.6),
    )

    def attempt(self, text: str, html: Optional[str] = None) -> Optional[SegmentationAttempt]:
        if not html or not html.strip():
            return None

        soup = BeautifulSoup(html, "html.parser")
        root = soup.body or soup
        blocks = [c for c in root.children if isinstance(c, Tag) or (isinstance(c, NavigableString) and c.strip())]
        if not blocks:
            return None
        position = {id(b): i for i, b in enumerate(blocks)}

        def top_block(el) -> Optional[int]:
            node = el
            while node is not None and node.parent is not root:
                node = node.parent
            return position.get(id(node)) if node is not None else None

        # block index -> (header text as written, pass weight)
        headers: Dict[int, Tuple[str, float]] = {}

        for pass_name, weight in self.PASSES:
            found = 0
            for el in self._candidates(soup, pass_name):
                raw = _leaf_text(el)
                if not raw:
                    continue
                entry = match_vocabulary(raw)
                if not entry or not _is_header_like(raw, entry):
                    continue
                idx = top_block(el)
                if idx is None or idx in headers:
                    continue
                block_text = _block_text(blocks[idx])
                if pass_name == "bold" and not block_text.startswith(raw):
                    continue  # bold word in the middle of a sentence
                headers[idx] = (raw, weight)
                found += 1
            logger.debug("HTML pass '%s' recognised %d header(s)", pass_name, found)

        result = SegmentationAttempt(strategy=self.name, headers_found=len(headers))
        if not headers:
            return result

        order = sorted(headers)
        preamble = "\n".join(_block_text(b) for b in blocks[: order[0]]).strip()
        if preamble:
            result.add(PREAMBLE_SECTION, preamble)

        for n, idx in enumerate(order):
            raw, _weight = headers[idx]
            end = order[n + 1] if n + 1 < len(order) else len(blocks)
            parts: List[str] = []
            # Text sharing the header's block ("<p><strong>Education:</strong> BSc</p>")
            remainder = _block_text(blocks[idx]).replace(raw, "", 1).strip(" :\n\t")
            if remainder:
                parts.append(remainder)
            parts.extend(t for t in (_block_text(b) for b in blocks[idx + 1 : end]) if t)
            result.add(raw, "\n".join(parts))

        result.confidence = round(sum(w for _r, w in headers.values()) / len(headers), 2)
        return result

    @staticmethod
    def _candidates(soup: BeautifulSoup, pass_name: str):
        if pass_name == "headings":
            return soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
        if pass_name == "bold":
            return soup.find_all(["strong", "b"])
        return [p for p in soup.find_all("p") if len(p.get_text(" ", strip=True)) < SHORT_PARAGRAPH_CHARS]


_LEAF_BLOCKS = ["p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "td", "th"]


def _leaf_text(el: Tag) -> str:
    return re.sub(r"\s+", " ", el.get_text(" ", strip=True)).strip()


def _block_text(block) -> str:
    """One line per paragraph-level element; inline runs (bold, links) stay on their line."""
    if not isinstance(block, Tag):
        return str(block).strip()
    if block.name in _LEAF_BLOCKS:
        return _leaf_text(block)
    leaves = [el for el in block.find_all(_LEAF_BLOCKS) if el.find_parent(_LEAF_BLOCKS) is None]
    if not leaves:
        return block.get_text("\n", strip=True)
    return "\n".join(t for t in (_leaf_text(el) for el in leaves) if t)


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html or "", "html.parser")
    return soup.get_text("\n", strip=True)


# ---------------------------------------------------------------------------
# Plain-text strategy
# ---------------------------------------------------------------------------

class PlainTextHeaderStrategy(SegmentationStrategy):
    """
    One regex alternation of all header spellings, anchored to optionally
    indented, optionally colon-terminated stand-alone lines. Each match owns
    the text up to the next match.
    """
    name = "plain_text"

    def __init__(self) -> None:
        self.pattern = re.compile(
            rf"^[ \t]*(?P<name>{header_pattern_alternation()})(?P<qualifier>[ \t]*\([^)\n]*\))?[ \t]*:?[ \t]*$",
            re.IGNORECASE | re.MULTILINE,
        )

    def attempt(self, text: str, html: Optional[str] = None) -> Optional[SegmentationAttempt]:
        if not text or not text.strip():
            return None

        matches = list(self.pattern.finditer(text))
        result = SegmentationAttempt(strategy=self.name, headers_found=len(matches))
        if not matches:
            return result

        preamble = text[: matches[0].start()].strip()
        if preamble:
            result.add(PREAMBLE_SECTION, preamble)

        for i, m in enumerate(matches):
            end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
            name = m.group("name") + (m.group("qualifier") or "")
            result.add(name, text[m.end() : end])

        result.confidence = 0.5
        return result


DEFAULT_STRATEGIES: Tuple[SegmentationStrategy, ...] = (HtmlStructureStrategy(), PlainTextHeaderStrategy())


def segment_document(
    text: str,
    html: Optional[str] = None,
    strategies: Optional[Sequence[SegmentationStrategy]] = None,
) -> SectionMap:
    """
    Split document text (and its HTML rendering, when available) into sections.
    Never raises for missing structure: an unsegmentable document comes back as
    one section named "header" with segmented=False.
    """
    strategies = strategies if strategies is not None else DEFAULT_STRATEGIES
    text = text or ""
    if not text.strip() and html:
        text = html_to_text(html)

    for strategy in strategies:
        attempt = strategy.attempt(text, html)
        if attempt is None:
            continue
        if attempt.succeeded:
            logger.info(
                "Segmented with '%s': %d header(s), confidence %.2f, sections=%s",
                attempt.strategy, attempt.headers_found, attempt.confidence, list(attempt.sections),
            )
            return attempt.to_section_map()
        logger.info(
            "Strategy '%s' found %d header(s) (< %d); falling back",
            attempt.strategy, attempt.headers_found, MIN_SECTIONS,
        )

    logger.warning("⚠️ No strategy found %d section headers; document left unsegmented", MIN_SECTIONS)
    return SectionMap(sections={PREAMBLE_SECTION: text.strip()}, strategy="unsegmented", segmented=False)
