"""Turns the HTML of a rendered Wikipedia article into a :class:`Page` tree.

The MediaWiki parser output is a flat sequence of headings, paragraphs and
figures.  Headings open sections (``h2`` is indentation 0, ``h3`` is 1, ...),
paragraphs are split into sentences, and the bold, italic and link elements
inside a paragraph are attributed to the sentence that contains them.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlparse

from bs4 import BeautifulSoup, NavigableString, Tag

from wikitana.models.page import Image, Link, Page, Paragraph, Section, Sentence

# Elements that never contribute article prose
_NOISE_SELECTORS = (
    "style",
    "script",
    "link",
    "meta",
    "table",
    "sup.reference",
    "sup.noprint",
    ".mw-editsection",
    ".mw-empty-elt",
    ".mw-references-wrap",
    "ol.references",
    ".reflist",
    ".navbox",
    ".infobox",
    ".hatnote",
    ".shortdescription",
    ".metadata",
    ".noprint",
    ".toc",
    "#toc",
)

_HEADINGS = ("h2", "h3", "h4", "h5", "h6")

_BOLD_TAGS = {"b", "strong"}
_ITALIC_TAGS = {"i", "em"}

# Namespaced titles are not articles and are never crawled
_NAMESPACE_RE = re.compile(
    r"^(File|Image|Media|Category|Template|Help|Wikipedia|Special|Portal|Talk|User|"
    r"Module|Draft|MediaWiki|Book|TimedText)( talk)?:",
    re.IGNORECASE,
)

_WHITESPACE_RE = re.compile(r"\s+")

# A sentence ends at ., ! or ? followed by whitespace and a character that is
# not a lowercase letter.
_SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+(?=[^\sa-z])")


# ---------------------------------------------------------------------------
# Links and images
# ---------------------------------------------------------------------------

def _absolute(href: str) -> str:
    return f"https:{href}" if href.startswith("//") else href


def _internal_title(raw: str) -> Optional[str]:
    title = unquote(raw.split("#", 1)[0]).replace("_", " ").strip()
    if not title or _NAMESPACE_RE.match(title):
        return None
    return title


def parse_link(a: Tag) -> Optional[Link]:
    """Classify an ``<a>`` element, or return *None* for in-page anchors."""
    href = str(a.get("href", "")).strip()
    classes = a.get("class", [])
    text = _WHITESPACE_RE.sub(" ", a.get_text()).strip()

    if not href or href.startswith("#"):
        return None

    if "extiw" in classes:
        page = str(a.get("title") or text)
        return Link(type="interwiki", text=text, page=page, href=_absolute(href))

    if href.startswith("./"):
        return Link(type="internal", text=text, page=_internal_title(href[2:]))

    parsed = urlparse(href)
    if not parsed.netloc and parsed.path.startswith("/wiki/"):
        return Link(type="internal", text=text, page=_internal_title(parsed.path[len("/wiki/"):]))

    if not parsed.netloc and parsed.path.endswith("/index.php"):
        # Red links point at the edit form of a page that does not exist yet
        titles = parse_qs(parsed.query).get("title")
        page = _internal_title(titles[0]) if titles else None
        return Link(type="internal", text=text, page=page)

    if href.startswith(("http://", "https://", "//")):
        return Link(type="external", text=text, site=_absolute(href))

    return None


def parse_image(element: Tag) -> Optional[Image]:
    """Return the image of a ``<figure>`` or legacy ``div.thumb`` element."""
    img = element.find("img")
    if img is None or not img.get("src"):
        return None

    caption_el = element.find("figcaption") or element.find(class_="thumbcaption")
    caption = _WHITESPACE_RE.sub(" ", caption_el.get_text()).strip() if caption_el else ""
    return Image(
        thumbnail=_absolute(str(img["src"])),
        caption=caption,
        alt=str(img.get("alt") or "").strip(),
    )


# ---------------------------------------------------------------------------
# Paragraph text
# ---------------------------------------------------------------------------

@dataclass
class _Span:
    kind: str
    start: int
    end: int = 0
    link: Optional[Link] = None


class _TextBuilder:
    """Accumulates whitespace-collapsed text and the spans of inline markup."""

    def __init__(self) -> None:
        self.parts: List[str] = []
        self.length = 0
        self.spans: List[_Span] = []
        self._space = True

    def append(self, raw: str) -> None:
        for chunk in re.split(r"(\s+)", raw):
            if not chunk:
                continue
            if chunk.isspace():
                if not self._space:
                    self.parts.append(" ")
                    self.length += 1
                    self._space = True
            else:
                self.parts.append(chunk)
                self.length += len(chunk)
                self._space = False

    def walk(self, element: Tag) -> None:
        for child in element.children:
            if isinstance(child, NavigableString):
                if type(child) is NavigableString:
                    self.append(str(child))
                continue
            if not isinstance(child, Tag):
                continue
            if child.name == "br":
                self.append(" ")
                continue

            span = None
            if child.name in _BOLD_TAGS:
                span = _Span("bold", self.length)
            elif child.name in _ITALIC_TAGS:
                span = _Span("italic", self.length)
            elif child.name == "a":
                link = parse_link(child)
                if link is not None:
                    span = _Span("link", self.length, link=link)

            self.walk(child)
            if span is not None:
                span.end = self.length
                self.spans.append(span)

    @property
    def text(self) -> str:
        return "".join(self.parts)


def _sentence_bounds(text: str) -> Iterator[Tuple[int, int]]:
    start = 0
    for match in _SENTENCE_BREAK_RE.finditer(text):
        yield start, match.start()
        start = match.end()
    yield start, len(text)


def split_sentences(builder: _TextBuilder) -> List[Sentence]:
    text = builder.text
    sentences: List[Sentence] = []
    for start, end in _sentence_bounds(text):
        raw = text[start:end]
        stripped = raw.strip()
        if not stripped:
            continue

        bolds: List[str] = []
        italics: List[str] = []
        links: List[Link] = []
        for span in builder.spans:
            if not start <= span.start < end:
                continue
            fragment = text[span.start:span.end].strip()
            if span.kind == "link":
                links.append(span.link)
            elif not fragment:
                continue
            elif span.kind == "bold":
                bolds.append(fragment)
            else:
                italics.append(fragment)

        sentences.append(Sentence(text=stripped, bolds=bolds, italics=italics, links=links))
    return sentences


def parse_paragraph(element: Tag) -> Paragraph:
    builder = _TextBuilder()
    builder.walk(element)
    return Paragraph(sentences=split_sentences(builder))


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

@dataclass
class _SectionBuilder:
    index: int
    indentation: int
    title: str
    paragraphs: List[Paragraph] = field(default_factory=list)
    children: List["_SectionBuilder"] = field(default_factory=list)

    def build(self) -> Section:
        return Section(
            index=self.index,
            indentation=self.indentation,
            title=self.title,
            paragraphs=self.paragraphs,
            children=[child.build() for child in self.children],
        )


def _heading_level(element: Tag) -> Optional[int]:
    if element.name in _HEADINGS:
        return int(element.name[1])
    return None


def _is_thumb(element: Tag) -> bool:
    return element.name == "div" and "thumb" in element.get("class", [])


def _blocks(root: Tag) -> Iterator[Tag]:
    """Yield headings, paragraphs and figures in document order, outermost only."""
    for element in root.find_all(list(_HEADINGS) + ["p", "figure", "div"]):
        if element.name == "div" and not _is_thumb(element):
            continue
        if element.find_parent(["p", "figure"]) is not None:
            continue
        if element.find_parent(_is_thumb) is not None:
            continue
        yield element


def parse_page(page_id: int, title: str, html: str, language: str = "en") -> Page:
    soup = BeautifulSoup(html, "lxml")
    root = soup.select_one(".mw-parser-output") or soup.find("body") or soup

    for selector in _NOISE_SELECTORS:
        for tag in root.select(selector):
            tag.decompose()

    lead = _SectionBuilder(index=0, indentation=0, title="")
    roots: List[_SectionBuilder] = [lead]
    stack: List[_SectionBuilder] = [lead]
    index = 0

    for element in _blocks(root):
        level = _heading_level(element)
        if level is not None:
            index += 1
            section = _SectionBuilder(
                index=index,
                indentation=level - 2,
                title=_WHITESPACE_RE.sub(" ", element.get_text()).strip(),
            )
            while stack and stack[-1].indentation >= section.indentation:
                stack.pop()
            if stack:
                stack[-1].children.append(section)
            else:
                roots.append(section)
            stack.append(section)
            continue

        current = stack[-1]
        if element.name == "p":
            paragraph = parse_paragraph(element)
            if paragraph.sentences:
                current.paragraphs.append(paragraph)
        else:
            image = parse_image(element)
            if image is not None:
                current.paragraphs.append(Paragraph(images=[image]))

    return Page(
        page_id=page_id,
        title=title,
        language=language,
        sections=[section.build() for section in roots],
    )
