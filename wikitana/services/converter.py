"""Conversion of crawled pages into a Tana Intermediate File.

Every page becomes one top-level node tagged with the ``wiki-page`` supertag.
Titled sections become nested nodes, untitled sections are flattened into
their parent, paragraphs become nodes whose name is the annotated text and
images become image nodes.  Internal links to crawled pages are rendered as
Tana references (``[[uid]]``) so the imported pages link to each other.
"""

import logging
import uuid
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple
from urllib.parse import quote

from wikitana.models.document import (
    AnyNode,
    Document,
    ImageNode,
    Node,
    Summary,
    Supertag,
)
from wikitana.models.page import Image, Link, Page, Paragraph, Section, Sentence
from wikitana.services.text import smart_replace

logger = logging.getLogger(__name__)

WIKI_PAGE_SUPERTAG_UID = "wiki-page"
WIKI_PAGE_SUPERTAG_NAME = "Wikipedia"

# Deepest section nesting that is converted; deeper sections are dropped.
MAX_SECTION_DEPTH = 32

# Characters encodeURIComponent leaves untouched besides ``A-Za-z0-9_.-~``
_URI_COMPONENT_SAFE = "!*'()"

UidFactory = Callable[[], str]
References = Dict[str, Optional[Page]]


def random_uid() -> str:
    return str(uuid.uuid4())


class RenderedLink(NamedTuple):
    text: str
    ref: Optional[str] = None


def article_url(title: str, language: str = "en") -> str:
    """Return the Wikipedia URL of *title*, e.g. ``https://en.wikipedia.org/wiki/Ada_Lovelace``."""
    slug = quote(title.replace(" ", "_"), safe=_URI_COMPONENT_SAFE)
    return f"https://{language}.wikipedia.org/wiki/{slug}"


def _section_uid(page: Page, section: Section) -> str:
    return f"{page.page_id}-{section.index}-{section.indentation}"


def _is_empty(node: Optional[AnyNode]) -> bool:
    if node is None:
        return True
    if isinstance(node, Node) and node.children:
        return False
    return not node.name and not getattr(node, "media_url", "")


class _Converter:
    def __init__(self, references: References, uid_factory: UidFactory, language: str) -> None:
        self.references = references
        self.uid_factory = uid_factory
        self.language = language

    # -----------------------------------------------------------------------
    # Inline content
    # -----------------------------------------------------------------------

    def convert_image(self, image: Image) -> ImageNode:
        name = image.caption or image.alt or "image"
        return ImageNode(uid=self.uid_factory(), name=name, media_url=image.thumbnail)

    def convert_link(self, link: Link) -> RenderedLink:
        if link.type == "external":
            return RenderedLink(f"[{link.text}]({link.site})")

        if link.type == "interwiki":
            return RenderedLink(f"[{link.text or link.page or ''}]({link.href})")

        if not link.page:
            return RenderedLink(link.text)

        page = self.references.get(link.page)
        if page is None:
            href = article_url(link.page, self.language)
            return RenderedLink(f"[{link.text or link.page}]({href})")

        ref = str(page.page_id)
        alias = link.text
        if alias and alias != page.title:
            return RenderedLink(f"[{alias}]([[{ref}]])", ref)
        return RenderedLink(f"[[{ref}]]", ref)

    def convert_sentence(self, sentence: Sentence) -> Tuple[str, List[str]]:
        """Return the annotated text of *sentence* and the page refs of its links.

        Bolds are applied first, then italics, then links, each on the text
        produced by the previous step.
        """
        refs: List[str] = []
        text = sentence.text
        for bold in sentence.bolds:
            text = smart_replace(text, bold, f"**{bold}**")

        for italic in sentence.italics:
            text = smart_replace(text, italic, f"__{italic}__")

        for link in sentence.links:
            rendered = self.convert_link(link)
            text = smart_replace(text, link.text or link.page, rendered.text)
            if rendered.ref:
                refs.append(rendered.ref)

        return text, refs

    # -----------------------------------------------------------------------
    # Block content
    # -----------------------------------------------------------------------

    def convert_paragraph(self, paragraph: Paragraph) -> AnyNode:
        uid = self.uid_factory()
        images: List[AnyNode] = [self.convert_image(image) for image in paragraph.images]

        sentences: List[str] = []
        refs: Dict[str, None] = {}
        for sentence in paragraph.sentences:
            text, sentence_refs = self.convert_sentence(sentence)
            if text:
                sentences.append(text)
                refs.update(dict.fromkeys(sentence_refs))

        if not sentences and len(images) == 1:
            return images[0]

        return Node(uid=uid, name="\n".join(sentences), children=images, refs=list(refs))

    def convert_section(self, page: Page, section: Section, depth: int = 0) -> List[AnyNode]:
        """Convert *section* and its direct sub-sections.

        Returns a single wrapper node for titled sections and the bare list of
        children for untitled ones.
        """
        indentation = section.indentation
        nodes: List[AnyNode] = [self.convert_paragraph(p) for p in section.paragraphs]

        if depth < MAX_SECTION_DEPTH:
            for child in section.children:
                if child.indentation == indentation + 1:
                    nodes.extend(self.convert_section(page, child, depth + 1))
        elif section.children:
            logger.warning(
                "Converter: %s – sections nested deeper than %d dropped",
                page.title,
                MAX_SECTION_DEPTH,
            )

        children = [node for node in nodes if not _is_empty(node)]
        if not section.title:
            return children

        return [
            Node(uid=_section_uid(page, section), name=f"**{section.title}**", children=children)
        ]

    def convert_page(self, page: Page) -> Node:
        children: List[AnyNode] = []
        for section in page.sections:
            if section.indentation == 0:
                children.extend(self.convert_section(page, section))

        return Node(
            uid=str(page.page_id),
            name=f"**{page.title}**",
            supertags=[WIKI_PAGE_SUPERTAG_UID],
            children=children,
        )


def count_descendants(node: AnyNode) -> int:
    """Count every node below *node*, excluding *node* itself."""
    count = 0
    stack = [node]
    while stack:
        children = getattr(stack.pop(), "children", [])
        count += len(children)
        stack.extend(children)
    return count


def build_summary(nodes: List[Node]) -> Summary:
    leaf_nodes = sum(count_descendants(node) for node in nodes)
    top_level_nodes = len(nodes)
    return Summary(
        leaf_nodes=leaf_nodes,
        top_level_nodes=top_level_nodes,
        total_nodes=top_level_nodes + leaf_nodes,
    )


def convert(
    pages: Iterable[Page],
    references: References,
    uid_factory: Optional[UidFactory] = None,
    language: str = "en",
) -> Document:
    """Convert *pages* into a Tana Intermediate File.

    *pages* may be the ``pages`` mapping of a crawl result or any iterable of
    pages; *references* maps link titles to the crawled page they resolved to.
    Paragraph and image uids come from *uid_factory* (random UUIDs by default);
    page and section uids are derived from the page id.
    """
    if isinstance(pages, dict):
        pages = pages.values()

    converter = _Converter(references, uid_factory or random_uid, language)
    nodes = [converter.convert_page(page) for page in pages]
    supertags = [Supertag(uid=WIKI_PAGE_SUPERTAG_UID, name=WIKI_PAGE_SUPERTAG_NAME)]
    return Document(summary=build_summary(nodes), supertags=supertags, nodes=nodes)
