from typing import Iterator, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

LinkType = Literal["internal", "external", "interwiki"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Link(_Frozen):
    type: LinkType
    text: str = ""
    page: Optional[str] = None
    """Target title for internal and interwiki links; *None* when unresolvable."""
    site: Optional[str] = None
    href: Optional[str] = None


class Sentence(_Frozen):
    text: str
    bolds: List[str] = Field(default_factory=list)
    italics: List[str] = Field(default_factory=list)
    links: List[Link] = Field(default_factory=list)


class Image(_Frozen):
    thumbnail: str
    caption: str = ""
    alt: str = ""


class Paragraph(_Frozen):
    sentences: List[Sentence] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)

    def links(self) -> List[Link]:
        return [link for sentence in self.sentences for link in sentence.links]


class Section(_Frozen):
    index: int
    indentation: int = Field(default=0, ge=0)
    title: str = ""
    paragraphs: List[Paragraph] = Field(default_factory=list)
    children: List["Section"] = Field(default_factory=list)


class Page(_Frozen):
    """One parsed encyclopedia article.

    ``sections`` holds the top of the section tree in document order; nested
    headings live in each section's ``children``.
    """

    page_id: int
    title: str
    language: str = "en"
    sections: List[Section] = Field(default_factory=list)

    def all_sections(self) -> Iterator[Section]:
        """Yield every section of the tree, depth first, in document order."""
        stack = list(reversed(self.sections))
        while stack:
            section = stack.pop()
            yield section
            stack.extend(reversed(section.children))

    def paragraphs(self) -> List[Paragraph]:
        return [p for section in self.all_sections() for p in section.paragraphs]
