"""Tests for converter.convert and its node-building helpers."""

import itertools
import json

from page_factory import internal, make_page

from wikitana.models.document import ImageNode, Node
from wikitana.models.page import Image, Link, Page, Paragraph, Section, Sentence
from wikitana.services.converter import _Converter, article_url, build_summary, convert


def _counter():
    counter = itertools.count(1)
    return lambda: f"uid-{next(counter)}"


def _page(*sections, page_id=7, title="Ada Lovelace"):
    return Page(page_id=page_id, title=title, sections=list(sections))


def _paragraph(*texts, images=()):
    return Paragraph(sentences=[Sentence(text=t) for t in texts], images=list(images))


def _convert(pages, references=None, **kwargs):
    references = references if references is not None else {p.title: p for p in pages}
    return convert(pages, references, uid_factory=_counter(), **kwargs)


class TestPageNode:
    def test_root_node_uses_page_id_and_bold_title(self):
        doc = _convert([_page(Section(index=0, paragraphs=[_paragraph("Hello.")]))])
        root = doc.nodes[0]
        assert root.uid == "7"
        assert root.name == "**Ada Lovelace**"
        assert root.supertags == ["wiki-page"]

    def test_document_header(self):
        doc = _convert([_page()])
        assert doc.version == "TanaIntermediateFile V0.1"
        assert [(t.uid, t.name) for t in doc.supertags] == [("wiki-page", "Wikipedia")]

    def test_accepts_crawl_result_mapping(self):
        a, b = make_page(1, "A", ["B"]), make_page(2, "B")
        doc = convert({1: a, 2: b}, {"A": a, "B": b}, uid_factory=_counter())
        assert [node.uid for node in doc.nodes] == ["1", "2"]

    def test_only_top_level_sections_are_converted_at_root(self):
        stray = Section(index=3, indentation=1, title="Stray", paragraphs=[_paragraph("x.")])
        top = Section(index=1, indentation=0, title="Life", paragraphs=[_paragraph("y.")])
        doc = _convert([_page(top, stray)])
        assert [child.name for child in doc.nodes[0].children] == ["**Life**"]


class TestSections:
    def test_untitled_section_is_flattened(self):
        lead = Section(index=0, paragraphs=[_paragraph("One."), _paragraph("Two.")])
        root = _convert([_page(lead)]).nodes[0]
        assert [child.name for child in root.children] == ["One.", "Two."]

    def test_titled_section_wraps_children_with_derived_uid(self):
        section = Section(index=2, indentation=0, title="Early life", paragraphs=[_paragraph("Born.")])
        root = _convert([_page(section)]).nodes[0]
        wrapper = root.children[0]
        assert wrapper.uid == "7-2-0"
        assert wrapper.name == "**Early life**"
        assert [child.name for child in wrapper.children] == ["Born."]

    def test_paragraphs_come_before_subsections(self):
        sub = Section(index=3, indentation=1, title="Sub", paragraphs=[_paragraph("Inner.")])
        top = Section(index=2, indentation=0, title="Top", paragraphs=[_paragraph("Outer.")], children=[sub])
        wrapper = _convert([_page(top)]).nodes[0].children[0]
        assert [child.name for child in wrapper.children] == ["Outer.", "**Sub**"]
        assert wrapper.children[1].uid == "7-3-1"

    def test_children_skipping_a_level_are_not_attached(self):
        skipped = Section(index=3, indentation=2, title="Too deep", paragraphs=[_paragraph("Lost.")])
        top = Section(index=2, indentation=0, title="Top", paragraphs=[_paragraph("Kept.")], children=[skipped])
        wrapper = _convert([_page(top)]).nodes[0].children[0]
        assert [child.name for child in wrapper.children] == ["Kept."]

    def test_empty_nodes_are_filtered(self):
        section = Section(
            index=1,
            indentation=0,
            title="Sparse",
            paragraphs=[_paragraph(), _paragraph(""), _paragraph("Real.")],
            children=[Section(index=2, indentation=1, title="")],
        )
        wrapper = _convert([_page(section)]).nodes[0].children[0]
        assert [child.name for child in wrapper.children] == ["Real."]

    def test_empty_titled_section_is_kept_as_wrapper(self):
        section = Section(index=1, indentation=0, title="See also")
        root = _convert([_page(section)]).nodes[0]
        assert root.children[0].name == "**See also**"
        assert root.children[0].children == []

    def test_deeply_nested_sections_do_not_overflow(self):
        section = Section(index=500, indentation=500, title="Leaf", paragraphs=[_paragraph("deep.")])
        for depth in range(499, -1, -1):
            section = Section(index=depth, indentation=depth, title=f"S{depth}", children=[section])
        doc = _convert([_page(section)])
        assert doc.summary.total_nodes > 1


class TestParagraphs:
    def test_sentences_joined_by_newline(self):
        node = _convert([_page(Section(index=0, paragraphs=[_paragraph("One.", "Two.")]))]).nodes[0].children[0]
        assert node.name == "One.\nTwo."
        assert node.uid == "uid-1"

    def test_caption_only_image_is_promoted(self):
        image = Image(thumbnail="https://upload.example/a.jpg", caption="A portrait")
        node = _convert([_page(Section(index=0, paragraphs=[_paragraph(images=[image])]))]).nodes[0].children[0]
        assert isinstance(node, ImageNode)
        assert node.name == "A portrait"
        assert node.media_url == "https://upload.example/a.jpg"

    def test_image_with_text_stays_a_child(self):
        image = Image(thumbnail="https://upload.example/a.jpg", alt="alt text")
        node = _convert([_page(Section(index=0, paragraphs=[_paragraph("Text.", images=[image])]))]).nodes[0].children[0]
        assert isinstance(node, Node)
        assert node.name == "Text."
        assert node.children[0].name == "alt text"

    def test_two_images_without_text_are_wrapped(self):
        images = [Image(thumbnail="https://u/1.png"), Image(thumbnail="https://u/2.png")]
        node = _convert([_page(Section(index=0, paragraphs=[_paragraph(images=images)]))]).nodes[0].children[0]
        assert isinstance(node, Node)
        assert node.name == ""
        assert [child.name for child in node.children] == ["image", "image"]

    def test_bold_italic_then_links(self):
        sentence = Sentence(
            text="Ada Lovelace was an English mathematician.",
            bolds=["Ada Lovelace"],
            italics=["English"],
            links=[internal("Mathematician", "mathematician")],
        )
        target = make_page(9, "Mathematician")
        page = _page(Section(index=0, paragraphs=[Paragraph(sentences=[sentence])]))
        node = _convert([page], {"Ada Lovelace": page, "Mathematician": target}).nodes[0].children[0]
        assert node.name == "**Ada Lovelace** was an __English__ [mathematician]([[9]])."
        assert node.refs == ["9"]


class TestLinks:
    def _render(self, link, references, text=None):
        sentence = Sentence(text=text or f"About {link.text or link.page} here.", links=[link])
        page = _page(Section(index=0, paragraphs=[Paragraph(sentences=[sentence])]))
        node = _convert([page], references).nodes[0].children[0]
        return node.name, node.refs

    def test_internal_link_to_crawled_page(self):
        target = make_page(9, "Charles Babbage")
        name, refs = self._render(internal("Charles Babbage"), {"Charles Babbage": target})
        assert name == "About [[9]] here."
        assert refs == ["9"]

    def test_internal_link_alias(self):
        target = make_page(9, "Charles Babbage")
        name, refs = self._render(internal("Charles Babbage", "Babbage"), {"Charles Babbage": target})
        assert name == "About [Babbage]([[9]]) here."
        assert refs == ["9"]

    def test_internal_link_to_failed_lookup_becomes_url(self):
        name, refs = self._render(internal("Analytical Engine"), {"Analytical Engine": None})
        assert name == "About [Analytical Engine](https://en.wikipedia.org/wiki/Analytical_Engine) here."
        assert refs == []

    def test_internal_link_uses_language(self):
        sentence = Sentence(text="Voir Chat.", links=[internal("Chat")])
        page = _page(Section(index=0, paragraphs=[Paragraph(sentences=[sentence])]))
        node = _convert([page], {}, language="fr").nodes[0].children[0]
        assert node.name == "Voir [Chat](https://fr.wikipedia.org/wiki/Chat)."

    def test_external_link(self):
        link = Link(type="external", text="archive", site="https://archive.org/x")
        name, refs = self._render(link, {})
        assert name == "About [archive](https://archive.org/x) here."
        assert refs == []

    def test_interwiki_link_falls_back_to_page(self):
        link = Link(type="interwiki", text="", page="wikt:engine", href="https://en.wiktionary.org/wiki/engine")
        name, _ = self._render(link, {})
        assert name == "About [wikt:engine](https://en.wiktionary.org/wiki/engine) here."

    def test_interwiki_link_without_text_or_page_renders_empty_label(self):
        link = Link(type="interwiki", text="", page=None, href="https://en.wiktionary.org/wiki/engine")
        rendered = _Converter({}, _counter(), "en").convert_link(link)
        assert rendered.text == "[](https://en.wiktionary.org/wiki/engine)"
        assert rendered.ref is None

    def test_link_without_target_keeps_text(self):
        link = Link(type="internal", text="a file", page=None)
        name, refs = self._render(link, {})
        assert name == "About a file here."
        assert refs == []

    def test_refs_are_deduplicated_across_sentences(self):
        target = make_page(9, "B")
        sentences = [
            Sentence(text="B once.", links=[internal("B")]),
            Sentence(text="B twice.", links=[internal("B")]),
        ]
        page = _page(Section(index=0, paragraphs=[Paragraph(sentences=sentences)]))
        node = _convert([page], {"B": target}).nodes[0].children[0]
        assert node.refs == ["9"]


class TestArticleUrl:
    def test_spaces_become_underscores(self):
        assert article_url("Ada Lovelace") == "https://en.wikipedia.org/wiki/Ada_Lovelace"

    def test_reserved_characters_are_percent_encoded(self):
        assert article_url("C++ (language)/x") == "https://en.wikipedia.org/wiki/C%2B%2B_(language)%2Fx"


class TestSummary:
    def test_counts_all_descendants(self):
        sub = Section(index=2, indentation=1, title="Sub", paragraphs=[_paragraph("a."), _paragraph("b.")])
        top = Section(index=1, indentation=0, title="Top", paragraphs=[_paragraph("c.")], children=[sub])
        doc = _convert([_page(top), _page(Section(index=0, paragraphs=[_paragraph("d.")]), page_id=8, title="B")])
        # page 7: Top, c, Sub, a, b  page 8: d
        assert doc.summary.top_level_nodes == 2
        assert doc.summary.leaf_nodes == 6
        assert doc.summary.total_nodes == 8

    def test_empty_forest(self):
        summary = build_summary([])
        assert (summary.leaf_nodes, summary.top_level_nodes, summary.total_nodes) == (0, 0, 0)


class TestDeterminism:
    def test_conversion_is_idempotent_except_random_uids(self):
        sub = Section(index=2, indentation=1, title="Sub", paragraphs=[_paragraph("a.")])
        top = Section(index=1, indentation=0, title="Top", paragraphs=[_paragraph("b.")], children=[sub])
        pages = [_page(top)]
        first = convert(pages, {})
        second = convert(pages, {})

        def shape(node):
            return (node.name, getattr(node, "refs", None), [shape(c) for c in getattr(node, "children", [])])

        assert [shape(n) for n in first.nodes] == [shape(n) for n in second.nodes]
        assert first.nodes[0].uid == second.nodes[0].uid == "7"
        assert first.nodes[0].children[0].uid == second.nodes[0].children[0].uid == "7-1-0"
        assert first.nodes[0].children[0].children[0].uid != second.nodes[0].children[0].children[0].uid


class TestSerialisation:
    def test_json_uses_tana_field_names(self):
        image = Image(thumbnail="https://u/1.png", caption="cap")
        page = _page(Section(index=0, paragraphs=[_paragraph(images=[image]), _paragraph("Text.")]))
        data = json.loads(_convert([page]).to_json())

        assert set(data) == {"version", "summary", "supertags", "nodes"}
        assert data["summary"]["leafNodes"] == 2
        assert data["summary"]["topLevelNodes"] == 1
        assert data["summary"]["totalNodes"] == 3
        root = data["nodes"][0]
        assert root["supertags"] == ["wiki-page"]
        assert root["children"][0] == {"type": "image", "uid": "uid-2", "name": "cap", "mediaUrl": "https://u/1.png"}
        assert "supertags" not in root["children"][1]
        assert root["children"][1]["refs"] == []
