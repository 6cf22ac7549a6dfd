from typing import Set

from wikitana.models.page import Page


def parse_page_links(page: Page) -> Set[str]:
    """Return the distinct article titles *page* links to.

    External and interwiki links are ignored, as are internal links without a
    resolvable target title (e.g. links into the ``File:`` namespace).
    """
    return {
        link.page
        for paragraph in page.paragraphs()
        for link in paragraph.links()
        if link.type == "internal" and link.page
    }
