"""
DOM helpers shared by the listing and detail parsers.
"""

import re
from typing import Callable, Iterable, Optional

from bs4 import BeautifulSoup, NavigableString, Tag

# Elements rendered on their own paragraph
BLOCK_TAGS = (
    "p", "div", "section", "article", "header", "footer", "table", "ul", "ol",
    "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre", "dl",
)
# Elements rendered on their own line
LINE_TAGS = ("li", "tr", "dt", "dd")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def element_text(element: Optional[Tag]) -> str:
    """Whitespace-normalised text of an element, or "" when missing."""
    if element is None:
        return ""
    return " ".join(element.get_text(" ").split())


def first_element(root: Tag, selectors: Iterable[str],
                  accept: Optional[Callable[[Tag], bool]] = None) -> Optional[Tag]:
    """First element matched by the chain, optionally the first that accept() takes."""
    for selector in selectors:
        if accept is None:
            element = root.select_one(selector)
            if element is not None:
                return element
            continue
        for element in root.select(selector):
            if accept(element):
                return element
    return None


def first_text(root: Tag, selectors: Iterable[str]) -> str:
    for selector in selectors:
        text = element_text(root.select_one(selector))
        if text:
            return text
    return ""


def block_text(element: Optional[Tag]) -> str:
    """
    Text of an element laid out roughly as a browser would render it.

    Paragraph-level blocks are separated by a blank line, list items and
    <br> by a single newline, and runs of spaces inside a line are collapsed.
    """
    if element is None:
        return ""
    element = parse_html(str(element))
    for br in element.find_all("br"):
        br.replace_with(NavigableString("\n"))
    for tag in element.find_all(LINE_TAGS):
        tag.insert_after(NavigableString("\n"))
    for tag in element.find_all(BLOCK_TAGS):
        tag.insert_before(NavigableString("\n\n"))
        tag.insert_after(NavigableString("\n\n"))

    lines = [" ".join(line.split()) for line in element.get_text().split("\n")]
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip()
