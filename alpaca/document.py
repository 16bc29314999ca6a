"""
Document interface used by discovery and the rewriter.

Morphing only needs to find elements by tag, read and write attributes,
create elements, append them, and serialize the result. Keeping that
behind a small interface lets the morphing code run against any parse
tree; SoupDocument is the BeautifulSoup-backed implementation used in
production.
"""

from abc import ABC, abstractmethod

from bs4 import BeautifulSoup, Tag

DEFAULT_PARSER = "html.parser"


class Element(ABC):
    """A single element of a parsed document."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Lower-case tag name."""

    @abstractmethod
    def get_attribute(self, name: str) -> str | None:
        """Return an attribute value, or None if it is not set."""

    @abstractmethod
    def set_attribute(self, name: str, value: str):
        """Set (or replace) an attribute."""

    @abstractmethod
    def append_child(self, child: "Element"):
        """Append child as the last child of this element."""


class Document(ABC):
    """A parsed HTML document."""

    @property
    @abstractmethod
    def root(self) -> Element:
        """The document node itself; children may be appended to it."""

    @abstractmethod
    def select(self, *tags: str) -> list[Element]:
        """All elements with one of the given tag names, in document order."""

    @abstractmethod
    def create_element(self, tag: str, attrs: dict = None) -> Element:
        """Create a detached element."""

    @abstractmethod
    def serialize(self) -> bytes:
        """Serialize the document to UTF-8 bytes."""

    def first(self, tag: str) -> Element | None:
        """First element with the given tag name, or None."""
        found = self.select(tag)
        return found[0] if found else None


class SoupElement(Element):
    """Element backed by a bs4 Tag."""

    def __init__(self, tag: Tag):
        self.tag = tag

    @property
    def name(self) -> str:
        return (self.tag.name or "").lower()

    def get_attribute(self, name: str) -> str | None:
        value = self.tag.get(name)
        if value is None:
            return None
        # bs4 splits multi-valued attributes such as rel and class
        if isinstance(value, list):
            return " ".join(value)
        return value

    def set_attribute(self, name: str, value: str):
        self.tag[name] = value

    def append_child(self, child: Element):
        self.tag.append(child.tag)

    def __repr__(self):
        return f"SoupElement(<{self.name}>)"


class SoupDocument(Document):
    """
    Document backed by BeautifulSoup.

    Args:
        html: Page source.
        parser: Any tree builder BeautifulSoup accepts.
    """

    def __init__(self, html: str, parser: str = DEFAULT_PARSER):
        self.soup = BeautifulSoup(html, parser)

    @property
    def root(self) -> Element:
        return SoupElement(self.soup)

    def select(self, *tags: str) -> list[Element]:
        return [SoupElement(tag) for tag in self.soup.find_all(list(tags))]

    def create_element(self, tag: str, attrs: dict = None) -> Element:
        return SoupElement(self.soup.new_tag(tag, attrs=dict(attrs or {})))

    def serialize(self) -> bytes:
        return str(self.soup).encode("utf-8")


def parse_html(html: str, parser: str = DEFAULT_PARSER) -> SoupDocument:
    """Parse page source into a SoupDocument."""
    return SoupDocument(html, parser)
