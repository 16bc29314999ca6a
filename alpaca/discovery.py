"""
Resource Discovery
Find the stylesheets, images and site icon a page references, map each
reference to a file under the site root, and load it.

Only resources served from the same virtual host can be morphed, so
absolute http(s) references are skipped, and so is any reference whose
resolved path leaves the page's alias prefix.
"""

import logging
import posixpath
from pathlib import Path

from alpaca.document import Document
from alpaca.errors import PathEscape
from alpaca.resources import RealResource, ResourceKind

logger = logging.getLogger(__name__)

OFF_ORIGIN_PREFIXES = ("http://", "https://")
ICON_RELS = {"icon", "shortcut icon"}


def read_resource(path: str) -> bytes:
    """Default loader: read a resource from the filesystem."""
    return Path(path).read_bytes()


def normalize_path(path: str) -> str:
    """
    Resolve "." and ".." segments without touching the filesystem.

    ".." removes the previous segment when there is one and is dropped
    otherwise, so the result never climbs above "/".
    """
    stack = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if stack:
                stack.pop()
            continue
        stack.append(segment)
    return "".join("/" + segment for segment in stack)


def resolve_resource_path(root: str, reference: str, own_path: str, alias: int = 0) -> str | None:
    """
    Map a page reference to an absolute filesystem path.

    Args:
        root: Filesystem directory the site is served from.
        reference: The href/src value, query string already removed.
        own_path: URI path of the page that holds the reference.
        alias: Length of the location alias prefix shared by the page and
            its resources; it is checked and then stripped before joining
            onto root.

    Returns:
        The filesystem path, or None for off-origin references.

    Raises:
        PathEscape: If the resolved path does not share the page's alias prefix.
    """
    if reference.startswith(OFF_ORIGIN_PREFIXES):
        return None

    relative = reference
    if not relative.startswith("/"):
        base = posixpath.dirname(own_path)
        if not base.endswith("/"):
            base += "/"
        relative = base + relative

    absolute = normalize_path(relative)
    if absolute[:alias] != own_path[:alias]:
        raise PathEscape(absolute, own_path, alias)

    return root + absolute[alias:]


def _reference_of(element) -> tuple[ResourceKind, str, bool] | None:
    """Return (kind, attribute, is_icon) for a morphable element, else None."""
    if element.name == "img":
        return ResourceKind.IMAGE, "src", False

    rel = (element.get_attribute("rel") or "").strip().lower()
    if rel == "stylesheet":
        return ResourceKind.CSS, "href", False
    if rel in ICON_RELS:
        return ResourceKind.IMAGE, "href", True
    return None


def discover_resources(
    document: Document,
    root: str,
    own_path: str,
    alias: int = 0,
    loader=read_resource,
) -> list[RealResource]:
    """
    Collect the page's morphable resources in document order.

    A resource that is off-origin, escapes the alias prefix, or cannot be
    read is skipped; the rest of the page is still processed. If the page
    has no site icon, an empty placeholder is inserted so browsers do not
    issue an unpadded favicon request.

    Returns:
        The real resources, in the order they appear in the page.
    """
    resources = []
    found_icon = False

    for element in document.select("link", "img"):
        ref = _reference_of(element)
        if ref is None:
            continue
        kind, attr, is_icon = ref
        found_icon = found_icon or is_icon

        uri = element.get_attribute(attr)
        if not uri:
            continue

        reference = uri.split("?", 1)[0]
        try:
            path = resolve_resource_path(root, reference, own_path, alias)
        except PathEscape as e:
            logger.debug("skipping %s: %s", uri, e)
            continue
        if path is None:
            logger.debug("skipping off-origin resource %s", uri)
            continue

        try:
            content = loader(path)
        except OSError as e:
            logger.debug("skipping unreadable resource %s (%s): %s", uri, path, e)
            continue

        resources.append(RealResource(kind=kind, content=content, uri=uri, element=element))

    if not found_icon:
        insert_empty_favicon(document)

    return resources


def insert_empty_favicon(document: Document):
    """Append <link href="#" rel="shortcut icon"> to <head>, or to the document root."""
    parent = document.first("head") or document.root
    parent.append_child(
        document.create_element("link", {"href": "#", "rel": "shortcut icon"})
    )
