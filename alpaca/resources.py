"""
Resource Model
Real and synthetic page resources, and the query parameter that
carries a resource's target size.
"""

from dataclasses import dataclass, field
from enum import Enum

# GET parameter appended to every morphed reference.
PADDING_PARAM = "alpaca-padding"

# Bytes reserved for "/*" and "*/" around CSS padding.
CSS_OVERHEAD = 4

SYNTHETIC_URI = "pad_object"


class ResourceKind(Enum):
    """Resource types, each with its own padding rules."""
    HTML = "html"
    CSS = "css"
    IMAGE = "image"
    PADDING = "padding"     # fake object, exists only to be fetched
    UNKNOWN = "unknown"


def parse_resource_kind(mime: str) -> ResourceKind:
    """Map a Content-Type value to a ResourceKind."""
    mime = mime.split(";", 1)[0].strip().lower()
    if mime == "text/html":
        return ResourceKind.HTML
    if mime == "text/css":
        return ResourceKind.CSS
    if mime.startswith("image/"):
        return ResourceKind.IMAGE
    return ResourceKind.UNKNOWN


def parse_target_size(query: str) -> int:
    """
    Parse the target size from a request's query string.

    Uses the last "alpaca-padding=" occurrence. Returns 0 when the
    parameter is missing or not a non-negative ASCII integer.
    """
    marker = PADDING_PARAM + "="
    if marker not in query:
        return 0
    value = query.rsplit(marker, 1)[1].split("&", 1)[0]
    # str.isdigit also accepts non-ASCII digits such as "²"
    if not (value.isascii() and value.isdigit()):
        return 0
    return int(value)


def padded_uri(uri: str, target_size: int) -> str:
    """Append the padding parameter to a reference, keeping any existing query."""
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}{PADDING_PARAM}={target_size}"


def min_required_size(kind: ResourceKind, content_len: int) -> int:
    """Smallest target size that can hold the content plus its padding markers."""
    if kind is ResourceKind.CSS:
        return content_len + CSS_OVERHEAD
    return content_len


@dataclass(eq=False)
class RealResource:
    """
    A resource referenced by the page and loaded from disk.

    Attributes:
        kind: CSS or IMAGE for discovered resources.
        content: The resource's bytes.
        uri: The reference exactly as written in the page, query included.
        element: The document element holding the reference.
        target_size: Size to pad to; None until a strategy decides it.
    """
    kind: ResourceKind
    content: bytes
    uri: str
    element: object = None
    target_size: int | None = None

    @property
    def min_size(self) -> int:
        return min_required_size(self.kind, len(self.content))

    def assign_target(self, size: int):
        """Set the target size. May only happen once, and never below min_size."""
        if self.target_size is not None:
            raise ValueError(f"target size of {self.uri} already set")
        if size < self.min_size:
            raise ValueError(
                f"target size {size} of {self.uri} is below {self.min_size}"
            )
        self.target_size = size


@dataclass(frozen=True)
class SyntheticResource:
    """A fake padding object; it has no content, only a size."""
    target_size: int
    kind: ResourceKind = field(default=ResourceKind.PADDING, init=False)
    uri: str = field(default=SYNTHETIC_URI, init=False)
    content: bytes = field(default=b"", init=False)


@dataclass
class MorphPlan:
    """
    Outcome of a morphing strategy.

    real keeps the discovered resources in discovery order; synthetic holds
    the padding objects added on top. unpadded lists real resources that
    got no target size and will be served as-is.
    """
    real: list
    synthetic: list = field(default_factory=list)
    unpadded: list = field(default_factory=list)

    @property
    def object_count(self) -> int:
        return len(self.real) + len(self.synthetic)
