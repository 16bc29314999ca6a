"""
Content Padding
Grow HTML pages and resources to an exact target size.

The padding must not change how the content renders, so text formats
hide it inside a comment and binary formats get raw trailing bytes,
which image decoders ignore.
"""

import os
import random
import string

from alpaca.resources import ResourceKind

CSS_COMMENT_START = b"/*"
CSS_COMMENT_END = b"*/"
HTML_COMMENT_START = b"<!--"
HTML_COMMENT_END = b"-->"

CSS_MARKER_SIZE = len(CSS_COMMENT_START) + len(CSS_COMMENT_END)      # 4
HTML_MARKER_SIZE = len(HTML_COMMENT_START) + len(HTML_COMMENT_END)   # 7

# Alphanumerics can never close a CSS or HTML comment early.
_FILLER_CHARS = string.ascii_letters + string.digits


def random_chars(n: int) -> bytes:
    """Return n random ASCII alphanumeric bytes."""
    if n <= 0:
        return b""
    return "".join(random.choices(_FILLER_CHARS, k=n)).encode("ascii")


def get_html_padding(content: bytes, target_size: int) -> bytes:
    """
    Pad an HTML page to exactly target_size bytes.

    The padding is an HTML comment appended to the page; both markers
    count towards the target. Callers reserve HTML_MARKER_SIZE bytes
    before choosing the target, so a target that cannot hold the markers
    leaves the page untouched.

    Args:
        content: The serialized page.
        target_size: Desired total length.

    Returns:
        The padded page.
    """
    pad_len = target_size - len(content)
    if pad_len < HTML_MARKER_SIZE:
        return content
    filler = random_chars(pad_len - HTML_MARKER_SIZE)
    return content + HTML_COMMENT_START + filler + HTML_COMMENT_END


def get_css_padding(pad_len: int) -> bytes:
    """Return pad_len bytes of CSS comment; pad_len must be >= CSS_MARKER_SIZE."""
    return CSS_COMMENT_START + random_chars(pad_len - CSS_MARKER_SIZE) + CSS_COMMENT_END


def get_binary_padding(pad_len: int) -> bytes:
    """Return pad_len random bytes."""
    if pad_len <= 0:
        return b""
    return os.urandom(pad_len)


def get_object_padding(kind: ResourceKind, size: int, target_size: int) -> bytes:
    """
    Padding to append to a resource of the given kind and current size.

    CSS that cannot fit both comment markers is left alone, as is any
    resource already at or beyond its target.
    """
    if target_size <= size:
        return b""
    pad_len = target_size - size
    if kind is ResourceKind.CSS:
        if pad_len < CSS_MARKER_SIZE:
            return b""
        return get_css_padding(pad_len)
    return get_binary_padding(pad_len)
