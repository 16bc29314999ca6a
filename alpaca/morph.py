"""
Morph
Page and resource entry points.

Flow for an HTML page:
1. Parse the page
2. Discover the stylesheets, images and icon it references
3. Run the configured strategy (target count and sizes)
4. Rewrite references so each carries its target size
5. Serialize and pad the page itself

Flow for a resource request:
1. Read the target size from the query string
2. Return the padding that brings the resource to that size

A failure in step 3 serves the page unmorphed; a failure to size the
page in step 5 serves it with morphed references but no page padding.
"""

import logging
from dataclasses import dataclass

import numpy as np

from alpaca.config import MorphConfig, resolve_strategy
from alpaca.discovery import discover_resources, read_resource
from alpaca.document import parse_html
from alpaca.errors import AlpacaError, SamplingError
from alpaca.padding import HTML_MARKER_SIZE, get_html_padding, get_object_padding
from alpaca.resources import ResourceKind, parse_resource_kind, parse_target_size
from alpaca.rewriter import insert_resource_refs

logger = logging.getLogger(__name__)

HTTP_HOST_VAR = "$http_host"


@dataclass
class MorphStats:
    """What happened while morphing one page."""
    original_size: int = 0
    final_size: int = 0
    real_objects: int = 0
    synthetic_objects: int = 0
    unpadded_objects: int = 0
    fell_back: bool = False         # strategy failed, page served unmorphed
    html_padded: bool = False


def morph_page_with_stats(
    document_bytes: bytes,
    root: str,
    own_path: str,
    alias_len: int,
    strategy_config,
    http_host: str = "",
    loader=read_resource,
    rng: np.random.Generator = None,
) -> tuple[bytes, MorphStats]:
    """
    Morph an HTML page and report what was done.

    Args:
        document_bytes: The page as served.
        root: Filesystem root of the site; "$http_host" is replaced by http_host.
        own_path: URI path of the page, used to resolve relative references.
        alias_len: Length of the location alias prefix (0 if none).
        strategy_config: MorphConfig, a plain dict, or a MorphStrategy.
        http_host: Host header of the request.
        loader: Callable mapping a filesystem path to the resource bytes.
        rng: Optional numpy generator.

    Returns:
        (padded page bytes, MorphStats)
    """
    rng = rng or np.random.default_rng()
    stats = MorphStats(original_size=len(document_bytes))

    try:
        html = document_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning("cannot read html content of %s: %s", own_path, e)
        stats.fell_back = True
        stats.final_size = len(document_bytes)
        return document_bytes, stats

    document = parse_html(html)
    full_root = root.replace(HTTP_HOST_VAR, http_host)
    resources = discover_resources(document, full_root, own_path, alias_len, loader)
    stats.real_objects = len(resources)

    try:
        strategy = resolve_strategy(strategy_config)
        plan = strategy.morph(resources, rng)
    except AlpacaError as e:
        logger.warning("cannot morph %s, serving it unmorphed: %s", own_path, e)
        stats.fell_back = True
        content = document.serialize()
        stats.final_size = len(content)
        return content, stats

    insert_resource_refs(document, plan)
    stats.synthetic_objects = len(plan.synthetic)
    stats.unpadded_objects = len(plan.unpadded)

    content = document.serialize()
    try:
        target_size = strategy.html_target_size(len(content) + HTML_MARKER_SIZE, rng)
    except SamplingError as e:
        logger.warning("cannot sample html page size for %s: %s", own_path, e)
        stats.final_size = len(content)
        return content, stats

    content = get_html_padding(content, target_size)
    stats.html_padded = True
    stats.final_size = len(content)
    return content, stats


def morph_page(
    document_bytes: bytes,
    root: str,
    own_path: str,
    alias_len: int,
    strategy_config,
    http_host: str = "",
    loader=read_resource,
    rng: np.random.Generator = None,
) -> bytes:
    """Morph an HTML page; see morph_page_with_stats for the arguments."""
    content, _ = morph_page_with_stats(
        document_bytes, root, own_path, alias_len, strategy_config,
        http_host=http_host, loader=loader, rng=rng,
    )
    return content


def morph_with_config(
    config: MorphConfig,
    document_bytes: bytes,
    own_path: str,
    http_host: str = "",
    rng: np.random.Generator = None,
) -> bytes:
    """Morph a page using the root and alias stored in a MorphConfig."""
    return morph_page(
        document_bytes, config.root, own_path, config.alias, config,
        http_host=http_host, rng=rng,
    )


def morph_resource(content_kind, query_string: str, current_size: int) -> bytes:
    """
    Return the padding to append to a resource response.

    Args:
        content_kind: Content-Type of the response, or a ResourceKind.
        query_string: Query part of the request (after "?").
        current_size: Size of the unpadded response body.

    Returns:
        Padding bytes; empty if the request carries no usable target size.
    """
    if isinstance(content_kind, ResourceKind):
        kind = content_kind
    else:
        kind = parse_resource_kind(content_kind or "")

    target_size = parse_target_size(query_string or "")
    if target_size == 0 or target_size <= current_size:
        return b""
    return get_object_padding(kind, current_size, target_size)
