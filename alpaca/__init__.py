"""
ALPaCA
Page morphing against website fingerprinting.

An observer who sees only encrypted traffic can still identify a page
from the number and sizes of the objects it loads. ALPaCA changes that
signature on the server side:

1. Real objects (stylesheets, images) are padded to chosen sizes
2. Fake padding objects are added to the page
3. The HTML page itself is padded

Sizes come either from rounding to fixed multiples (deterministic) or
from sampling distributions (probabilistic).

Usage:
    from alpaca import MorphConfig, morph_page, morph_resource
    config = MorphConfig()
    page = morph_page(html_bytes, "/var/www/site", "/index.html", 0, config)
    padding = morph_resource("image/png", "alpaca-padding=10000", 8123)
"""

import logging

from alpaca.config import DeterministicConfig, MorphConfig, ProbabilisticConfig
from alpaca.distribution import Distributions, parse_dist, sample_ge, sample_ge_many
from alpaca.errors import (
    AlpacaError,
    ConfigError,
    InvalidRange,
    ParseError,
    PathEscape,
    SamplingError,
    SamplingExhausted,
)
from alpaca.morph import MorphStats, morph_page, morph_page_with_stats, morph_resource, morph_with_config
from alpaca.resources import ResourceKind, parse_target_size
from alpaca.sizes import get_multiple, get_multiples_in_range
from alpaca.strategies import DeterministicStrategy, ProbabilisticStrategy

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.4.0"
__all__ = [
    "morph_page",
    "morph_page_with_stats",
    "morph_resource",
    "morph_with_config",
    "MorphStats",
    "MorphConfig",
    "DeterministicConfig",
    "ProbabilisticConfig",
    "DeterministicStrategy",
    "ProbabilisticStrategy",
    "Distributions",
    "parse_dist",
    "sample_ge",
    "sample_ge_many",
    "get_multiple",
    "get_multiples_in_range",
    "ResourceKind",
    "parse_target_size",
    "AlpacaError",
    "ConfigError",
    "InvalidRange",
    "ParseError",
    "PathEscape",
    "SamplingError",
    "SamplingExhausted",
]
