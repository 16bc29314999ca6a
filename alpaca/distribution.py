"""
Distribution Sampler
Draws object counts and sizes from probability distributions.

A distribution is given either as a known parametric family,
"Name/p1,p2", or as a path to a ".dist" file holding an empirical
(value, probability) table. All draws are truncated to non-negative
integers, and every draw that must clear a floor is rejection-sampled
with a fixed retry budget so a badly chosen distribution degrades into
an error instead of an unbounded loop.
"""

import logging
import math
import sys
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

import numpy as np

from alpaca.errors import ParseError, SamplingError, SamplingExhausted

logger = logging.getLogger(__name__)

# Draws per sample_ge call before giving up.
SAMPLE_LIMIT = 30

DIST_FILE_SUFFIX = ".dist"

# Largest Poisson lambda or Binomial n accepted; numpy refuses values
# near the int64 limit at draw time.
MAX_COUNT_PARAM = 10**18


class Family(Enum):
    """Supported parametric families."""
    NORMAL = "Normal"
    LOGNORMAL = "LogNormal"
    EXPONENTIAL = "Exponential"
    POISSON = "Poisson"
    BINOMIAL = "Binomial"
    GAMMA = "Gamma"


ONE_PARAM_FAMILIES = {Family.EXPONENTIAL, Family.POISSON}
TWO_PARAM_FAMILIES = {Family.NORMAL, Family.LOGNORMAL, Family.BINOMIAL, Family.GAMMA}

# Older configurations spell the exponential family "Exp".
_FAMILY_ALIASES = {"Exp": Family.EXPONENTIAL}


def _truncate(x) -> int:
    x = float(x)
    if math.isnan(x) or x <= 0:
        return 0
    if math.isinf(x):
        return sys.maxsize
    return int(x)


@dataclass(frozen=True)
class OneParamDist:
    """Exponential(rate) or Poisson(lambda)."""
    family: Family
    p: float

    @property
    def name(self) -> str:
        return self.family.value

    @property
    def params(self) -> tuple:
        return (self.p,)

    def sample(self, rng: np.random.Generator) -> int:
        if self.family is Family.EXPONENTIAL:
            return _truncate(rng.exponential(1.0 / self.p))
        return _truncate(rng.poisson(self.p))


@dataclass(frozen=True)
class TwoParamDist:
    """Normal(mean, std), LogNormal(mu, sigma), Binomial(n, p) or Gamma(shape, scale)."""
    family: Family
    a: float
    b: float

    @property
    def name(self) -> str:
        return self.family.value

    @property
    def params(self) -> tuple:
        return (self.a, self.b)

    def sample(self, rng: np.random.Generator) -> int:
        if self.family is Family.NORMAL:
            return _truncate(rng.normal(self.a, self.b))
        if self.family is Family.LOGNORMAL:
            return _truncate(rng.lognormal(self.a, self.b))
        if self.family is Family.BINOMIAL:
            return _truncate(rng.binomial(int(self.a), self.b))
        return _truncate(rng.gamma(self.a, self.b))


@dataclass(frozen=True)
class CustomDist:
    """
    Empirical distribution over an explicit support.

    values and probs are parallel and keep the order they had in the
    distribution file; sampling walks them in that order.
    """
    values: tuple
    probs: tuple

    name = "custom"

    @property
    def params(self) -> tuple:
        return self.probs

    def pick(self, u: float) -> int:
        """Inverse-CDF lookup for a uniform draw u in (0, 1]."""
        total = 0.0
        for value, prob in zip(self.values, self.probs):
            total += prob
            if total >= u:
                return value
        return self.values[-1]

    def sample(self, rng: np.random.Generator) -> int:
        # random() is [0, 1); flip it to (0, 1]
        return self.pick(1.0 - rng.random())


def parse_dist(spec: str):
    """
    Parse a distribution spec into a OneParamDist, TwoParamDist or CustomDist.

    Args:
        spec: "Name/p1,p2,..." or a path ending in ".dist".

    Raises:
        ParseError: On unknown names, wrong arity, or malformed tokens.
    """
    spec = spec.strip()
    if spec.endswith(DIST_FILE_SUFFIX):
        return load_dist_file(spec)

    name, sep, raw_params = spec.partition("/")
    if not sep:
        raise ParseError(f"invalid distribution {spec!r}")

    family = _FAMILY_ALIASES.get(name)
    if family is None:
        try:
            family = Family(name)
        except ValueError:
            raise ParseError(f"invalid distribution {spec!r}") from None

    try:
        params = [float(tok) for tok in raw_params.split(",")]
    except ValueError:
        raise ParseError(f"invalid parameters in distribution {spec!r}") from None

    needed = 1 if family in ONE_PARAM_FAMILIES else 2
    if len(params) != needed:
        raise ParseError(
            f"{family.value} distribution requires {needed} params, "
            f"{len(params)} given"
        )
    _check_params(family, params)

    if needed == 1:
        return OneParamDist(family, params[0])
    return TwoParamDist(family, params[0], params[1])


def _check_params(family: Family, params: list[float]):
    if any(math.isnan(p) or math.isinf(p) for p in params):
        raise ParseError(f"{family.value} parameters must be finite: {params}")
    if family is Family.EXPONENTIAL and params[0] <= 0:
        raise ParseError("Exponential rate must be > 0")
    if family is Family.POISSON and not 0 <= params[0] <= MAX_COUNT_PARAM:
        raise ParseError(f"Poisson lambda must be in [0, {MAX_COUNT_PARAM}]")
    if family in (Family.NORMAL, Family.LOGNORMAL) and params[1] < 0:
        raise ParseError(f"{family.value} deviation must be >= 0")
    if family is Family.BINOMIAL and (not 0 <= params[0] <= MAX_COUNT_PARAM or not 0 <= params[1] <= 1):
        raise ParseError(f"Binomial requires 0 <= n <= {MAX_COUNT_PARAM} and 0 <= p <= 1")
    if family is Family.GAMMA and (params[0] <= 0 or params[1] <= 0):
        raise ParseError("Gamma shape and scale must be > 0")


def load_dist_file(path: str | Path) -> CustomDist:
    """
    Load an empirical distribution from a ".dist" file.

    The file holds whitespace-separated "value probability" pairs, one per
    line or as a flat token stream.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"cannot open {path}: {e}") from e
    return parse_dist_table(text, source=str(path))


def parse_dist_table(text: str, source: str = "<string>") -> CustomDist:
    """Parse alternating value/probability tokens into a CustomDist."""
    tokens = text.split()
    if not tokens:
        raise ParseError(f"invalid dist file {source}: no entries")
    if len(tokens) % 2 != 0:
        raise ParseError(
            f"invalid dist file {source}: odd number of tokens ({len(tokens)})"
        )

    values = []
    probs = []
    for value_tok, prob_tok in zip(tokens[0::2], tokens[1::2]):
        try:
            value = int(value_tok)
            prob = float(prob_tok)
        except ValueError:
            raise ParseError(
                f"invalid dist file {source}, entry {value_tok} {prob_tok}"
            ) from None
        if value < 0 or math.isnan(prob) or prob < 0:
            raise ParseError(
                f"invalid dist file {source}, entry {value_tok} {prob_tok}"
            )
        values.append(value)
        probs.append(prob)

    return CustomDist(tuple(values), tuple(probs))


@dataclass(frozen=True)
class Distributions:
    """The three distributions the probabilistic strategy needs."""
    html: object        # html page size
    obj_num: object     # number of objects
    obj_size: object    # size of each object

    @classmethod
    def from_specs(cls, dist_html: str, dist_obj_num: str, dist_obj_size: str) -> "Distributions":
        """
        Build all three distributions; any parse failure aborts construction.

        Results are cached per spec triple, which is safe because
        Distributions is immutable.
        """
        return _cached_distributions(dist_html, dist_obj_num, dist_obj_size)


@lru_cache(maxsize=32)
def _cached_distributions(dist_html: str, dist_obj_num: str, dist_obj_size: str) -> Distributions:
    return Distributions(
        html=parse_dist(dist_html),
        obj_num=parse_dist(dist_obj_num),
        obj_size=parse_dist(dist_obj_size),
    )


def sample_ge(dist, floor: int, rng: np.random.Generator = None) -> int:
    """
    Sample a value >= floor, trying at most SAMPLE_LIMIT times.

    Raises:
        SamplingExhausted: If no draw cleared the floor.
        SamplingError: If the generator rejected the distribution's parameters.
    """
    rng = rng or np.random.default_rng()
    for _ in range(SAMPLE_LIMIT):
        try:
            value = dist.sample(rng)
        except (ValueError, OverflowError) as e:
            raise SamplingError(f"cannot sample distribution {dist.name}: {e}") from e
        if value >= floor:
            return value
    logger.debug("sample_ge: %s never reached %d", dist.name, floor)
    raise SamplingExhausted(dist.name, floor, SAMPLE_LIMIT)


def sample_ge_many(dist, floor: int, n: int, rng: np.random.Generator = None) -> list[int]:
    """Draw n independent values >= floor; the first exhaustion propagates."""
    rng = rng or np.random.default_rng()
    return [sample_ge(dist, floor, rng) for _ in range(n)]
