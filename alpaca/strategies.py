"""
Morphing Strategies
Decide how many objects a page should have and how large each should be.

Two interchangeable strategies:

  DeterministicStrategy: rounds the object count and every size up to
                         fixed multiples (pages collapse onto a grid).
  ProbabilisticStrategy: samples count and sizes from distributions
                         and matches the samples to the real objects.

Both keep every real object, assign target sizes where they can, and add
fake padding objects so the final count is never below the original.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np

from alpaca.distribution import Distributions, sample_ge, sample_ge_many
from alpaca.errors import InvalidRange
from alpaca.resources import MorphPlan, RealResource, SyntheticResource
from alpaca.sizes import get_multiple, get_multiples_in_range

logger = logging.getLogger(__name__)


class MorphStrategy(ABC):
    """Interface shared by the deterministic and probabilistic strategies."""

    @abstractmethod
    def morph(self, resources: list[RealResource], rng: np.random.Generator = None) -> MorphPlan:
        """
        Assign target sizes to the real resources and create padding objects.

        Args:
            resources: Discovered resources, in discovery order.
            rng: Optional numpy generator.

        Returns:
            MorphPlan with the real resources (same order) and the new
            synthetic ones.

        Raises:
            AlpacaError: If no plan can be produced; the page is then
                served unmorphed.
        """

    @abstractmethod
    def html_target_size(self, min_size: int, rng: np.random.Generator = None) -> int:
        """Choose the padded size of the HTML page itself (>= min_size)."""


class DeterministicStrategy(MorphStrategy):
    """
    Round count and sizes up to multiples.

    Args:
        obj_num: The object count becomes a multiple of this.
        obj_size: Every object and the page become a multiple of this.
        max_obj_size: Upper bound for fake object sizes; a multiple of obj_size.
    """

    def __init__(self, obj_num: int, obj_size: int, max_obj_size: int):
        if obj_num < 1 or obj_size < 1:
            raise InvalidRange(
                f"obj_num and obj_size must be >= 1, got {obj_num} and {obj_size}"
            )
        if obj_size > max_obj_size or max_obj_size % obj_size != 0:
            raise InvalidRange(
                f"max_obj_size {max_obj_size} must be a multiple of obj_size {obj_size}"
            )
        self.obj_num = obj_num
        self.obj_size = obj_size
        self.max_obj_size = max_obj_size

    def morph(self, resources, rng=None):
        n = len(resources)
        target_count = get_multiple(self.obj_num, n)

        for resource in resources:
            resource.assign_target(get_multiple(self.obj_size, resource.min_size))

        fake_sizes = get_multiples_in_range(
            self.obj_size, self.max_obj_size, target_count - n, rng
        )
        return MorphPlan(
            real=list(resources),
            synthetic=[SyntheticResource(size) for size in fake_sizes],
        )

    def html_target_size(self, min_size, rng=None):
        return get_multiple(self.obj_size, min_size)


class ProbabilisticStrategy(MorphStrategy):
    """
    Sample the page shape from distributions.

    Args:
        distributions: HTML size, object count and object size distributions.
    """

    def __init__(self, distributions: Distributions):
        self.distributions = distributions

    def morph(self, resources, rng=None):
        rng = rng or np.random.default_rng()
        n = len(resources)

        # We'll have at least as many objects as the original ones
        target_count = sample_ge(self.distributions.obj_num, n, rng)
        sizes = sample_ge_many(self.distributions.obj_size, 1, target_count, rng)

        plan = match_sizes(resources, sizes)
        if plan.unpadded:
            logger.warning(
                "no padding was found for %d object(s): %s",
                len(plan.unpadded),
                ", ".join(r.uri for r in plan.unpadded),
            )
        return plan

    def html_target_size(self, min_size, rng=None):
        return sample_ge(self.distributions.html, min_size, rng)


def match_sizes(resources: list[RealResource], sizes: list[int]) -> MorphPlan:
    """
    Greedily match sampled sizes to real resources.

    Resources are visited smallest first and sizes in ascending order. A
    size at least as large as the pending resource's minimum is assigned
    to it; a size that is too small becomes a fake object and stops the
    matching, so every remaining size also becomes a fake object and the
    remaining resources stay unpadded.
    """
    pending = sorted(resources, key=lambda r: len(r.content))
    synthetic = []
    cursor = 0
    matching = True

    for size in sorted(sizes):
        if matching and cursor < len(pending) and size >= pending[cursor].min_size:
            pending[cursor].assign_target(size)
            cursor += 1
            continue
        matching = False
        synthetic.append(SyntheticResource(size))

    return MorphPlan(
        real=list(resources),
        synthetic=synthetic,
        unpadded=pending[cursor:],
    )
