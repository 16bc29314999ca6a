"""
Size Arithmetic
Rounding used by the deterministic morphing strategy.

Object counts and sizes are rounded up to multiples of a fixed step, so
every page maps onto a coarse grid of (count, size) values.
"""

import numpy as np

from alpaca.errors import InvalidRange


def get_multiple(step: int, floor: int) -> int:
    """
    Return the smallest multiple of step that is >= floor.

    A floor of 0 yields step itself, so a rounded size is never zero.
    """
    if step < 1:
        raise InvalidRange(f"step must be >= 1, got {step}")
    if floor <= step:
        return step
    return -(-floor // step) * step


def get_multiples_in_range(
    step: int,
    ceiling: int,
    count: int,
    rng: np.random.Generator = None,
) -> list[int]:
    """
    Draw count uniform multiples of step in [step, ceiling].

    Args:
        step: Granularity of the returned sizes.
        ceiling: Largest allowed size; must itself be a multiple of step.
        count: Number of independent draws.
        rng: Optional numpy generator.

    Returns:
        List of sizes.

    Raises:
        InvalidRange: If step > ceiling or ceiling is not a multiple of step.
    """
    if step < 1 or step > ceiling or ceiling % step != 0:
        raise InvalidRange(
            f"cannot draw multiples of {step} up to {ceiling}"
        )
    if count <= 0:
        return []

    rng = rng or np.random.default_rng()
    multipliers = rng.integers(1, ceiling // step + 1, size=count)
    return [int(m) * step for m in multipliers]
