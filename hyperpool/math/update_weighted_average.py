"""Running weighted average used for position maturity times"""
from .fixed_point import FixedPoint


def update_weighted_average(
    average: FixedPoint,
    total_weight: FixedPoint,
    delta: FixedPoint,
    delta_weight: FixedPoint,
    is_adding: bool,
) -> FixedPoint:
    r"""Updates a weighted average by adding or removing a weighted delta.

    Rounds up when adding and down when removing.

    Arguments
    ----------
    average : FixedPoint
        The current weighted average.
    total_weight : FixedPoint
        The total weight backing the current average.
    delta : FixedPoint
        The value being added to or removed from the average.
    delta_weight : FixedPoint
        The weight of the delta.
    is_adding : bool
        True if the delta is being added, False if it is being removed.

    Returns
    -------
    FixedPoint
        The updated weighted average.
    """
    if is_adding:
        total = total_weight + delta_weight
        if total == FixedPoint(0):
            return FixedPoint(0)
        return (total_weight.mul_up(average) + delta_weight.mul_up(delta)).div_up(total)
    if total_weight == delta_weight:
        return FixedPoint(0)
    remaining = total_weight - delta_weight
    return average.mul_div_down(total_weight, remaining) - delta.mul_div_up(delta_weight, remaining)
