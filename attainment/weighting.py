from decimal import Decimal

SCORE_PLACES = Decimal('0.0001')


def to_decimal(value):
    """Convert a number (float, int, str, Decimal) to Decimal without float artifacts"""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def renormalized_weighted_average(pairs):
    """Weighted average over the defined inputs only.

    ``pairs`` is an iterable of ``(value, weight)``. Pairs whose value is None are
    dropped together with their weight and the remaining weights are rescaled to
    sum to 1. Returns None when nothing is defined or the remaining weights sum
    to zero.

    >>> renormalized_weighted_average([(3, '0.3'), (None, '0.3'), (1, '0.4')])
    Decimal('1.857142857142857142857142857')
    """
    total_weighted = Decimal('0')
    total_weight = Decimal('0')
    for value, weight in pairs:
        if value is None:
            continue
        weight = to_decimal(weight)
        total_weighted += to_decimal(value) * weight
        total_weight += weight

    if total_weight == Decimal('0'):
        return None
    return total_weighted / total_weight


def quantize_score(value):
    """Round a score to the precision stored in attainment rows"""
    if value is None:
        return None
    return to_decimal(value).quantize(SCORE_PLACES)
