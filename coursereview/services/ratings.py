"""
coursereview/services/ratings.py
Overall rating, derived from the three star ratings and never stored
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from coursereview.orm.review import Review

RATING_MIN = 1
RATING_MAX = 5

# SQL counterpart used for top-rated sorting and course averages
average_rating_expr = (
    Review.rating_professor + Review.rating_material + Review.rating_peers
) / 3.0


def compute_overall_rating(professor: int, material: int, peers: int) -> float:
    """
    Mean of the three ratings rounded to one decimal, halves rounded up.

    >>> compute_overall_rating(4, 3, 5)
    4.0
    >>> compute_overall_rating(5, 5, 4)
    4.7
    """
    mean = Decimal(professor + material + peers) / Decimal(3)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def round_average(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
