from typing import Any, Dict

from sqlalchemy import Float, case, cast


def rating_delta_values(model, count_delta: int, sum_delta: int) -> Dict[str, Any]:
    """
    SET clause moving a rating aggregate by (count_delta, sum_delta) in one statement.

    Every right-hand side reads the pre-update row, so count, sum and average
    always move together and concurrent writers cannot interleave between them.
    """
    new_count = model.ratings_count + count_delta
    new_sum = model.ratings_sum + sum_delta
    return {
        "ratings_count": new_count,
        "ratings_sum": new_sum,
        "average_rating": case(
            (new_count > 0, cast(new_sum, Float) / new_count),
            else_=0.0,
        ),
    }


def average(ratings_sum: int, ratings_count: int) -> float:
    return ratings_sum / ratings_count if ratings_count > 0 else 0.0
