"""Conversions from native backend scores to cosine-style similarity.

All backends report similarity on the cosine scale (1.0 identical, 0.0
orthogonal, -1.0 opposite). L2 conversions are exact for unit-length
vectors, which is what the supported embedding models return.
"""

from enum import StrEnum


class Metric(StrEnum):
    COSINE = "cosine"  # score is cosine similarity
    COSINE_DISTANCE = "cosine_distance"  # 1 - cosine similarity
    L2 = "l2"  # euclidean distance
    SQUARED_L2 = "squared_l2"
    INNER_PRODUCT = "ip"  # dot product, higher is closer
    INNER_PRODUCT_DISTANCE = "ip_distance"  # 1 - dot product


def to_similarity(metric: Metric, value: float) -> float:
    match metric:
        case Metric.COSINE | Metric.INNER_PRODUCT:
            return float(value)
        case Metric.COSINE_DISTANCE | Metric.INNER_PRODUCT_DISTANCE:
            return 1.0 - float(value)
        case Metric.SQUARED_L2:
            return 1.0 - float(value) / 2.0
        case Metric.L2:
            return 1.0 - float(value) ** 2 / 2.0
