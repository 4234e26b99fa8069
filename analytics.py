"""
Aggregation pipelines behind the /potions/analytics routes.

The fixed pipelines take no input. The search pipeline is assembled from three
query parameters, each of which must belong to a closed set before it is used
as a field reference.
"""

import logging
from enum import Enum
from typing import Dict, List, NamedTuple, Optional

logger = logging.getLogger(__name__)


class GroupKey(str, Enum):
    VENDOR = "vendor_id"
    CATEGORIES = "categories"


class Metric(str, Enum):
    AVG = "avg"
    SUM = "sum"
    COUNT = "count"


class MetricField(str, Enum):
    SCORE = "score"
    PRICE = "price"


class InvalidSearchParameters(ValueError):
    pass


class SearchQuery(NamedTuple):
    group: GroupKey
    metric: Metric
    field: MetricField


def distinct_categories() -> List[Dict]:
    return [
        {"$unwind": "$categories"},
        {"$group": {"_id": "$categories"}},
        {"$count": "nombre_categories"},
    ]


def average_score_by_vendor() -> List[Dict]:
    return [{"$group": {"_id": "$vendor_id", "moyenne": {"$avg": "$score"}}}]


def average_score_by_category() -> List[Dict]:
    return [
        {"$unwind": "$categories"},
        {"$group": {"_id": "$categories", "moyenne": {"$avg": "$score"}}},
    ]


def strength_flavor_ratio() -> List[Dict]:
    return [{"$project": {"ratio": {"$divide": ["$ratings.strength", "$ratings.flavor"]}}}]


def parse_search_query(group: Optional[str], metric: Optional[str], field: Optional[str]) -> SearchQuery:
    """Validate the raw search parameters.

    All three are required for every metric, ``field`` included even though
    ``count`` never reads it.
    """
    try:
        return SearchQuery(GroupKey(group), Metric(metric), MetricField(field))
    except ValueError:
        logger.warning("Rejected analytics search group=%r metric=%r field=%r", group, metric, field)
        raise InvalidSearchParameters("Invalid parameters")


def _accumulator(query: SearchQuery) -> Dict:
    ref = f"${query.field.value}"
    if query.metric is Metric.COUNT:
        return {"count": {"$sum": 1}}
    if query.metric is Metric.SUM:
        return {"total": {"$sum": ref}}
    return {"average": {"$avg": ref}}


def build_search_pipeline(query: SearchQuery) -> List[Dict]:
    pipeline: List[Dict] = []
    if query.group is GroupKey.CATEGORIES:
        pipeline.append({"$unwind": f"${query.group.value}"})
    pipeline.append({"$group": {"_id": f"${query.group.value}", **_accumulator(query)}})
    return pipeline
