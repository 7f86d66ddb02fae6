# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic aggregation domain.

Example:
    from src.domains.academics import AggregateCache, AggregationEngine

    engine = AggregationEngine(ledger, AggregateCache(get_redis()), roster)
    snapshot = await engine.get_student_average(student_id, "Trimestre 1")
"""

from src.domains.academics.aggregation import (
    AggregateSnapshot,
    AggregationEngine,
    ClassAggregate,
    ClassStatistic,
    GradeSummary,
    TermOverview,
    rank_statistics,
    round_average,
    summarize,
)
from src.domains.academics.cache import AggregateCache, KeyValueStore
from src.domains.academics.orientation import (
    OrientationBand,
    classify,
    classify_optional,
    ordered_bands,
)

__all__ = [
    "AggregateCache",
    "AggregateSnapshot",
    "AggregationEngine",
    "ClassAggregate",
    "ClassStatistic",
    "GradeSummary",
    "KeyValueStore",
    "OrientationBand",
    "TermOverview",
    "classify",
    "classify_optional",
    "ordered_bands",
    "rank_statistics",
    "round_average",
    "summarize",
]
