"""
procurematch analyzers — pure computation modules.

Variance calculation, tolerance classification, aggregation and
recommendations, composed by the ThreeWayMatcher.
"""

from procurematch.analyzers.aggregator import AggregateOutcome, MatchAggregator, MatchTally
from procurematch.analyzers.currency import (
    CurrencyConverter,
    ExchangeRate,
    ConversionResult,
    format_currency,
)
from procurematch.analyzers.recommendations import RecommendationGenerator
from procurematch.analyzers.three_way_matching import (
    ThreeWayMatcher,
    match_invoice,
    summarize,
)
from procurematch.analyzers.tolerance import ToleranceClassification, ToleranceClassifier
from procurematch.analyzers.variance import (
    LineVariance,
    VarianceCalculator,
    index_by_item,
    variance_percentage,
)

__all__ = [
    "AggregateOutcome",
    "ConversionResult",
    "CurrencyConverter",
    "ExchangeRate",
    "LineVariance",
    "MatchAggregator",
    "MatchTally",
    "RecommendationGenerator",
    "ThreeWayMatcher",
    "ToleranceClassification",
    "ToleranceClassifier",
    "VarianceCalculator",
    "format_currency",
    "index_by_item",
    "match_invoice",
    "summarize",
    "variance_percentage",
]
