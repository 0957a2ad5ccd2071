"""
Tolerance classification of variance percentages.

A variance is *acceptable* when its absolute percentage is within the field's
threshold (boundary inclusive), *actionable* above it, and *critical* above
the escalation band.
"""

from __future__ import annotations

from dataclasses import dataclass

from procurematch.config import ToleranceConfig
from procurematch.models.matching import VarianceField, VarianceSeverity


@dataclass(frozen=True)
class ToleranceClassification:
    """Outcome of classifying one variance percentage."""

    is_within_tolerance: bool
    requires_action: bool
    severity: VarianceSeverity
    threshold: float


class ToleranceClassifier:
    """Stateless classifier over configurable per-field thresholds.

    Usage::

        classifier = ToleranceClassifier(ToleranceConfig(price_pct=2.0))
        classifier.classify(3.5, VarianceField.PRICE).requires_action  # True
    """

    def __init__(
        self,
        tolerance: ToleranceConfig | None = None,
        critical_pct: float = 10.0,
    ) -> None:
        self.tolerance = tolerance or ToleranceConfig()
        self.critical_pct = critical_pct

    def classify(self, variance_percentage: float, field: VarianceField) -> ToleranceClassification:
        threshold = self.tolerance.threshold_for(field)
        magnitude = abs(variance_percentage)
        within = magnitude <= threshold

        if within:
            severity = VarianceSeverity.ACCEPTABLE
        elif magnitude > max(self.critical_pct, threshold):
            severity = VarianceSeverity.CRITICAL
        else:
            severity = VarianceSeverity.ACTIONABLE

        return ToleranceClassification(
            is_within_tolerance=within,
            requires_action=not within,
            severity=severity,
            threshold=threshold,
        )

    def is_within(self, variance_percentage: float, field: VarianceField) -> bool:
        return abs(variance_percentage) <= self.tolerance.threshold_for(field)
