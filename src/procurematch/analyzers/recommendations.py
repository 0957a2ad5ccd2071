"""
Recommendation generation — map a match outcome to suggested next actions.

Recommendations are additive: one primary verdict (approve, clarify or
dispute) followed by item-level follow-ups for additional and missing lines.
"""

from __future__ import annotations

from procurematch.analyzers.aggregator import MatchTally
from procurematch.config import MatchingConfig
from procurematch.models.matching import (
    MatchingRecommendation,
    RecommendationPriority,
    RecommendationType,
)


class RecommendationGenerator:
    """Pure mapping from aggregate figures to recommendations."""

    def __init__(self, config: MatchingConfig) -> None:
        self.config = config

    def generate(self, tally: MatchTally, variance_percentage: float) -> list[MatchingRecommendation]:
        tolerance = self.config.tolerance.total_pct
        recommendations: list[MatchingRecommendation] = []

        if variance_percentage <= tolerance:
            if tally.has_exceptions:
                recommendations.append(MatchingRecommendation(
                    type=RecommendationType.REQUEST_CLARIFICATION,
                    priority=RecommendationPriority.INFO,
                    message=(
                        f"Overall variance is within tolerance ({tolerance:g}%) "
                        f"but {tally.items_mismatched} line(s) deviate individually"
                    ),
                    action_label="Review Lines",
                ))
            else:
                recommendations.append(MatchingRecommendation(
                    type=RecommendationType.APPROVE,
                    priority=RecommendationPriority.INFO,
                    message=f"All variances are within acceptable tolerance ({tolerance:g}%)",
                    action_label="Auto-Approve",
                ))
        elif variance_percentage <= self.config.dispute_above_pct:
            recommendations.append(MatchingRecommendation(
                type=RecommendationType.REQUEST_CLARIFICATION,
                priority=RecommendationPriority.WARNING,
                message=f"Variances detected ({variance_percentage:.2f}%). Review before approving.",
                action_label="Request Clarification",
            ))
        else:
            recommendations.append(MatchingRecommendation(
                type=RecommendationType.CREATE_DISPUTE,
                priority=RecommendationPriority.ACTION_REQUIRED,
                message=(
                    f"Significant variances detected ({variance_percentage:.2f}%). "
                    "Consider creating a dispute."
                ),
                action_label="Create Dispute",
            ))

        if tally.items_additional > 0:
            recommendations.append(MatchingRecommendation(
                type=RecommendationType.CONTACT_SUPPLIER,
                priority=RecommendationPriority.WARNING,
                message=f"{tally.items_additional} item(s) on invoice not found in PO/GRN",
                action_label="Contact Supplier",
            ))

        if tally.items_missing > 0:
            recommendations.append(MatchingRecommendation(
                type=RecommendationType.CREATE_DEBIT_NOTE,
                priority=RecommendationPriority.ACTION_REQUIRED,
                message=f"{tally.items_missing} item(s) from PO missing in invoice",
                action_label="Create Debit Note",
            ))

        return recommendations

    def not_matched(self) -> list[MatchingRecommendation]:
        """The single recommendation for an invoice with no PO or GRN."""
        return [MatchingRecommendation(
            type=RecommendationType.CREATE_DISPUTE,
            priority=RecommendationPriority.CRITICAL,
            message="No matching PO or GRN found for this invoice. Manual review required.",
            action_label="Create Dispute",
        )]
