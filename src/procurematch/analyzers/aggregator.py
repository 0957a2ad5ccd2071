"""
Match aggregation — roll per-line variances up into an overall verdict.

The tally counts every invoice line exactly once (matched or mismatched;
additional lines count as mismatched too), accumulates the absolute total
variance, and files emitted variances by field. The aggregator then turns
the overall variance percentage into a match status and approval level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from procurematch.analyzers.variance import LineVariance, variance_percentage
from procurematch.config import MatchingConfig, VarianceBase
from procurematch.models.documents import ZERO
from procurematch.models.matching import (
    ApprovalLevel,
    MatchingVariance,
    MatchStatus,
    VarianceField,
)

logger = logging.getLogger("procurematch.analyzers.aggregator")


@dataclass
class MatchTally:
    """Running counts and variance lists for one match run."""

    items_matched: int = 0
    items_mismatched: int = 0
    items_missing: int = 0
    items_additional: int = 0
    overall_variance: Decimal = ZERO
    quantity_variances: list[MatchingVariance] = field(default_factory=list)
    price_variances: list[MatchingVariance] = field(default_factory=list)
    total_variances: list[MatchingVariance] = field(default_factory=list)

    def record_line(self, line: LineVariance, emitted: list[MatchingVariance], lines: int = 1) -> None:
        """Record a compared item; ``lines`` invoice lines share its verdict."""
        if line.is_matched:
            self.items_matched += lines
        else:
            self.items_mismatched += lines
        self.overall_variance += abs(line.total.variance)
        for variance in emitted:
            self._file(variance)

    def record_additional(self, variance: MatchingVariance, lines: int = 1) -> None:
        self.items_additional += lines
        self.items_mismatched += lines
        self.overall_variance += abs(variance.variance)
        self._file(variance)

    def record_missing(self, variance: MatchingVariance) -> None:
        self.items_missing += 1
        self.overall_variance += abs(variance.variance)
        self._file(variance)

    def _file(self, variance: MatchingVariance) -> None:
        if variance.field == VarianceField.QUANTITY:
            self.quantity_variances.append(variance)
        elif variance.field == VarianceField.PRICE:
            self.price_variances.append(variance)
        elif variance.field == VarianceField.TOTAL:
            self.total_variances.append(variance)
        else:  # pragma: no cover
            raise ValueError(f"Unknown variance field: {variance.field!r}")

    @property
    def items_classified(self) -> int:
        return self.items_matched + self.items_mismatched

    @property
    def has_exceptions(self) -> bool:
        """Whether any line failed to match cleanly."""
        return bool(self.items_mismatched or self.items_missing or self.items_additional)


@dataclass(frozen=True)
class AggregateOutcome:
    match_status: MatchStatus
    variance_percentage: float
    approval_level: ApprovalLevel

    @property
    def requires_approval(self) -> bool:
        return self.approval_level != ApprovalLevel.AUTO_APPROVE


class MatchAggregator:
    """Derives status and approval routing from a tally."""

    def __init__(self, config: MatchingConfig) -> None:
        self.config = config

    @property
    def tolerance_pct(self) -> float:
        return self.config.tolerance.total_pct

    def overall_percentage(
        self,
        overall_variance: Decimal,
        invoice_total: Decimal,
        po_total: Decimal | None = None,
    ) -> float:
        """Overall variance as a percentage of the configured base total.

        With ``variance_base = po-total`` and no PO located, the invoice
        total is used.
        """
        base = invoice_total
        if self.config.variance_base == VarianceBase.PO_TOTAL and po_total is not None:
            base = po_total
        return abs(variance_percentage(overall_variance, base))

    def status(self, tally: MatchTally, pct: float) -> MatchStatus:
        if pct <= self.tolerance_pct:
            if tally.has_exceptions:
                return MatchStatus.VARIANCE_WITHIN_TOLERANCE
            return MatchStatus.FULLY_MATCHED
        if pct > self.config.needs_review_above_pct:
            return MatchStatus.NEEDS_REVIEW
        return MatchStatus.PARTIALLY_MATCHED

    def approval_level(self, pct: float) -> ApprovalLevel:
        if pct <= self.tolerance_pct:
            return ApprovalLevel.AUTO_APPROVE
        for band in self.config.approval_bands:
            if pct <= band.up_to_pct:
                return band.level
        return self.config.escalation_level

    def aggregate(
        self,
        tally: MatchTally,
        invoice_total: Decimal,
        po_total: Decimal | None = None,
    ) -> AggregateOutcome:
        pct = self.overall_percentage(tally.overall_variance, invoice_total, po_total)
        outcome = AggregateOutcome(
            match_status=self.status(tally, pct),
            variance_percentage=pct,
            approval_level=self.approval_level(pct),
        )
        logger.debug(
            "Aggregate: %d matched, %d mismatched, %d missing, %d additional, %.2f%% -> %s",
            tally.items_matched,
            tally.items_mismatched,
            tally.items_missing,
            tally.items_additional,
            pct,
            outcome.match_status.value,
        )
        return outcome
