"""
Markdown result exporter.

Renders an InvoiceMatchingResult as a Markdown audit record, suitable for
attaching to an approval ticket or a supplier dispute.
"""

from __future__ import annotations

from procurematch.analyzers.currency import format_currency
from procurematch.models.matching import (
    InvoiceMatchingResult,
    MatchingVariance,
    MatchStatus,
    RecommendationPriority,
)

_STATUS_EMOJI = {
    MatchStatus.FULLY_MATCHED: "✅",
    MatchStatus.VARIANCE_WITHIN_TOLERANCE: "✅",
    MatchStatus.PARTIALLY_MATCHED: "⚠️",
    MatchStatus.NEEDS_REVIEW: "🔴",
    MatchStatus.NOT_MATCHED: "❌",
    MatchStatus.APPROVED_WITH_VARIANCE: "✅",
    MatchStatus.REJECTED: "❌",
}

_PRIORITY_EMOJI = {
    RecommendationPriority.INFO: "ℹ️",
    RecommendationPriority.WARNING: "🟡",
    RecommendationPriority.ACTION_REQUIRED: "🟠",
    RecommendationPriority.CRITICAL: "🔴",
}


def _fmt(value, currency: str, money: bool) -> str:  # noqa: ANN001
    if value is None:
        return "—"
    return format_currency(value, currency) if money else f"{value:,}"


def _variance_rows(variances: list[MatchingVariance], currency: str, money: bool) -> list[str]:
    rows = []
    for v in variances:
        rows.append(
            f"| {v.item_name or v.item_id} | {_fmt(v.po_value, currency, money)} | "
            f"{_fmt(v.grn_value, currency, money)} | {_fmt(v.invoice_value, currency, money)} | "
            f"{_fmt(v.variance, currency, money)} | {v.variance_percentage:+.2f}% | "
            f"{'✔' if v.is_within_tolerance else '✘'} |"
        )
    return rows


def render_markdown(result: InvoiceMatchingResult) -> str:
    """Render an InvoiceMatchingResult as Markdown."""
    lines: list[str] = []
    emoji = _STATUS_EMOJI.get(result.match_status, "")

    # Header
    lines.append(f"# {emoji} Invoice Matching — {result.invoice_id}")
    lines.append("")
    lines.append(f"*Matched: {result.matched_at.strftime('%Y-%m-%d %H:%M')} by {result.matched_by}*")
    refs = []
    if result.purchase_order_id:
        refs.append(f"PO {result.purchase_order_id}")
    if result.grn_ids:
        refs.append(f"GRN {', '.join(result.grn_ids)}")
    if refs:
        lines.append(f"*Against: {' / '.join(refs)}*")
    lines.append("")

    # Summary
    lines.append("## 📊 Summary")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| **Status** | {result.match_status.value} |")
    lines.append(f"| **Mode** | {result.mode.value} |")
    lines.append(f"| **Overall Variance** | {format_currency(result.overall_variance, result.currency)} |")
    lines.append(f"| **Variance %** | {result.variance_percentage:.2f}% (tolerance {result.tolerance_threshold:g}%) |")
    lines.append(f"| **Items Matched** | {result.items_matched} |")
    lines.append(f"| **Items Mismatched** | {result.items_mismatched} |")
    lines.append(f"| **Items Missing** | {result.items_missing} |")
    lines.append(f"| **Items Additional** | {result.items_additional} |")
    lines.append(f"| **Approval** | {result.approval_level.value} |")
    if result.exchange_rate is not None and result.exchange_rate != 1:
        lines.append(f"| **Exchange Rate** | {result.exchange_rate} |")
    lines.append("")

    # Variances
    sections = [
        ("Quantity Variances", result.quantity_variances, False),
        ("Price Variances", result.price_variances, True),
        ("Total Variances", result.total_variances, True),
    ]
    for title, variances, money in sections:
        if not variances:
            continue
        lines.append(f"## {title} ({len(variances)})")
        lines.append("")
        lines.append("| Item | PO | GRN | Invoice | Variance | % | In Tolerance |")
        lines.append("|------|----|-----|---------|----------|---|--------------|")
        lines.extend(_variance_rows(variances, result.currency, money))
        lines.append("")

    # Recommendations
    if result.recommendations:
        lines.append("## ✅ Recommendations")
        lines.append("")
        for rec in result.recommendations:
            lines.append(
                f"- {_PRIORITY_EMOJI.get(rec.priority, '')} **{rec.action_label}** "
                f"({rec.priority.value}): {rec.message}"
            )
        lines.append("")

    # Audit trail
    if result.audit_trail:
        lines.append("## 🧾 Audit Trail")
        lines.append("")
        for entry in result.audit_trail:
            who = entry.performed_by_name or entry.performed_by
            lines.append(
                f"- {entry.timestamp.strftime('%Y-%m-%d %H:%M')} — **{entry.action.value}** "
                f"by {who}: {entry.details}"
            )
        lines.append("")

    if result.rejection_reason:
        lines.append(f"**Rejection reason:** {result.rejection_reason}")
        lines.append("")

    return "\n".join(lines)
