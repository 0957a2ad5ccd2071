"""
procurematch — three-way invoice matching for hotel procurement.

Reconcile supplier invoices against purchase orders and goods received
notes, classify variances, and route the result for approval.
"""

__version__ = "0.3.0"
__all__ = ["ThreeWayMatcher", "MatchingConfig", "match_invoice"]

from procurematch.analyzers.three_way_matching import ThreeWayMatcher, match_invoice  # noqa: E402
from procurematch.config import MatchingConfig  # noqa: E402
