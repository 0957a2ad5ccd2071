"""
procurematch configuration management.

Supports loading from YAML files, environment variables, and keyword overrides.
Two presets mirror the conventions used by the procurement screens:

- ``three-way``: PO + GRN + invoice, 5% quantity/total and 2% price tolerance,
  variance measured against the invoice total, five approval levels.
- ``two-document``: invoice against PO, 5% on every field, variance measured
  against the PO total, manager / senior-manager split at 10%.
"""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from procurematch.exceptions import ConfigurationError
from procurematch.models.matching import ApprovalLevel, MatchingMode, VarianceField

# Variances whose absolute percentage is at or below this are treated as exact matches.
VARIANCE_EPSILON_PCT = 0.1


class VarianceBase(str, Enum):
    """Denominator of the overall variance percentage."""

    INVOICE_TOTAL = "invoice-total"
    PO_TOTAL = "po-total"


class ToleranceConfig(BaseModel):
    """Per-field tolerance thresholds, in percent."""

    quantity_pct: float = Field(default=5.0, ge=0.0, le=100.0)
    price_pct: float = Field(default=2.0, ge=0.0, le=100.0)
    total_pct: float = Field(default=5.0, ge=0.0, le=100.0)

    def threshold_for(self, field: VarianceField) -> float:
        if field == VarianceField.QUANTITY:
            return self.quantity_pct
        if field == VarianceField.PRICE:
            return self.price_pct
        return self.total_pct


class ApprovalBand(BaseModel):
    """Variances up to ``up_to_pct`` (inclusive) need ``level`` approval."""

    up_to_pct: float = Field(ge=0.0)
    level: ApprovalLevel


class ExchangeRateEntry(BaseModel):
    """A configured exchange rate: 1 ``from_currency`` = ``rate`` ``to_currency``."""

    from_currency: str
    to_currency: str
    rate: Decimal = Field(gt=0)
    valid_from: date | None = None
    valid_to: date | None = None
    source: str = "config"


THREE_WAY_BANDS = [
    ApprovalBand(up_to_pct=5.0, level=ApprovalLevel.MANAGER),
    ApprovalBand(up_to_pct=15.0, level=ApprovalLevel.SENIOR_MANAGER),
    ApprovalBand(up_to_pct=25.0, level=ApprovalLevel.DIRECTOR),
]

TWO_DOCUMENT_BANDS = [
    ApprovalBand(up_to_pct=10.0, level=ApprovalLevel.MANAGER),
]


class MatchingConfig(BaseModel):
    """Root configuration for the matcher."""

    mode: MatchingMode = MatchingMode.THREE_WAY
    tolerance: ToleranceConfig = Field(default_factory=ToleranceConfig)

    # Approval routing: <= tolerance.total_pct auto-approves, then the bands
    # in order, then escalation_level above the last band.
    approval_bands: list[ApprovalBand] = Field(default_factory=lambda: list(THREE_WAY_BANDS))
    escalation_level: ApprovalLevel = ApprovalLevel.CFO

    variance_base: VarianceBase = VarianceBase.INVOICE_TOTAL
    variance_epsilon_pct: float = Field(default=VARIANCE_EPSILON_PCT, ge=0.0, le=100.0)

    critical_variance_pct: float = Field(
        default=10.0, ge=0.0, le=100.0,
        description="Line variances above this are classified critical",
    )
    dispute_above_pct: float = Field(
        default=10.0, ge=0.0,
        description="Overall variance above this recommends a dispute",
    )
    needs_review_above_pct: float = Field(
        default=20.0, ge=0.0,
        description="Overall variance above this puts the match in needs-review",
    )

    require_purchase_order: bool = Field(
        default=False,
        description="Treat invoices without a locatable PO as not-matched even if a GRN exists",
    )
    deduct_damaged_quantity: bool = Field(
        default=False,
        description="Compare invoiced quantity with received minus damaged units",
    )
    base_currency: str = Field(default="USD")
    exchange_rates: list[ExchangeRateEntry] = Field(
        default_factory=list,
        description="Rates used to convert invoices into the PO currency",
    )

    @model_validator(mode="after")
    def check_bands(self) -> MatchingConfig:
        previous: float | None = None
        for band in self.approval_bands:
            if band.level == ApprovalLevel.AUTO_APPROVE:
                raise ValueError("auto-approve is implied by the total tolerance, not a band")
            if previous is not None and band.up_to_pct <= previous:
                raise ValueError(
                    f"approval band for {band.level.value} ({band.up_to_pct}%) "
                    f"must be above the previous band ({previous}%)"
                )
            previous = band.up_to_pct
        return self

    @property
    def highest_approval_level(self) -> ApprovalLevel:
        return self.escalation_level

    @classmethod
    def for_mode(cls, mode: MatchingMode | str, **overrides: Any) -> MatchingConfig:
        """Build the preset for a matching mode, with optional overrides."""
        try:
            mode = MatchingMode(mode)
        except ValueError as e:
            raise ConfigurationError(f"Unknown matching mode: {mode!r}") from e

        data: dict[str, Any] = {"mode": mode}
        if mode == MatchingMode.TWO_DOCUMENT:
            data.update(
                tolerance={"quantity_pct": 5.0, "price_pct": 5.0, "total_pct": 5.0},
                approval_bands=[b.model_dump() for b in TWO_DOCUMENT_BANDS],
                escalation_level=ApprovalLevel.SENIOR_MANAGER,
                variance_base=VarianceBase.PO_TOTAL,
                require_purchase_order=True,
            )

        # Partial tolerance overrides layer on top of the preset
        tolerance = overrides.pop("tolerance", None)
        if isinstance(tolerance, ToleranceConfig):
            tolerance = tolerance.model_dump()
        if tolerance is not None:
            if not isinstance(tolerance, dict):
                raise ConfigurationError(f"tolerance must be a mapping, got {tolerance!r}")
            merged = dict(data.get("tolerance", {}))
            merged.update(tolerance)
            data["tolerance"] = merged

        data.update(overrides)
        return cls.validated(data)

    @classmethod
    def validated(cls, data: dict[str, Any]) -> MatchingConfig:
        """Validate raw data, raising ConfigurationError instead of ValidationError."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid matching configuration: {e}") from e

    @classmethod
    def load(cls, config_path: str | None = None, **overrides: Any) -> MatchingConfig:
        """Load configuration from file, env vars, and overrides.

        Priority: overrides > env vars > config file > mode preset > defaults.
        """
        data: dict[str, Any] = {}

        # 1. Load from YAML file if provided
        if config_path:
            path = Path(config_path)
            if path.exists():
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
                if not isinstance(data, dict):
                    raise ConfigurationError(f"Config file {path} must contain a mapping")

        # 2. Override from environment variables
        env_mode = os.environ.get("PROCUREMATCH_MODE")
        env_currency = os.environ.get("PROCUREMATCH_BASE_CURRENCY")
        env_tolerances = {
            "quantity_pct": os.environ.get("PROCUREMATCH_QUANTITY_TOLERANCE"),
            "price_pct": os.environ.get("PROCUREMATCH_PRICE_TOLERANCE"),
            "total_pct": os.environ.get("PROCUREMATCH_TOTAL_TOLERANCE"),
        }

        if env_mode:
            data["mode"] = env_mode
        if env_currency:
            data["base_currency"] = env_currency.upper()
        if any(env_tolerances.values()):
            tolerance = dict(data.get("tolerance") or {})
            for key, value in env_tolerances.items():
                if value:
                    tolerance[key] = value
            data["tolerance"] = tolerance

        # 3. Apply keyword overrides
        data.update(overrides)

        mode = data.pop("mode", MatchingMode.THREE_WAY)
        return cls.for_mode(mode, **data)
