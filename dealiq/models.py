"""Data models for DealIQ."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dealiq.errors import InvalidPropertyError


class PropertyType(str, Enum):
    SINGLE_FAMILY = "single_family"
    MULTI_FAMILY = "multi_family"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    MOBILE_HOME = "mobile_home"
    LAND = "land"
    COMMERCIAL = "commercial"


class Occupancy(str, Enum):
    OWNER_OCCUPIED = "owner_occupied"
    TENANT_OCCUPIED = "tenant_occupied"
    VACANT = "vacant"
    UNKNOWN = "unknown"


class RepairTier(str, Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"
    GUT = "gut"

    @property
    def rank(self) -> int:
        return _REPAIR_TIER_ORDER.index(self)


_REPAIR_TIER_ORDER = [RepairTier.LIGHT, RepairTier.MODERATE, RepairTier.HEAVY, RepairTier.GUT]


class ArvSource(str, Enum):
    KNOWN = "known"
    MARKET = "market"
    FALLBACK = "fallback"


class BalanceSource(str, Enum):
    KNOWN = "known"
    ASSUMED = "assumed"


class DealClass(str, Enum):
    HOT = "HOT"
    SOLID = "SOLID"
    PORTFOLIO = "PORTFOLIO"
    PASS = "PASS"


class NextAction(str, Enum):
    MAKE_OFFER = "make_offer"
    NEGOTIATE = "negotiate"
    NURTURE = "nurture"
    ARCHIVE = "archive"


class BuyerRating(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


# Order in which strategies are listed, compared and tie-broken.
STRATEGY_CATALOG: tuple[str, ...] = ("wholesale", "flip", "brrrr", "rental", "sub_to", "wrap", "jv")


class PropertyRecord(BaseModel):
    """A normalized acquisition lead. Immutable once constructed."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = ""
    state: str = ""
    zip_code: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    asking_price: float = Field(default=0.0, ge=0)
    beds: int = 0
    baths: float = 0
    sqft: int = Field(default=0, ge=0)
    year_built: int = 0
    property_type: PropertyType = PropertyType.SINGLE_FAMILY
    condition: str = ""
    condition_score: Optional[int] = Field(default=None, ge=0, le=100)
    occupancy: Occupancy = Occupancy.UNKNOWN
    motivation_notes: str = ""
    motivation_score: int = Field(default=5, ge=1, le=10)
    days_on_market: int = Field(default=0, ge=0)
    price_reduced: bool = False
    response_time_hours: Optional[float] = None
    hazard_flags: tuple[str, ...] = ()
    known_arv: Optional[float] = Field(default=None, ge=0)
    known_repairs: Optional[float] = Field(default=None, ge=0)
    mortgage_balance: Optional[float] = Field(default=None, ge=0)
    monthly_rent: Optional[float] = Field(default=None, ge=0)

    @classmethod
    def from_raw(cls, raw: dict) -> PropertyRecord:
        """Build a record from an untyped dict, failing fast on bad structure."""
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise InvalidPropertyError(
                f"Invalid property record ({fields})",
                property_id=raw.get("id") if isinstance(raw, dict) else None,
            ) from e

    @property
    def full_address(self) -> str:
        parts = [self.address]
        if self.city:
            parts.append(self.city)
        tail = " ".join(p for p in (self.state, self.zip_code) if p)
        if tail:
            parts.append(tail)
        return ", ".join(parts)

    def mentions(self, keywords: list[str]) -> list[str]:
        """Return the keywords found in the seller's motivation notes."""
        text = self.motivation_notes.lower()
        return [k for k in keywords if k.lower() in text]


class MarketSnapshot(BaseModel):
    """Pre-resolved market metrics for a ZIP or area."""

    model_config = ConfigDict(frozen=True)

    area_key: str = ""
    median_days_on_market: Optional[float] = Field(default=None, ge=0)
    sales_per_month: Optional[float] = Field(default=None, ge=0)
    median_price: Optional[float] = Field(default=None, ge=0)
    median_sqft: Optional[float] = Field(default=None, ge=0)
    price_per_sqft: Optional[float] = Field(default=None, ge=0)


class RepairLine(BaseModel):
    item: str
    cost: int
    note: str = ""


class ValuationEstimate(BaseModel):
    arv: int
    arv_per_sqft: float
    confidence: int = Field(ge=0, le=100)
    repair_estimate: int
    repair_tier: RepairTier
    holding_cost_monthly: int
    condition_score: int
    arv_source: ArvSource
    repair_breakdown: list[RepairLine] = Field(default_factory=list)


class MAOSet(BaseModel):
    """Maximum allowable offer per exit strategy."""

    wholesale: int = Field(default=0, ge=0)
    flip: int = Field(default=0, ge=0)
    brrrr: int = Field(default=0, ge=0)
    rental: int = Field(default=0, ge=0)
    sub_to: int = Field(default=0, ge=0)
    wrap: int = Field(default=0, ge=0)
    jv: int = Field(default=0, ge=0)
    balance_source: BalanceSource = BalanceSource.ASSUMED
    mortgage_balance: int = 0
    recommended: int = 0
    recommended_strategy: str = "wholesale"
    viable: bool = False

    def by_strategy(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in STRATEGY_CATALOG}


class RiskFactor(BaseModel):
    name: str
    points: float


class ScoreSet(BaseModel):
    """All scores are 0-100 except the percentages and dollar figures."""

    market_volume_score: float = Field(ge=0, le=100)
    velocity_score: float = Field(ge=0, le=100)
    motivation_score: float = Field(ge=0, le=100)
    equity_percent: float
    margin_percent: float
    profit_estimate: int
    risk_score: float = Field(ge=0, le=100)
    deal_score: float = Field(ge=0, le=100)
    risk_factors: list[RiskFactor] = Field(default_factory=list)


class Classification(BaseModel):
    deal_class: DealClass
    reason: str
    next_action: NextAction
    behavioral_override: bool = False
    hot_signals: list[str] = Field(default_factory=list)
    grade: str = "F"
    success_probability: float = 0.0


class StrategyCandidate(BaseModel):
    name: str
    eligible: bool
    score: float = 0.0
    profit_estimate: int = 0
    rationale: str = ""


class StrategyRecommendation(BaseModel):
    primary: StrategyCandidate
    secondary: Optional[StrategyCandidate] = None
    ranked: list[StrategyCandidate] = Field(default_factory=list)
    confidence: float = 0.0


class BuyerRecord(BaseModel):
    """A prospective buyer from the active buyer registry."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(min_length=1)
    name: str = ""
    zip_codes: tuple[str, ...] = ()
    cities: tuple[str, ...] = ()
    min_price: float = Field(default=0.0, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    strategies: tuple[str, ...] = ()
    property_types: tuple[str, ...] = ()
    max_repair_tier: RepairTier = RepairTier.MODERATE
    active: bool = True
    rating: BuyerRating = BuyerRating.C


class DealSummary(BaseModel):
    """The slice of a classified deal that buyer matching works from."""

    property_id: str
    address: str
    zip_code: str = ""
    city: str = ""
    arv: int = 0
    asking_price: int = 0
    recommended_offer: int = 0
    strategy: str = ""
    property_type: PropertyType = PropertyType.SINGLE_FAMILY
    repair_tier: RepairTier = RepairTier.MODERATE
    deal_class: DealClass = DealClass.PASS


class BuyerMatch(BaseModel):
    buyer_id: str
    buyer_name: str = ""
    score: float = Field(ge=0, le=100)
    criteria_met: list[str] = Field(default_factory=list)


class MatchResult(BaseModel):
    property_id: str
    matches: list[BuyerMatch] = Field(default_factory=list)
    best_buyer: Optional[str] = None
    matched_count: int = 0
    note: str = ""


class EnrichmentResult(BaseModel):
    """Response from the optional enrichment service."""

    narrative: str = ""
    suggested_strategy: Optional[str] = None


class DueOnSaleRisk(BaseModel):
    """How likely the lender is to call the loan once title transfers."""

    level: str = "low"  # low, medium or high
    loan_to_value: float = 0.0
    factors: list[str] = Field(default_factory=list)


class HoldingProjection(BaseModel):
    """Cashflow, appreciation and principal paydown over a fixed hold."""

    strategy: str
    years: int
    monthly_cashflow: int
    cashflow: int
    appreciation: int
    principal_paydown: int
    total_return: int


class DealAnalysis(BaseModel):
    """Full analysis result for one property."""

    property_id: str
    address: str
    engine_version: str
    weight_preset: str
    valuation: ValuationEstimate
    mao: MAOSet
    scores: ScoreSet
    classification: Classification
    strategies: StrategyRecommendation
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    threats: list[str] = Field(default_factory=list)
    due_on_sale: Optional[DueOnSaleRisk] = None
    holding_projection: Optional[HoldingProjection] = None
    enrichment: Optional[EnrichmentResult] = None

    def summary(self) -> str:
        v, m, s, c = self.valuation, self.mao, self.scores, self.classification
        parts = [
            f"Deal Analysis for {self.address}",
            f"ARV: ${v.arv:,.0f} (confidence {v.confidence}) | Repairs: ${v.repair_estimate:,.0f} ({v.repair_tier.value})",
            f"Recommended Offer: ${m.recommended:,.0f} via {m.recommended_strategy}",
            f"Equity: {s.equity_percent:.1f}% | Margin: {s.margin_percent:.1f}% | Risk: {s.risk_score:.0f}",
            f"Deal Score: {s.deal_score}/100 ({c.grade}) | {c.deal_class.value}: {c.reason}",
            f"Strategy: {self.strategies.primary.name}",
        ]
        return "\n".join(parts)


class AnalysisOutcome(BaseModel):
    analysis: DealAnalysis
    matches: MatchResult


class BatchSummary(BaseModel):
    succeeded: int = 0
    failed: int = 0
    failure_reasons: dict[str, str] = Field(default_factory=dict)
    cancelled: bool = False
    enrichment_skipped: int = 0
    outcomes: list[AnalysisOutcome] = Field(default_factory=list)
