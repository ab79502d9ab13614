# boxoffice_etl/core/models.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, computed_field, field_validator

CENT = Decimal("0.01")


class SalesBreakdown(BaseModel):
    """
    Ligne de rapport entièrement décodée, dans l'ordre du rapport :
    budget%, (fixed #, $), (non-fixed #, $), (single #, $), subtotal,
    reserved (#, $), total, sièges disponibles, capacité%.
    """
    budget_percent: float = 0.0
    fixed_count: int = 0
    fixed_revenue: Decimal = Decimal("0.00")
    non_fixed_count: int = 0
    non_fixed_revenue: Decimal = Decimal("0.00")
    single_count: int = 0
    single_revenue: Decimal = Decimal("0.00")
    subtotal_revenue: Decimal = Decimal("0.00")
    reserved_count: int = 0
    reserved_revenue: Decimal = Decimal("0.00")
    total_revenue: Decimal = Decimal("0.00")
    available_seats: int = 0
    capacity_percent: float = 0.0
    # lecture ambiguë ou montants incohérents
    low_confidence: bool = False

    @property
    def single_tickets_sold(self) -> int:
        # les packages "Non-Fixed" comptent comme billets à l'unité
        return self.single_count + self.non_fixed_count

    @property
    def subscription_tickets_sold(self) -> int:
        return self.fixed_count

    def revenues_reconcile(self) -> bool:
        pairs = self.fixed_revenue + self.non_fixed_revenue + self.single_revenue
        return pairs == self.subtotal_revenue and self.subtotal_revenue + self.reserved_revenue == self.total_revenue

    def capacity_gap(self) -> float:
        """Écart (en points) entre la capacité% lue et celle impliquée par les sièges décodés."""
        sold = self.fixed_count + self.non_fixed_count + self.single_count
        seats = sold + self.available_seats + self.reserved_count
        implied = sold / seats * 100 if seats else 0.0
        return abs(implied - self.capacity_percent)

    def to_record(self, performance_code: str, performance_date: Optional[date],
                  sentinel: date) -> "SalesRecord":
        return SalesRecord(
            performance_code=performance_code,
            performance_date=performance_date or sentinel,
            date_is_placeholder=performance_date is None,
            single_tickets_sold=self.single_tickets_sold,
            subscription_tickets_sold=self.subscription_tickets_sold,
            total_revenue=self.total_revenue,
            capacity_percent=self.capacity_percent,
            budget_percent=self.budget_percent,
            low_confidence=self.low_confidence,
        )


class SalesRecord(BaseModel):
    """
    Unité de sortie du parseur : les ventes cumulées d'une performance au moment du rapport.
    Jamais persistée telle quelle, seul son effet sur les tables l'est.
    """
    performance_code: str
    performance_date: date
    single_tickets_sold: NonNegativeInt = 0
    subscription_tickets_sold: NonNegativeInt = 0
    total_revenue: Decimal = Field(default=Decimal("0.00"), ge=0)
    capacity_percent: float = 0.0
    budget_percent: float = 0.0

    # métadonnées que certains formats fournissent (sinon valeurs par défaut de l'entrepôt)
    title: Optional[str] = None
    venue: Optional[str] = None
    season: Optional[str] = None
    capacity: Optional[int] = None
    occupancy_goal: Optional[float] = None

    date_is_placeholder: bool = False
    low_confidence: bool = False

    @field_validator("total_revenue")
    @classmethod
    def _cents(cls, v: Decimal) -> Decimal:
        return v.quantize(CENT)

    @computed_field
    @property
    def total_tickets_sold(self) -> int:
        return self.single_tickets_sold + self.subscription_tickets_sold


PackageCategory = Literal["Classical", "Pops", "Flex", "Family", "Specials", "Unknown"]


class PackageSalesRecord(BaseModel):
    """Ligne du rapport d'abonnements ; clé naturelle (snapshot_date, category, package_name)."""
    snapshot_date: date
    season: str
    category: PackageCategory
    package_type: str
    package_name: str
    package_seats: int = 0
    perf_seats: int = 0
    total_amount: Decimal = Decimal("0.00")
    paid_amount: Decimal = Decimal("0.00")
    orders: int = 0

    @property
    def natural_key(self) -> tuple:
        return (self.snapshot_date, self.category, self.package_name)


class CompRecord(BaseModel):
    performance_code: str
    comp_tickets: NonNegativeInt = 0


# ---- résultats de run ----

class ReconcileResult(BaseModel):
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    anomalies: int = 0


class PatchResult(BaseModel):
    updated: int = 0
    not_found: int = 0


class PackageInsertResult(BaseModel):
    inserted: int = 0
    skipped: int = 0


class RunSummary(BaseModel):
    """Ce que la couche webhook renvoie à l'appelant."""
    execution_id: str
    kind: str
    received: int
    strategy: Optional[str] = None
    report_date: Optional[date] = None
    result: dict
    warnings: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")
