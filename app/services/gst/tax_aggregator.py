"""Grouping and summing of taxable value and tax components.

Each contribution is rounded to 2 places as it is added, so group totals
are exact sums of rounded rows and always reconcile with the rows.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Generic, Hashable, Iterable, List, Tuple, TypeVar

from app.core.money import round_money
from app.schemas.external import InvoiceItem
from app.schemas.gst_returns import RateRow

K = TypeVar("K", bound=Hashable)


@dataclass
class TaxTotals:
    taxable_value: Decimal = field(default_factory=lambda: Decimal("0.00"))
    cgst: Decimal = field(default_factory=lambda: Decimal("0.00"))
    sgst: Decimal = field(default_factory=lambda: Decimal("0.00"))
    igst: Decimal = field(default_factory=lambda: Decimal("0.00"))
    cess: Decimal = field(default_factory=lambda: Decimal("0.00"))

    def add(
        self,
        taxable_value: Any = 0,
        cgst: Any = 0,
        sgst: Any = 0,
        igst: Any = 0,
        cess: Any = 0,
    ) -> "TaxTotals":
        self.taxable_value += round_money(taxable_value)
        self.cgst += round_money(cgst)
        self.sgst += round_money(sgst)
        self.igst += round_money(igst)
        self.cess += round_money(cess)
        return self

    def add_item(self, item: InvoiceItem) -> "TaxTotals":
        return self.add(
            item.taxable_amount,
            item.cgst_amount,
            item.sgst_amount,
            item.igst_amount,
            item.cess_amount,
        )

    def merge(self, other: "TaxTotals") -> "TaxTotals":
        return self.add(other.taxable_value, other.cgst, other.sgst, other.igst, other.cess)

    @property
    def total_tax(self) -> Decimal:
        return self.cgst + self.sgst + self.igst + self.cess

    @property
    def total_value(self) -> Decimal:
        return self.taxable_value + self.total_tax


class TaxAggregator(Generic[K]):
    """Accumulates ``TaxTotals`` per key; iteration is sorted by key."""

    def __init__(self):
        self._groups: Dict[K, TaxTotals] = {}

    def __len__(self) -> int:
        return len(self._groups)

    def group(self, key: K) -> TaxTotals:
        totals = self._groups.get(key)
        if totals is None:
            totals = self._groups[key] = TaxTotals()
        return totals

    def add_item(self, key: K, item: InvoiceItem) -> TaxTotals:
        return self.group(key).add_item(item)

    def add(self, key: K, **amounts: Any) -> TaxTotals:
        return self.group(key).add(**amounts)

    def items(self) -> List[Tuple[K, TaxTotals]]:
        return sorted(self._groups.items(), key=lambda kv: kv[0])

    def total(self) -> TaxTotals:
        grand = TaxTotals()
        for totals in self._groups.values():
            grand.merge(totals)
        return grand


def group_items_by_rate(items: Iterable[InvoiceItem]) -> TaxAggregator[Decimal]:
    aggregator: TaxAggregator[Decimal] = TaxAggregator()
    for item in items:
        aggregator.add_item(item.tax_rate, item)
    return aggregator


def rate_rows(items: Iterable[InvoiceItem]) -> List[RateRow]:
    """Items of one document collapsed into one row per tax rate."""
    return to_rate_rows(group_items_by_rate(items))


def to_rate_rows(aggregator: TaxAggregator[Decimal]) -> List[RateRow]:
    return [
        RateRow(
            rate=rate,
            taxable_value=totals.taxable_value,
            cgst=totals.cgst,
            sgst=totals.sgst,
            igst=totals.igst,
            cess=totals.cess,
        )
        for rate, totals in aggregator.items()
    ]
