"""
GSTR-2A / GSTR-2B Reconciliation Service

Matches the inward supplies reported by suppliers (as downloaded from the GST
portal) against our own purchase invoices:

- matched: same supplier GSTIN and invoice number, totals within Rs 0.01
- mismatched: same key, totals differ
- missing: reported by the supplier, not in our books
- extra: in our books, not reported by the supplier (derived on read)
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from app.clients.base import BusinessStore, InvoiceStore, PartyStore
from app.core import period_parser
from app.core.exceptions import GSTNotFoundError, GSTValidationError
from app.core.money import round_money, sum_money, to_decimal
from app.core.period_parser import PeriodRange
from app.models.gstr2a import Gstr2aImport, Gstr2aReconciliation, ImportType, MatchStatus
from app.repositories.gstr2a_repository import Gstr2aRepository
from app.schemas.external import Invoice, InvoiceType, Party
from app.schemas.reconciliation import ReconciliationLine, ReconciliationReport
from app.services.gst.constants import RECONCILIATION_TOLERANCE
from app.services.gst.report_cache import utc_now


logger = logging.getLogger(__name__)

STATEMENT_DATE_FORMATS = ("%d-%m-%Y", "%Y-%m-%d")

MatchKey = Tuple[str, str]


@dataclass(frozen=True)
class StatementLine:
    """One invoice or note as reported by a supplier."""
    supplier_gstin: str
    supplier_name: Optional[str]
    invoice_number: str
    invoice_date: Optional[date]
    document_type: str
    taxable_value: Decimal
    igst: Decimal
    cgst: Decimal
    sgst: Decimal
    cess: Decimal

    @property
    def key(self) -> MatchKey:
        return _match_key(self.supplier_gstin, self.invoice_number)

    @property
    def total_value(self) -> Decimal:
        return self.taxable_value + self.igst + self.cgst + self.sgst + self.cess


def _match_key(gstin: Optional[str], invoice_number: Optional[str]) -> MatchKey:
    return ((gstin or "").strip().upper(), (invoice_number or "").strip())


def _parse_statement_date(value: Any) -> Optional[date]:
    """Portal dates are DD-MM-YYYY; ISO dates are accepted too."""
    if not value:
        return None
    text = str(value).split("T", 1)[0]
    for fmt in STATEMENT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.warning(f"Unparseable statement date {value!r}")
    return None


def _document_line(supplier: Dict[str, Any], doc: Dict[str, Any], document_type: str) -> StatementLine:
    details = [item.get("itm_det") or {} for item in doc.get("itms") or []]

    def component(name: str) -> Decimal:
        return sum_money(round_money(d.get(name)) for d in details)

    if any("txval" in d for d in details):
        taxable = component("txval")
    else:
        taxable = round_money(doc.get("val") if doc.get("val") is not None else doc.get("nt_val"))

    return StatementLine(
        supplier_gstin=(supplier.get("ctin") or "").strip().upper(),
        supplier_name=supplier.get("name") or supplier.get("trdnm"),
        invoice_number=str(doc.get("inum") or doc.get("nt_num") or "").strip(),
        invoice_date=_parse_statement_date(doc.get("idt") or doc.get("nt_dt")),
        document_type=document_type,
        taxable_value=taxable,
        igst=component("iamt"),
        cgst=component("camt"),
        sgst=component("samt"),
        cess=component("csamt"),
    )


def parse_statement(data: Dict[str, Any]) -> List[StatementLine]:
    """
    Flatten a GSTR-2A/2B payload into statement lines.

    ``b2b[].inv[]`` are invoices, ``cdnr[].nt[]`` (or ``inv[]``) are notes.
    """
    if not isinstance(data, dict) or not (data.get("b2b") or data.get("cdnr")):
        raise GSTValidationError(
            "GSTR-2A/2B data must contain b2b or cdnr section",
            error_code="INVALID_STATEMENT",
        )

    lines: List[StatementLine] = []
    for supplier in data.get("b2b") or []:
        for inv in supplier.get("inv") or []:
            lines.append(_document_line(supplier, inv, "invoice"))
    for supplier in data.get("cdnr") or []:
        for note in (supplier.get("nt") or []) + (supplier.get("inv") or []):
            lines.append(_document_line(supplier, note, "note"))
    return lines


def invoice_total(invoice: Invoice) -> Decimal:
    return sum_money([
        invoice.taxable_amount,
        invoice.igst_amount,
        invoice.cgst_amount,
        invoice.sgst_amount,
        invoice.cess_amount,
    ])


def compare_amounts(statement_total: Decimal, our_total: Decimal) -> Tuple[MatchStatus, Dict[str, Any]]:
    """Matched when the totals differ by at most the tolerance."""
    difference = round_money(statement_total - our_total)
    details: Dict[str, Any] = {
        "gstr2a_amount": float(statement_total),
        "our_amount": float(our_total),
        "difference": float(difference),
    }
    if abs(difference) <= RECONCILIATION_TOLERANCE:
        return MatchStatus.MATCHED, details
    return MatchStatus.MISMATCHED, {"reason": "Amount mismatch", **details}


class Gstr2aReconciliationService:
    """
    Imports counterparty statements and reconciles them with purchases.

    Statement lines are persisted with their match outcome. ``extra``
    purchases are never persisted: they are recomputed from live invoices
    every time the reconciliation is read.
    """

    def __init__(
        self,
        repository: Gstr2aRepository,
        invoice_store: InvoiceStore,
        party_store: PartyStore,
        business_store: BusinessStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.invoice_store = invoice_store
        self.party_store = party_store
        self.business_store = business_store
        self.clock = clock

    # ==================== Import ====================

    async def import_statement(
        self,
        business_id: UUID,
        period: str,
        import_type: str,
        raw_payload: Dict[str, Any],
        user_id: Optional[str],
        auth_token: str,
    ) -> Gstr2aImport:
        """
        Store a GSTR-2A/2B statement for the period and reconcile it.

        Re-importing a period replaces the earlier statement, its lines and
        counts.
        """
        parsed = period_parser.parse(period)
        try:
            import_type = ImportType(import_type or ImportType.GSTR2A).value
        except ValueError:
            raise GSTValidationError(
                f"Unknown import type {import_type!r}. Use gstr2a or gstr2b",
                error_code="INVALID_IMPORT_TYPE",
            )
        lines = parse_statement(raw_payload)

        logger.info(
            f"Importing {import_type} for business {business_id}, period {period}: {len(lines)} lines"
        )
        statement = await self.repository.upsert_import(
            business_id,
            period,
            import_type=import_type,
            import_data=raw_payload,
            total_invoices=len(lines),
            imported_by=user_id,
            imported_at=self.clock(),
        )

        purchases = await self._purchases(business_id, parsed, auth_token)
        by_key = await self._purchases_by_key(business_id, purchases, auth_token)

        rows = [self._reconcile_line(business_id, line, by_key.get(line.key)) for line in lines]
        await self.repository.replace_reconciliations(statement.id, rows)

        statement = await self._refresh_counts(statement, rows)
        logger.info(
            f"Reconciled {period}: {statement.matched_invoices} matched, "
            f"{statement.mismatched_invoices} mismatched, {statement.missing_invoices} missing"
        )
        return statement

    def _reconcile_line(
        self, business_id: UUID, line: StatementLine, invoice: Optional[Invoice]
    ) -> Gstr2aReconciliation:
        if invoice is None:
            status, details, invoice_id = MatchStatus.MISSING, None, None
        else:
            status, details = compare_amounts(line.total_value, invoice_total(invoice))
            if status == MatchStatus.MATCHED:
                details = None
            invoice_id = invoice.id

        return Gstr2aReconciliation(
            business_id=business_id,
            supplier_gstin=line.supplier_gstin,
            supplier_name=line.supplier_name,
            invoice_number=line.invoice_number,
            invoice_date=line.invoice_date,
            document_type=line.document_type,
            taxable_value=line.taxable_value,
            igst_amount=line.igst,
            cgst_amount=line.cgst,
            sgst_amount=line.sgst,
            cess_amount=line.cess,
            invoice_id=invoice_id,
            match_status=status.value,
            match_details=details,
            auto_match_status=status.value,
            auto_match_details=details,
            auto_invoice_id=invoice_id,
            is_manual_match=False,
        )

    async def _refresh_counts(
        self, statement: Gstr2aImport, rows: List[Gstr2aReconciliation]
    ) -> Gstr2aImport:
        statuses = [row.match_status for row in rows]
        return await self.repository.update_import(
            statement,
            total_invoices=len(rows),
            matched_invoices=statuses.count(MatchStatus.MATCHED.value),
            missing_invoices=statuses.count(MatchStatus.MISSING.value),
            mismatched_invoices=statuses.count(MatchStatus.MISMATCHED.value),
        )

    # ==================== Read ====================

    async def get_reconciliation(
        self, business_id: UUID, period: str, auth_token: str
    ) -> ReconciliationReport:
        """Persisted statement lines plus the live ``extra`` purchases."""
        parsed = period_parser.parse(period)

        business = await self.business_store.get_business(business_id, auth_token)
        if not business.gstin:
            raise GSTValidationError("Business GSTIN is required", error_code="GSTIN_REQUIRED")

        statement = await self.repository.find_import(business_id, period)
        if statement is None:
            raise GSTNotFoundError(
                f"No GSTR-2A import found for period {period}",
                error_code="IMPORT_NOT_FOUND",
            )

        rows = await self.repository.list_reconciliations(statement.id)
        purchases = await self._purchases(business_id, parsed, auth_token)

        grouped: Dict[str, List[ReconciliationLine]] = {status.value: [] for status in MatchStatus}
        for row in rows:
            grouped[row.match_status].append(self._row_line(row))

        linked = {row.invoice_id for row in rows if row.invoice_id is not None}
        unclaimed = [inv for inv in purchases if inv.id not in linked]
        parties = await self._parties(business_id, unclaimed, auth_token)
        extra = [self._extra_line(inv, parties.get(inv.party_id)) for inv in unclaimed]

        matched = grouped[MatchStatus.MATCHED.value]
        missing = grouped[MatchStatus.MISSING.value]
        mismatched = grouped[MatchStatus.MISMATCHED.value]
        return ReconciliationReport(
            gstin=business.gstin,
            period=period,
            import_type=statement.import_type,
            total_gstr2a_invoices=len(rows),
            total_purchase_invoices=len(purchases),
            matched_count=len(matched),
            missing_count=len(missing),
            mismatched_count=len(mismatched),
            extra_count=len(extra),
            matched=matched,
            missing=missing,
            mismatched=mismatched,
            extra=extra,
        )

    def _row_line(self, row: Gstr2aReconciliation) -> ReconciliationLine:
        return ReconciliationLine(
            id=row.id,
            invoice_id=row.invoice_id,
            supplier_gstin=row.supplier_gstin,
            supplier_name=row.supplier_name,
            invoice_number=row.invoice_number,
            invoice_date=row.invoice_date,
            taxable_value=row.taxable_value,
            igst=row.igst_amount,
            cgst=row.cgst_amount,
            sgst=row.sgst_amount,
            cess=row.cess_amount,
            total_value=row.total_value,
            match_status=row.match_status,
            match_details=row.match_details,
            is_manual_match=row.is_manual_match,
        )

    def _extra_line(self, invoice: Invoice, party: Optional[Party]) -> ReconciliationLine:
        return ReconciliationLine(
            invoice_id=invoice.id,
            supplier_gstin=party.gstin if party else None,
            supplier_name=party.name if party else None,
            invoice_number=invoice.invoice_number,
            invoice_date=invoice.invoice_date,
            taxable_value=invoice.taxable_amount,
            igst=invoice.igst_amount,
            cgst=invoice.cgst_amount,
            sgst=invoice.sgst_amount,
            cess=invoice.cess_amount,
            total_value=invoice_total(invoice),
            match_status="extra",
        )

    # ==================== Manual match ====================

    async def manual_match(
        self,
        reconciliation_id: UUID,
        invoice_id: UUID,
        business_id: UUID,
        user_id: Optional[str],
        auth_token: str,
    ) -> Gstr2aReconciliation:
        """
        Link a statement line to a purchase invoice chosen by a user.

        The amount check is re-run against the chosen invoice. The outcome of
        the automatic attempt stays in ``auto_match_*``.
        """
        row = await self.repository.get_reconciliation(reconciliation_id)
        if row is None:
            raise GSTNotFoundError("Reconciliation not found", error_code="RECONCILIATION_NOT_FOUND")
        if row.business_id != business_id:
            raise GSTValidationError(
                "Reconciliation does not belong to this business",
                error_code="BUSINESS_MISMATCH",
            )

        invoice = await self.invoice_store.get_invoice(business_id, invoice_id, auth_token)
        if invoice.invoice_type != InvoiceType.PURCHASE:
            raise GSTValidationError(
                f"Invoice {invoice.invoice_number} is not a purchase invoice",
                error_code="NOT_A_PURCHASE",
                details={"invoice_type": invoice.invoice_type.value},
            )

        status, details = compare_amounts(to_decimal(row.total_value), invoice_total(invoice))
        row = await self.repository.update_reconciliation(
            row,
            invoice_id=invoice.id,
            match_status=status.value,
            match_details=details,
            is_manual_match=True,
            matched_by=user_id,
            manual_matched_at=self.clock(),
        )

        statement = await self.repository.get_import(row.import_id)
        if statement is not None:
            await self._refresh_counts(statement, await self.repository.list_reconciliations(statement.id))

        logger.info(
            f"Manual match of {reconciliation_id} to invoice {invoice_id} by {user_id}: {status.value}"
        )
        return row

    # ==================== Helpers ====================

    async def _purchases(self, business_id: UUID, period: PeriodRange, auth_token: str) -> List[Invoice]:
        start, end = period.start.date(), period.end.date()
        invoices = await self.invoice_store.get_invoices_by_period(business_id, start, end, auth_token)
        purchases = [
            inv for inv in invoices
            if inv.invoice_type == InvoiceType.PURCHASE and start <= inv.invoice_date <= end
        ]
        return sorted(purchases, key=lambda inv: (inv.invoice_date, inv.invoice_number, str(inv.id)))

    async def _parties(self, business_id: UUID, invoices: List[Invoice], auth_token: str) -> Dict[UUID, Party]:
        party_ids = [inv.party_id for inv in invoices if inv.party_id is not None]
        if not party_ids:
            return {}
        return await self.party_store.get_parties_by_ids(business_id, party_ids, auth_token)

    async def _purchases_by_key(
        self, business_id: UUID, purchases: List[Invoice], auth_token: str
    ) -> Dict[MatchKey, Invoice]:
        """Purchases keyed by (supplier GSTIN, invoice number). Unregistered suppliers are skipped."""
        parties = await self._parties(business_id, purchases, auth_token)
        by_key: Dict[MatchKey, Invoice] = {}
        for invoice in purchases:
            party = parties.get(invoice.party_id) if invoice.party_id else None
            if party is None or not party.gstin:
                continue
            by_key.setdefault(_match_key(party.gstin, invoice.invoice_number), invoice)
        return by_key
