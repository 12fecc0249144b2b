"""GSP request payloads and provider results.

Payload field names follow the government schemas exactly (NIC e-invoice
``DocDtls``/``ItemList``/..., e-way bill ``userGstin``/``itemList``/...).
Dump them with ``to_payload()`` so optional blocks that are not set are
left out of the request.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.base import Money, Quantity, Rate as TaxRate


class GSPPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# ==================== E-Invoice (IRN) ====================

class TransactionDetails(GSPPayload):
    TaxSch: str = "GST"
    SupTyp: str = "B2B"  # B2B, EXPWP, EXPWOP
    RegRev: str = "N"
    IgstOnIntra: str = "N"


class DocumentDetails(GSPPayload):
    Typ: str = "INV"
    No: str
    Dt: str  # DD-MM-YYYY


class SellerDetails(GSPPayload):
    Gstin: str
    LglNm: str
    TrdNm: Optional[str] = None
    Addr1: Optional[str] = None
    Addr2: Optional[str] = None
    Loc: Optional[str] = None
    Pin: Optional[int] = None
    Stcd: Optional[str] = None
    Ph: Optional[str] = None
    Em: Optional[str] = None


class BuyerDetails(GSPPayload):
    Gstin: Optional[str] = None
    LglNm: str
    TrdNm: Optional[str] = None
    Pos: Optional[str] = None
    Addr1: Optional[str] = None
    Addr2: Optional[str] = None
    Loc: Optional[str] = None
    Pin: Optional[int] = None
    Stcd: Optional[str] = None
    Ph: Optional[str] = None
    Em: Optional[str] = None


class EInvoiceItem(GSPPayload):
    SlNo: str
    PrdDesc: str
    HsnCd: str
    Qty: Quantity
    Unit: str
    Rate: Money
    TotAmt: Money
    Discount: Money = Decimal("0")
    TaxableAmt: Money
    IgstAmt: Money = Decimal("0")
    CgstAmt: Money = Decimal("0")
    SgstAmt: Money = Decimal("0")
    CesAmt: Money = Decimal("0")
    CesRt: TaxRate = Decimal("0")
    CesNonAdvlAmt: Money = Decimal("0")
    TotItemVal: Money


class ValueDetails(GSPPayload):
    AssVal: Money
    CgstVal: Money
    SgstVal: Money
    IgstVal: Money
    CesVal: Money
    StCesVal: Money = Decimal("0")
    Discount: Money = Decimal("0")
    OthChrg: Money = Decimal("0")
    RndOffAmt: Money = Decimal("0")
    TotInvVal: Money


class PaymentDetails(GSPPayload):
    PaidAmt: Money
    PaymtDue: Money


class ExportDetails(GSPPayload):
    ShipBNo: Optional[str] = None
    ShipBDt: Optional[str] = None
    Port: Optional[str] = None
    ForCur: str = "INR"
    CntCode: str = "IN"


class EInvoicePayload(GSPPayload):
    Version: str = "1.1"
    TranDtls: TransactionDetails
    DocDtls: DocumentDetails
    SellerDtls: SellerDetails
    BuyerDtls: BuyerDetails
    ItemList: List[EInvoiceItem]
    ValDtls: ValueDetails
    PayDtls: Optional[PaymentDetails] = None
    ExpDtls: Optional[ExportDetails] = None


# ==================== E-Way Bill ====================

class EWayBillItem(GSPPayload):
    productName: str
    productDesc: Optional[str] = None
    hsnCode: str
    quantity: Quantity
    qtyUnit: str
    cgstRate: TaxRate = Decimal("0")
    sgstRate: TaxRate = Decimal("0")
    igstRate: TaxRate = Decimal("0")
    cessRate: TaxRate = Decimal("0")
    cessNonAdvol: Money = Decimal("0")
    taxableAmount: Money


class EWayBillPayload(GSPPayload):
    userGstin: str
    supplyType: str  # O = Outward, I = Inward
    subSupplyType: Optional[str] = None
    docType: str = "INV"
    docNo: str
    docDate: str  # DD-MM-YYYY
    fromGstin: Optional[str] = None
    fromTrdName: Optional[str] = None
    fromAddr1: Optional[str] = None
    fromAddr2: Optional[str] = None
    fromPlace: Optional[str] = None
    fromPincode: Optional[int] = None
    fromStateCode: Optional[str] = None
    toGstin: Optional[str] = None
    toTrdName: Optional[str] = None
    toAddr1: Optional[str] = None
    toAddr2: Optional[str] = None
    toPlace: Optional[str] = None
    toPincode: Optional[int] = None
    toStateCode: Optional[str] = None
    itemList: List[EWayBillItem]
    totalValue: Money
    cgstValue: Money
    sgstValue: Money
    igstValue: Money
    cessValue: Money
    totInvValue: Money
    transMode: Optional[str] = "1"  # 1=Road, 2=Rail, 3=Air, 4=Ship
    transDistance: Optional[int] = None
    transporterId: Optional[str] = None
    transporterName: Optional[str] = None
    vehicleNo: Optional[str] = None
    vehicleType: Optional[str] = None


class EWayBillUpdate(GSPPayload):
    """Part-B update: vehicle and transport details."""
    vehicleNo: Optional[str] = None
    transMode: Optional[str] = None
    transDistance: Optional[int] = None
    transporterId: Optional[str] = None
    transporterName: Optional[str] = None
    fromPlace: Optional[str] = None
    fromStateCode: Optional[str] = None
    reasonCode: Optional[str] = None
    reasonRem: Optional[str] = None


# ==================== Provider results ====================

class GSPResult(BaseModel):
    """Business-level outcome. Providers return failures, they do not raise them."""
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None


class IRNResult(GSPResult):
    irn: Optional[str] = None
    ack_no: Optional[str] = None
    ack_date: Optional[str] = None
    qr_code: Optional[str] = None
    ewaybill_no: Optional[str] = None
    signed_invoice: Optional[str] = None
    signed_qr_code: Optional[str] = None


class IRNCancelResult(GSPResult):
    irn: Optional[str] = None
    cancel_date: Optional[str] = None


class EWayBillResult(GSPResult):
    ewaybill_no: Optional[str] = None
    ewaybill_date: Optional[str] = None
    valid_upto: Optional[str] = None


class EWayBillCancelResult(GSPResult):
    ewaybill_no: Optional[str] = None
    cancel_date: Optional[str] = None


class IRNStatusResult(GSPResult):
    irn: Optional[str] = None
    status: Optional[str] = None  # ACTIVE, CANCELLED
    ack_no: Optional[str] = None
    ack_date: Optional[str] = None


class EWayBillStatusResult(GSPResult):
    ewaybill_no: Optional[str] = None
    status: Optional[str] = None  # ACTIVE, CANCELLED, EXPIRED
    valid_upto: Optional[str] = None


class GSPCredentials(BaseModel):
    """Decrypted per-business provider credentials."""
    model_config = ConfigDict(extra="ignore")

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    api_url: Optional[str] = None
