# events/types.py
"""
Event type definitions.

This module defines the canonical schema for every event payload. The
dataclasses below are the contract: emit_event() validates each payload
against its registered class before anything is written.

Naming convention: {aggregate}.{action}
Examples:
- journal_entry.posted
- pos.sale_completed
- stock_transfer.approved

Events are a stable API:
- Adding optional fields with defaults is safe
- Removing, renaming or retyping fields breaks projections and replays
"""

from dataclasses import dataclass, asdict, fields as dataclass_fields, MISSING
from typing import Optional, List, Dict, Any, get_type_hints, get_origin, get_args, Union
from decimal import Decimal, InvalidOperation
from datetime import date, datetime


class InvalidEventPayload(Exception):
    """Raised at emission time when a payload does not match its schema."""

    def __init__(self, event_type: str, errors: List[str]):
        self.event_type = event_type
        self.errors = errors
        error_list = "\n  - ".join(errors)
        super().__init__(
            f"Invalid payload for event '{event_type}':\n  - {error_list}"
        )


def _is_optional_type(type_hint) -> bool:
    if get_origin(type_hint) is Union:
        return type(None) in get_args(type_hint)
    return False


def _get_inner_type(type_hint):
    if get_origin(type_hint) is Union:
        non_none = [a for a in get_args(type_hint) if a is not type(None)]
        if len(non_none) == 1:
            return non_none[0]
    return type_hint


DECIMAL_FIELDS = {
    "debit",
    "credit",
    "total_debit",
    "total_credit",
    "amount",
    "subtotal",
    "discount_amount",
    "tax_amount",
    "total_amount",
    "dp_applied",
    "rounding_amount",
    "total_cogs",
    "amount_paid",
    "change_amount",
    "opening_balance",
    "closing_balance",
    "expected_balance",
    "difference",
    "quantity",
    "unit_price",
    "cost_price",
    "discount_percent",
    "tax_percent",
    "deposit_amount",
    "total_estimated",
    "remaining_amount",
    "purchase_price",
    "salvage_value",
    "current_value",
    "accumulated_depreciation",
    "system_quantity",
    "actual_quantity",
}

CURRENCY_FIELDS = {"default_currency"}

DATE_FIELDS = {
    "date",
    "order_date",
    "due_date",
    "period_start",
    "period_end",
    "purchase_date",
    "depreciation_date",
    "disposal_date",
    "as_of",
}

DATETIME_FIELDS = {"posted_at", "reversed_at", "closed_at", "reopened_at", "opened_at"}


def _enum_fields() -> dict:
    from accounts.models import CompanyMembership
    from accounting.models import Account, AccountRoleMapping, JournalEntry

    return {
        "account_type": set(Account.AccountType.values),
        "kind": set(JournalEntry.Kind.values),
        "role": set(CompanyMembership.Role.values),
        "account_role": set(AccountRoleMapping.Role.values),
    }


def validate_event_payload(event_type: str, data: Dict[str, Any]) -> None:
    """
    Validate a payload dict against the dataclass registered for event_type.

    Checks, in order:
    1. required fields are present, unexpected fields are refused
    2. basic Python types (str, int, bool, list, dict, Optional)
    3. domain scalars anywhere in the payload, including nested line dicts:
       decimal strings, ISO dates/datetimes, enum values, currency codes

    Raises:
        InvalidEventPayload: if validation fails
        ValueError: if event_type has no registered schema
    """
    data_class = EVENT_DATA_CLASSES.get(event_type)
    if data_class is None:
        raise ValueError(
            f"No schema registered for event type '{event_type}'. "
            f"Add a dataclass to EVENT_DATA_CLASSES."
        )

    errors = []
    dc_fields = {f.name: f for f in dataclass_fields(data_class)}
    type_hints = get_type_hints(data_class)

    for name, info in dc_fields.items():
        required = info.default is MISSING and info.default_factory is MISSING
        if required and name not in data:
            errors.append(f"Missing required field: '{name}'")

    unexpected = set(data.keys()) - set(dc_fields.keys())
    if unexpected:
        errors.append(
            f"Unexpected fields: {sorted(unexpected)}. Expected: {sorted(dc_fields.keys())}"
        )

    for name, value in data.items():
        type_hint = type_hints.get(name)
        if type_hint is None:
            continue

        if value is None:
            if not _is_optional_type(type_hint):
                errors.append(f"Field '{name}' cannot be None (type: {type_hint})")
            continue

        check_type = _get_inner_type(type_hint)
        origin = get_origin(check_type)

        if origin is list or check_type is list:
            if not isinstance(value, list):
                errors.append(f"Field '{name}' must be a list, got {type(value).__name__}")
            else:
                inner = get_args(check_type)
                if inner and inner[0] in (dict, Dict):
                    for idx, item in enumerate(value):
                        if not isinstance(item, dict):
                            errors.append(
                                f"Field '{name}[{idx}]' must be a dict, got {type(item).__name__}"
                            )
                elif inner and inner[0] is str:
                    for idx, item in enumerate(value):
                        if not isinstance(item, str):
                            errors.append(
                                f"Field '{name}[{idx}]' must be a string, got {type(item).__name__}"
                            )
        elif origin is dict or check_type is dict:
            if not isinstance(value, dict):
                errors.append(f"Field '{name}' must be a dict, got {type(value).__name__}")
        elif check_type is str:
            if not isinstance(value, str):
                errors.append(f"Field '{name}' must be a string, got {type(value).__name__}")
        elif check_type is int:
            if not isinstance(value, int) or isinstance(value, bool):
                errors.append(f"Field '{name}' must be an int, got {type(value).__name__}")
        elif check_type is bool:
            if not isinstance(value, bool):
                errors.append(f"Field '{name}' must be a bool, got {type(value).__name__}")

    enum_fields = _enum_fields()

    def _validate_scalar(name: str, value: Any) -> None:
        if value is None or isinstance(value, (dict, list)):
            return
        if name in enum_fields and value not in enum_fields[name]:
            errors.append(
                f"Field '{name}' must be one of {sorted(enum_fields[name])}, got {value!r}"
            )
        if name in DECIMAL_FIELDS:
            if isinstance(value, bool) or not isinstance(value, (int, Decimal, str)):
                errors.append(f"Field '{name}' must be a decimal string, got {type(value).__name__}")
            else:
                try:
                    Decimal(str(value))
                except (InvalidOperation, ValueError):
                    errors.append(f"Field '{name}' must be a decimal string, got {value!r}")
        if name in CURRENCY_FIELDS:
            if not isinstance(value, str) or len(value) != 3 or not value.isalpha() or value != value.upper():
                errors.append(f"Field '{name}' must be a 3-letter uppercase currency code, got {value!r}")
        if name in DATE_FIELDS:
            try:
                date.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(f"Field '{name}' must be an ISO date string, got {value!r}")
        if name in DATETIME_FIELDS:
            try:
                datetime.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(f"Field '{name}' must be an ISO datetime string, got {value!r}")

    def _walk(name: str, value: Any) -> None:
        _validate_scalar(name, value)
        if isinstance(value, dict):
            for k, v in value.items():
                _walk(k, v)
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, (dict, list)):
                    _walk(name, item)

    for name, value in data.items():
        if name == "changes":
            # {"field": {"old": x, "new": y}} carries arbitrary field names
            continue
        _walk(name, value)

    if errors:
        raise InvalidEventPayload(event_type, errors)


# =============================================================================
# Base
# =============================================================================

@dataclass
class BaseEventData:
    """Base class for all event data."""

    def to_dict(self) -> dict:
        result = {}
        for key, value in asdict(self).items():
            if isinstance(value, Decimal):
                result[key] = str(value)
            elif isinstance(value, (date, datetime)):
                result[key] = value.isoformat()
            else:
                result[key] = value
        return result


# =============================================================================
# Company & membership
# =============================================================================

@dataclass
class CompanyCreatedData(BaseEventData):
    company_public_id: str
    name: str
    slug: str
    default_currency: str = "IDR"
    business_type: str = "trading"


@dataclass
class MembershipCreatedData(BaseEventData):
    membership_public_id: str
    company_public_id: str
    user_public_id: str
    role: str


@dataclass
class UserCompanySwitchedData(BaseEventData):
    user_public_id: str
    email: str
    from_company_public_id: Optional[str]
    to_company_public_id: str


# =============================================================================
# Chart of accounts
# =============================================================================

@dataclass
class AccountCreatedData(BaseEventData):
    """Data for account.created event."""
    account_public_id: str
    code: str
    name: str
    account_type: str
    normal_balance: str
    parent_public_id: Optional[str] = None
    description: str = ""


@dataclass
class AccountUpdatedData(BaseEventData):
    """Data for account.updated event."""
    account_public_id: str
    changes: Dict[str, Dict[str, Any]]


@dataclass
class AccountRoleMappedData(BaseEventData):
    """Data for account.role_mapped event."""
    account_role: str
    account_public_id: str
    account_code: str
    previous_account_public_id: Optional[str] = None


@dataclass
class ChartSeededData(BaseEventData):
    """Data for chart.seeded event (default chart template applied)."""
    template: str
    account_codes: List[str]
    roles_mapped: List[str]


# =============================================================================
# Journal ledger
# =============================================================================

@dataclass
class JournalLineData:
    """Journal line embedded in journal_entry.posted."""
    line_no: int
    account_public_id: str
    account_code: str
    debit: str
    credit: str
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "line_no": self.line_no,
            "account_public_id": self.account_public_id,
            "account_code": self.account_code,
            "debit": self.debit,
            "credit": self.credit,
            "description": self.description,
        }


@dataclass
class JournalEntryPostedData(BaseEventData):
    """Data for journal_entry.posted event. The full entry travels in the event."""
    entry_public_id: str
    entry_number: str
    date: str
    description: str
    kind: str
    posted_at: str
    total_debit: str
    total_credit: str
    lines: List[dict]
    reference_type: str = ""
    reference_id: str = ""
    posted_by_id: Optional[int] = None
    posted_by_email: str = ""
    reverses_entry_public_id: Optional[str] = None


@dataclass
class JournalEntryReversedData(BaseEventData):
    """Data for journal_entry.reversed event."""
    original_entry_public_id: str
    reversal_entry_public_id: str
    reversed_at: str
    reversed_by_id: Optional[int] = None
    reason: str = ""


@dataclass
class PeriodClosedData(BaseEventData):
    period_public_id: str
    period_start: str
    period_end: str
    closed_at: str


@dataclass
class PeriodReopenedData(BaseEventData):
    period_public_id: str
    period_start: str
    period_end: str
    reopened_at: str


# =============================================================================
# Trade documents
# =============================================================================

@dataclass
class OrderCreatedData(BaseEventData):
    """Data for sales_order.created and purchase_order.created."""
    order_public_id: str
    order_number: str
    party_name: str
    order_date: str
    subtotal: str
    discount_amount: str
    tax_amount: str
    total_amount: str
    lines: List[dict]


@dataclass
class OrderStatusChangedData(BaseEventData):
    """Data for {sales,purchase}_order.confirmed / .cancelled."""
    order_public_id: str
    order_number: str
    from_status: str
    to_status: str


@dataclass
class DownPaymentReceivedData(BaseEventData):
    down_payment_public_id: str
    number: str
    payment_type: str
    order_public_id: str
    amount: str
    cash_account_public_id: str
    date: str
    journal_entry_public_id: str


@dataclass
class InvoiceGeneratedData(BaseEventData):
    """Data for invoice.generated and bill.generated."""
    document_public_id: str
    number: str
    order_public_id: str
    party_name: str
    date: str
    due_date: str
    subtotal: str
    discount_amount: str
    tax_amount: str
    dp_applied: str
    total_amount: str
    journal_entry_public_id: str


@dataclass
class InvoiceCancelledData(BaseEventData):
    document_public_id: str
    number: str
    reversal_entry_public_id: Optional[str] = None


@dataclass
class InvoiceOverdueData(BaseEventData):
    invoice_public_id: str
    number: str
    due_date: str
    as_of: str


@dataclass
class PaymentRecordedData(BaseEventData):
    payment_public_id: str
    number: str
    payment_type: str
    party_name: str
    date: str
    amount: str
    cash_account_public_id: str
    allocations: List[dict]
    journal_entry_public_id: str


@dataclass
class PaymentAllocatedData(BaseEventData):
    payment_public_id: str
    number: str
    allocations: List[dict]
    journal_entry_public_id: str


# =============================================================================
# Point of sale
# =============================================================================

@dataclass
class PaymentMethodCreatedData(BaseEventData):
    payment_method_public_id: str
    name: str
    account_public_id: str
    is_cash: bool


@dataclass
class CashSessionOpenedData(BaseEventData):
    session_public_id: str
    number: str
    opening_balance: str
    opened_at: str


@dataclass
class CashSessionClosedData(BaseEventData):
    session_public_id: str
    number: str
    opening_balance: str
    closing_balance: str
    expected_balance: str
    difference: str
    closed_at: str
    notes: str = ""


@dataclass
class POSSaleCompletedData(BaseEventData):
    transaction_public_id: str
    number: str
    client_reference: str
    subtotal: str
    discount_amount: str
    tax_amount: str
    rounding_amount: str
    total_amount: str
    total_cogs: str
    amount_paid: str
    change_amount: str
    items: List[dict]
    payments: List[dict]
    journal_entry_public_id: str
    session_public_id: Optional[str] = None


@dataclass
class POSDepositReceivedData(BaseEventData):
    deposit_public_id: str
    number: str
    customer_name: str
    deposit_amount: str
    total_estimated: str
    remaining_amount: str
    payment_method_public_id: str
    journal_entry_public_id: str
    event_name: str = ""
    event_date: Optional[str] = None


# =============================================================================
# Inventory
# =============================================================================

@dataclass
class ProductCreatedData(BaseEventData):
    product_public_id: str
    sku: str
    name: str
    unit_price: str
    cost_price: str
    revenue_account_public_id: Optional[str] = None


@dataclass
class WarehouseCreatedData(BaseEventData):
    warehouse_public_id: str
    code: str
    name: str
    pic_user_public_id: Optional[str] = None


@dataclass
class StockMovedData(BaseEventData):
    """One signed quantity change at one (product, warehouse)."""
    movement_public_id: str
    product_public_id: str
    warehouse_public_id: str
    quantity: str
    movement_reason: str
    reference_type: str = ""
    reference_id: str = ""


@dataclass
class StockTransferCreatedData(BaseEventData):
    transfer_public_id: str
    number: str
    from_warehouse_public_id: str
    to_warehouse_public_id: str
    items: List[dict]


@dataclass
class StockTransferStatusData(BaseEventData):
    """Data for stock_transfer.approved / .rejected / .completed."""
    transfer_public_id: str
    number: str
    from_status: str
    to_status: str
    reason: str = ""


@dataclass
class GoodsReceivedData(BaseEventData):
    receipt_public_id: str
    number: str
    order_public_id: str
    warehouse_public_id: str
    items: List[dict]


@dataclass
class StockOpnameStartedData(BaseEventData):
    opname_public_id: str
    number: str
    warehouse_public_id: str
    items: List[dict]


@dataclass
class StockOpnameCountedData(BaseEventData):
    opname_public_id: str
    product_public_id: str
    actual_quantity: str


@dataclass
class StockOpnameCompletedData(BaseEventData):
    opname_public_id: str
    number: str
    adjustments: List[dict]


# =============================================================================
# Fixed assets
# =============================================================================

@dataclass
class AssetRegisteredData(BaseEventData):
    asset_public_id: str
    code: str
    name: str
    purchase_date: str
    purchase_price: str
    useful_life_months: int
    salvage_value: str
    depreciation_method: str


@dataclass
class AssetDepreciatedData(BaseEventData):
    asset_public_id: str
    depreciation_public_id: str
    depreciation_date: str
    amount: str
    current_value: str
    accumulated_depreciation: str
    status: str
    journal_entry_public_id: str


@dataclass
class AssetDisposedData(BaseEventData):
    asset_public_id: str
    disposal_date: str
    current_value: str


# =============================================================================
# Event type names
# =============================================================================

class EventTypes:
    COMPANY_CREATED = "company.created"
    MEMBERSHIP_CREATED = "membership.created"
    USER_COMPANY_SWITCHED = "user.company_switched"

    ACCOUNT_CREATED = "account.created"
    ACCOUNT_UPDATED = "account.updated"
    ACCOUNT_ROLE_MAPPED = "account.role_mapped"
    CHART_SEEDED = "chart.seeded"

    JOURNAL_ENTRY_POSTED = "journal_entry.posted"
    JOURNAL_ENTRY_REVERSED = "journal_entry.reversed"
    PERIOD_CLOSED = "period.closed"
    PERIOD_REOPENED = "period.reopened"

    SALES_ORDER_CREATED = "sales_order.created"
    SALES_ORDER_CONFIRMED = "sales_order.confirmed"
    SALES_ORDER_CANCELLED = "sales_order.cancelled"
    PURCHASE_ORDER_CREATED = "purchase_order.created"
    PURCHASE_ORDER_CONFIRMED = "purchase_order.confirmed"
    PURCHASE_ORDER_CANCELLED = "purchase_order.cancelled"
    DOWN_PAYMENT_RECEIVED = "down_payment.received"
    INVOICE_GENERATED = "invoice.generated"
    INVOICE_CANCELLED = "invoice.cancelled"
    INVOICE_OVERDUE = "invoice.overdue"
    BILL_GENERATED = "bill.generated"
    BILL_CANCELLED = "bill.cancelled"
    PAYMENT_RECORDED = "payment.recorded"
    PAYMENT_ALLOCATED = "payment.allocated"

    PAYMENT_METHOD_CREATED = "pos.payment_method_created"
    CASH_SESSION_OPENED = "pos.session_opened"
    CASH_SESSION_CLOSED = "pos.session_closed"
    POS_SALE_COMPLETED = "pos.sale_completed"
    POS_DEPOSIT_RECEIVED = "pos.deposit_received"

    PRODUCT_CREATED = "product.created"
    WAREHOUSE_CREATED = "warehouse.created"
    STOCK_MOVED = "stock.moved"
    STOCK_TRANSFER_CREATED = "stock_transfer.created"
    STOCK_TRANSFER_APPROVED = "stock_transfer.approved"
    STOCK_TRANSFER_REJECTED = "stock_transfer.rejected"
    STOCK_TRANSFER_COMPLETED = "stock_transfer.completed"
    GOODS_RECEIVED = "goods.received"
    STOCK_OPNAME_STARTED = "stock_opname.started"
    STOCK_OPNAME_COUNTED = "stock_opname.counted"
    STOCK_OPNAME_COMPLETED = "stock_opname.completed"

    ASSET_REGISTERED = "asset.registered"
    ASSET_DEPRECIATED = "asset.depreciated"
    ASSET_DISPOSED = "asset.disposed"


EVENT_DATA_CLASSES = {
    EventTypes.COMPANY_CREATED: CompanyCreatedData,
    EventTypes.MEMBERSHIP_CREATED: MembershipCreatedData,
    EventTypes.USER_COMPANY_SWITCHED: UserCompanySwitchedData,

    EventTypes.ACCOUNT_CREATED: AccountCreatedData,
    EventTypes.ACCOUNT_UPDATED: AccountUpdatedData,
    EventTypes.ACCOUNT_ROLE_MAPPED: AccountRoleMappedData,
    EventTypes.CHART_SEEDED: ChartSeededData,

    EventTypes.JOURNAL_ENTRY_POSTED: JournalEntryPostedData,
    EventTypes.JOURNAL_ENTRY_REVERSED: JournalEntryReversedData,
    EventTypes.PERIOD_CLOSED: PeriodClosedData,
    EventTypes.PERIOD_REOPENED: PeriodReopenedData,

    EventTypes.SALES_ORDER_CREATED: OrderCreatedData,
    EventTypes.SALES_ORDER_CONFIRMED: OrderStatusChangedData,
    EventTypes.SALES_ORDER_CANCELLED: OrderStatusChangedData,
    EventTypes.PURCHASE_ORDER_CREATED: OrderCreatedData,
    EventTypes.PURCHASE_ORDER_CONFIRMED: OrderStatusChangedData,
    EventTypes.PURCHASE_ORDER_CANCELLED: OrderStatusChangedData,
    EventTypes.DOWN_PAYMENT_RECEIVED: DownPaymentReceivedData,
    EventTypes.INVOICE_GENERATED: InvoiceGeneratedData,
    EventTypes.INVOICE_CANCELLED: InvoiceCancelledData,
    EventTypes.INVOICE_OVERDUE: InvoiceOverdueData,
    EventTypes.BILL_GENERATED: InvoiceGeneratedData,
    EventTypes.BILL_CANCELLED: InvoiceCancelledData,
    EventTypes.PAYMENT_RECORDED: PaymentRecordedData,
    EventTypes.PAYMENT_ALLOCATED: PaymentAllocatedData,

    EventTypes.PAYMENT_METHOD_CREATED: PaymentMethodCreatedData,
    EventTypes.CASH_SESSION_OPENED: CashSessionOpenedData,
    EventTypes.CASH_SESSION_CLOSED: CashSessionClosedData,
    EventTypes.POS_SALE_COMPLETED: POSSaleCompletedData,
    EventTypes.POS_DEPOSIT_RECEIVED: POSDepositReceivedData,

    EventTypes.PRODUCT_CREATED: ProductCreatedData,
    EventTypes.WAREHOUSE_CREATED: WarehouseCreatedData,
    EventTypes.STOCK_MOVED: StockMovedData,
    EventTypes.STOCK_TRANSFER_CREATED: StockTransferCreatedData,
    EventTypes.STOCK_TRANSFER_APPROVED: StockTransferStatusData,
    EventTypes.STOCK_TRANSFER_REJECTED: StockTransferStatusData,
    EventTypes.STOCK_TRANSFER_COMPLETED: StockTransferStatusData,
    EventTypes.GOODS_RECEIVED: GoodsReceivedData,
    EventTypes.STOCK_OPNAME_STARTED: StockOpnameStartedData,
    EventTypes.STOCK_OPNAME_COUNTED: StockOpnameCountedData,
    EventTypes.STOCK_OPNAME_COMPLETED: StockOpnameCompletedData,

    EventTypes.ASSET_REGISTERED: AssetRegisteredData,
    EventTypes.ASSET_DEPRECIATED: AssetDepreciatedData,
    EventTypes.ASSET_DISPOSED: AssetDisposedData,
}
