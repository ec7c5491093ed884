"""
Financial statements built from the append-only ledger.

The ``build_*`` functions are pure: they take rows that were already loaded
and return JSON-ready dicts (Decimal / date values, serialised with
DjangoJSONEncoder). The un-prefixed functions load the rows through the ORM
and hand them to the matching builder.
"""
import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

from django.db.models import Count, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..exceptions import NotFoundError
from ..models import (Account, Contact, CustomerInvoice, InvoicePayment,
                      LedgerEntry, Product, StockMovement, VendorBill)
from ..models.account import BALANCE_SHEET_TYPES

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
TOLERANCE = Decimal("0.01")

# account id → (Σ debit, Σ credit)
Totals = Dict[int, Tuple[Decimal, Decimal]]


# ----------------------------
# Loading helpers
# ----------------------------
def account_totals(entries) -> Totals:
    """Collapse a LedgerEntry queryset into per-account debit/credit sums."""
    rows = (
        entries.order_by()
        .values("account_id")
        .annotate(debit_sum=Coalesce(Sum("debit"), ZERO),
                  credit_sum=Coalesce(Sum("credit"), ZERO))
    )
    return {r["account_id"]: (r["debit_sum"], r["credit_sum"]) for r in rows}


def _item(account, balance: Decimal) -> dict:
    # balance is always debit − credit; magnitude + side are reported
    return {
        "id": account.pk,
        "name": account.name,
        "code": account.code,
        "type": account.account_type,
        "balance": abs(balance),
        "isDebit": balance >= 0,
    }


# ----------------------------
# Balance sheet
# ----------------------------
def build_balance_sheet(accounts: Iterable, totals: Totals, as_of_date) -> dict:
    """
    Assets are reported debit-normal, liabilities & equity credit-normal.
    Income less expenses to date is not closed into equity by any posting,
    so it is shown as a "Current Earnings" equity line.
    """
    sections = {t: {"items": [], "total": ZERO} for t in BALANCE_SHEET_TYPES}
    earnings = ZERO
    for account in accounts:
        debit, credit = totals.get(account.pk, (ZERO, ZERO))
        balance = debit - credit
        if account.account_type in ("INCOME", "EXPENSE"):
            earnings -= balance  # credit balance = profit
            continue
        if balance == 0:
            continue
        section = sections[account.account_type]
        section["items"].append(_item(account, balance))
        section["total"] += balance if account.account_type == "ASSET" else -balance

    equity = sections["EQUITY"]
    if earnings != 0:
        equity["items"].append({
            "id": None,
            "name": "Current Earnings",
            "code": None,
            "type": "EQUITY",
            "balance": abs(earnings),
            "isDebit": earnings < 0,
        })
        equity["total"] += earnings

    assets = sections["ASSET"]
    liabilities = sections["LIABILITY"]
    total_le = liabilities["total"] + equity["total"]
    is_balanced = abs(assets["total"] - total_le) < TOLERANCE
    if not is_balanced:
        # surfaced, never hidden: the ledger itself is out of balance
        logger.error("Balance sheet as of %s does not balance: %s vs %s",
                     as_of_date, assets["total"], total_le)
    return {
        "asOfDate": as_of_date,
        "assets": assets,
        "liabilities": liabilities,
        "equity": equity,
        "totalLiabilitiesAndEquity": total_le,
        "isBalanced": is_balanced,
    }


def balance_sheet(as_of_date: Optional[date] = None) -> dict:
    as_of_date = as_of_date or timezone.localdate()
    totals = account_totals(LedgerEntry.objects.as_of(as_of_date))
    return build_balance_sheet(Account.objects.order_by("code"), totals, as_of_date)


# ----------------------------
# Profit & loss
# ----------------------------
def build_profit_and_loss(accounts: Iterable, totals: Totals, start_date, end_date) -> dict:
    income = {"items": [], "total": ZERO}
    expenses = {"items": [], "total": ZERO}
    for account in accounts:
        debit, credit = totals.get(account.pk, (ZERO, ZERO))
        if account.account_type == "INCOME":
            amount = credit - debit
            section = income
        elif account.account_type == "EXPENSE":
            amount = debit - credit
            section = expenses
        else:
            continue
        if amount == 0:
            continue
        section["items"].append({
            "id": account.pk,
            "name": account.name,
            "code": account.code,
            "amount": amount,
        })
        section["total"] += amount

    net_profit = income["total"] - expenses["total"]
    return {
        "period": {"startDate": start_date, "endDate": end_date},
        "income": income,
        "expenses": expenses,
        "netProfit": net_profit,
        "isProfit": net_profit >= 0,
    }


def profit_and_loss(start_date: date, end_date: date) -> dict:
    totals = account_totals(LedgerEntry.objects.between(start_date, end_date))
    return build_profit_and_loss(
        Account.objects.filter(account_type__in=("INCOME", "EXPENSE")).order_by("code"),
        totals, start_date, end_date,
    )


# ----------------------------
# Partner ledger
# ----------------------------
def build_partner_ledger(contact, entries: Iterable, start_date=None, end_date=None) -> dict:
    """`entries` must already be in chronological order."""
    running = ZERO
    total_debit = total_credit = ZERO
    transactions = []
    for entry in entries:
        running += entry.debit - entry.credit
        total_debit += entry.debit
        total_credit += entry.credit
        transactions.append({
            "id": entry.pk,
            "date": entry.transaction_date,
            "account": {
                "id": entry.account.pk,
                "name": entry.account.name,
                "code": entry.account.code,
                "type": entry.account.account_type,
            },
            "description": entry.description,
            "referenceType": entry.reference_type,
            "referenceId": entry.reference_id,
            "debit": entry.debit,
            "credit": entry.credit,
            "balance": running,
        })
    return {
        "contact": {
            "id": contact.pk,
            "name": contact.name,
            "type": contact.contact_type,
            "email": contact.email,
            "mobile": contact.mobile,
        },
        "period": {"startDate": start_date, "endDate": end_date},
        "transactions": transactions,
        "summary": {
            "totalDebit": total_debit,
            "totalCredit": total_credit,
            "finalBalance": running,
            "isDebit": running >= 0,
        },
    }


def partner_ledger(contact_id, start_date: Optional[date] = None,
                   end_date: Optional[date] = None) -> dict:
    try:
        contact = Contact.objects.get(pk=contact_id)
    except Contact.DoesNotExist:
        raise NotFoundError("Contact not found")
    entries = LedgerEntry.objects.filter(contact=contact)
    if start_date:
        entries = entries.filter(transaction_date__gte=start_date)
    if end_date:
        entries = entries.filter(transaction_date__lte=end_date)
    entries = entries.select_related("account").chronological()
    return build_partner_ledger(contact, entries, start_date, end_date)


# ----------------------------
# Stock statement
# ----------------------------
def build_stock_statement(movements: Iterable, as_of_date) -> dict:
    """Group movements by product: closing = IN − OUT + ADJUSTMENT."""
    per_product = OrderedDict()
    for m in movements:
        row = per_product.get(m.product_id)
        if row is None:
            row = per_product[m.product_id] = {
                "product": {
                    "id": m.product.pk,
                    "name": m.product.name,
                    "type": m.product.product_type,
                    "purchasePrice": m.product.purchase_price,
                },
                "purchases": ZERO,
                "sales": ZERO,
                "adjustments": ZERO,
                "closingStock": ZERO,
                "stockValue": ZERO,
                "movements": [],
            }
        key = {"IN": "purchases", "OUT": "sales", "ADJUSTMENT": "adjustments"}[m.movement_type]
        row[key] += m.quantity
        row["movements"].append({
            "id": m.pk,
            "movementType": m.movement_type,
            "quantity": m.quantity,
            "movementDate": m.movement_date,
            "referenceType": m.reference_type,
            "referenceId": m.reference_id,
            "description": m.notes,
        })

    items = list(per_product.values())
    for row in items:
        row["closingStock"] = row["purchases"] - row["sales"] + row["adjustments"]
        row["stockValue"] = row["closingStock"] * row["product"]["purchasePrice"]

    return {
        "asOfDate": as_of_date,
        "items": items,
        "summary": {
            "totalProducts": len(items),
            "totalStockValue": sum((r["stockValue"] for r in items), ZERO),
            "totalQuantity": sum((r["closingStock"] for r in items), ZERO),
        },
    }


def stock_statement(as_of_date: Optional[date] = None, product_id=None) -> dict:
    as_of_date = as_of_date or timezone.localdate()
    movements = StockMovement.objects.filter(movement_date__lte=as_of_date)
    if product_id:
        if not Product.objects.filter(pk=product_id).exists():
            raise NotFoundError("Product not found")
        movements = movements.filter(product_id=product_id)
    movements = movements.select_related("product").order_by(
        "product__name", "product_id", "movement_date", "created_at", "id")
    return build_stock_statement(movements, as_of_date)


# ----------------------------
# Dashboard
# ----------------------------
def _document_sum(qs) -> dict:
    agg = qs.aggregate(amount=Coalesce(Sum("total"), ZERO), count=Count("id"))
    return {"amount": agg["amount"], "count": agg["count"]}


def _outstanding(model) -> Decimal:
    agg = model.objects.outstanding().aggregate(
        total=Coalesce(Sum("total"), ZERO), paid=Coalesce(Sum("paid_amount"), ZERO))
    return agg["total"] - agg["paid"]


def dashboard(today: Optional[date] = None) -> dict:
    today = today or timezone.localdate()
    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)

    sales = {
        "monthly": _document_sum(CustomerInvoice.objects.dated_between(month_start, today)),
        "yearly": _document_sum(CustomerInvoice.objects.dated_between(year_start, today)),
        "total": _document_sum(CustomerInvoice.objects.all()),
    }
    purchases = {
        "monthly": _document_sum(VendorBill.objects.dated_between(month_start, today)),
        "yearly": _document_sum(VendorBill.objects.dated_between(year_start, today)),
        "total": _document_sum(VendorBill.objects.all()),
    }
    received = InvoicePayment.objects.all()
    return {
        "sales": sales,
        "purchases": purchases,
        "payments": {
            "monthly": received.filter(
                payment_date__gte=month_start, payment_date__lte=today
            ).aggregate(s=Coalesce(Sum("amount"), ZERO))["s"],
            "total": received.aggregate(s=Coalesce(Sum("amount"), ZERO))["s"],
        },
        "pending": {
            "receivables": _outstanding(CustomerInvoice),
            "payables": _outstanding(VendorBill),
        },
        "profit": {
            period: sales[period]["amount"] - purchases[period]["amount"]
            for period in ("monthly", "yearly", "total")
        },
    }


# Report name → builder, used by the async task and the report view
REPORTS = {
    "balance_sheet": balance_sheet,
    "profit_and_loss": profit_and_loss,
    "partner_ledger": partner_ledger,
    "stock_statement": stock_statement,
    "dashboard": dashboard,
}
