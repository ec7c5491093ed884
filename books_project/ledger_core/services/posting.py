import logging
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from django.conf import settings
from django.db import transaction

from ..exceptions import NotFoundError, UnbalancedJournalError
from ..models import Account, LedgerEntry, StockMovement

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class Posting:
    """One side of a journal before it becomes a LedgerEntry row."""
    account: Account
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    contact: Optional[object] = None
    description: str = ""


# ----------------------------
# Control accounts
# ----------------------------
def control_account(key: str) -> Account:
    """Resolve a control account (cash, receivable, sales ...) by its code."""
    code = settings.LEDGER_ACCOUNT_CODES[key]
    try:
        return Account.objects.get(code=code)
    except Account.DoesNotExist:
        raise NotFoundError(
            f"Control account '{key}' (code {code}) is missing from the chart "
            "of accounts; run seed_chart_of_accounts"
        )


def settlement_account(payment_method: str) -> Account:
    # cash goes to Cash, every other method (bank, cheque, online) to Bank
    return control_account("cash" if payment_method == "CASH" else "bank")


# ----------------------------
# Journal writer
# ----------------------------
def post_entries(
    postings: Iterable[Posting],
    *,
    transaction_date,
    reference_type: str,
    reference_id,
) -> List[LedgerEntry]:
    """
    Write a balanced set of postings as LedgerEntry rows.
    Zero-amount sides (e.g. no tax on a document) are skipped.
    """
    postings = [p for p in postings if p.debit or p.credit]
    total_debit = sum((p.debit for p in postings), ZERO)
    total_credit = sum((p.credit for p in postings), ZERO)
    if total_debit != total_credit:
        raise UnbalancedJournalError(
            f"{reference_type} {reference_id}: debits {total_debit} "
            f"!= credits {total_credit}"
        )

    with transaction.atomic():
        entries = [
            LedgerEntry.objects.create(
                account=p.account,
                contact=p.contact,
                transaction_date=transaction_date,
                debit=p.debit,
                credit=p.credit,
                description=p.description,
                reference_type=reference_type,
                reference_id=str(reference_id),
            )
            for p in postings
        ]
    logger.info("Posted %s %s: %d entries, %s",
                reference_type, reference_id, len(entries), total_debit)
    return entries


# ----------------------------
# Posting rules
# ----------------------------
def post_customer_invoice(invoice) -> List[LedgerEntry]:
    """Dr Accounts Receivable / Cr Sales, Cr Tax Payable."""
    label = f"Invoice {invoice.number}"
    return post_entries(
        [
            Posting(control_account("receivable"), debit=invoice.total,
                    contact=invoice.contact, description=label),
            Posting(control_account("sales"), credit=invoice.subtotal,
                    description=label),
            Posting(control_account("tax_payable"), credit=invoice.tax_amount,
                    description=f"{label} tax"),
        ],
        transaction_date=invoice.date,
        reference_type="INVOICE",
        reference_id=invoice.pk,
    )


def post_vendor_bill(bill) -> List[LedgerEntry]:
    """Dr Purchases, Dr Tax Receivable / Cr Accounts Payable."""
    label = f"Bill {bill.number}"
    return post_entries(
        [
            Posting(control_account("purchases"), debit=bill.subtotal,
                    description=label),
            Posting(control_account("tax_receivable"), debit=bill.tax_amount,
                    description=f"{label} tax"),
            Posting(control_account("payable"), credit=bill.total,
                    contact=bill.contact, description=label),
        ],
        transaction_date=bill.date,
        reference_type="BILL",
        reference_id=bill.pk,
    )


def post_invoice_payment(payment) -> List[LedgerEntry]:
    """Dr Cash/Bank / Cr Accounts Receivable."""
    label = f"Payment received for {payment.customer_invoice.number}"
    return post_entries(
        [
            Posting(settlement_account(payment.payment_method),
                    debit=payment.amount, description=label),
            Posting(control_account("receivable"), credit=payment.amount,
                    contact=payment.contact, description=label),
        ],
        transaction_date=payment.payment_date,
        reference_type="INVOICE_PAYMENT",
        reference_id=payment.pk,
    )


def post_bill_payment(payment) -> List[LedgerEntry]:
    """Dr Accounts Payable / Cr Cash/Bank."""
    label = f"Payment made for {payment.vendor_bill.number}"
    return post_entries(
        [
            Posting(control_account("payable"), debit=payment.amount,
                    contact=payment.contact, description=label),
            Posting(settlement_account(payment.payment_method),
                    credit=payment.amount, description=label),
        ],
        transaction_date=payment.payment_date,
        reference_type="BILL_PAYMENT",
        reference_id=payment.pk,
    )


def _net_by(rows, key):
    """Σ(debit − credit) per key over already-loaded ledger rows."""
    net = OrderedDict()
    for row in rows:
        net[key(row)] = net.get(key(row), ZERO) + row.debit - row.credit
    return net


def reverse_entries(reference_type: str, reference_id, *,
                    reversal_type: str, transaction_date) -> List[LedgerEntry]:
    """
    Cancel what a document still has on the books. Its own rows and any
    earlier reversals are netted per account & contact and the remainder is
    posted the other way, so a document reposted after an edit reverses once.
    """
    rows = list(
        LedgerEntry.objects.filter(
            reference_type__in=(reference_type, reversal_type),
            reference_id=str(reference_id),
        ).select_related("account", "contact").chronological()
    )
    net = _net_by(rows, key=lambda e: (e.account, e.contact))
    postings = [
        Posting(account, debit=-amount if amount < 0 else ZERO,
                credit=amount if amount > 0 else ZERO, contact=contact,
                description=f"Reversal of {reference_type.lower()} {reference_id}")
        for (account, contact), amount in net.items()
        if amount
    ]
    if not postings:
        return []
    return post_entries(
        postings,
        transaction_date=transaction_date,
        reference_type=reversal_type,
        reference_id=reference_id,
    )


# ----------------------------
# Stock
# ----------------------------
def _post_stock(document, movement_type: str, reference_type: str):
    movements = []
    for line in document.items.select_related("product"):
        # services don't move stock, and a zero line moves nothing
        if not line.product.is_stocked or not line.quantity:
            continue
        movements.append(StockMovement.objects.create(
            product=line.product,
            movement_type=movement_type,
            quantity=line.quantity,
            movement_date=document.date,
            reference_type=reference_type,
            reference_id=str(document.pk),
            notes=document.number,
        ))
    return movements


def post_bill_stock(bill) -> List[StockMovement]:
    return _post_stock(bill, "IN", "BILL")


def post_invoice_stock(invoice) -> List[StockMovement]:
    return _post_stock(invoice, "OUT", "INVOICE")


def reverse_stock(reference_type: str, reference_id, *,
                  reversal_type: str, movement_date) -> List[StockMovement]:
    """
    Undo a document's movements with signed ADJUSTMENT rows, so purchases
    and sales columns keep what was actually recorded. Earlier reversals of
    the same document are netted in, as for ledger entries.
    """
    net = OrderedDict()
    for m in StockMovement.objects.filter(
        reference_type__in=(reference_type, reversal_type),
        reference_id=str(reference_id),
    ).select_related("product").order_by("movement_date", "created_at", "id"):
        signed = -m.quantity if m.movement_type == "OUT" else m.quantity
        net[m.product] = net.get(m.product, ZERO) + signed
    return [
        StockMovement.objects.create(
            product=product,
            movement_type="ADJUSTMENT",
            quantity=-quantity,
            movement_date=movement_date,
            reference_type=reversal_type,
            reference_id=str(reference_id),
            notes=f"Reversal of {reference_type.lower()} {reference_id}",
        )
        for product, quantity in net.items()
        if quantity
    ]


def adjust_stock(product, quantity: Decimal, movement_date, notes: str = "") -> StockMovement:
    """Manual stock correction (count differences, damage ...)."""
    movement = StockMovement.objects.create(
        product=product,
        movement_type="ADJUSTMENT",
        quantity=quantity,
        movement_date=movement_date,
        reference_type="ADJUSTMENT",
        notes=notes or None,
    )
    logger.info("Stock adjusted: %s %s", product, quantity)
    return movement
