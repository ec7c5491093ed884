"""
Money arithmetic for documents and payments.

Everything here is pure: no database access, no logging. Services resolve
ids to rows first and hand plain values (or model instances) in.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from django.core.exceptions import ValidationError

from .exceptions import OverpaymentError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def round2(value: Decimal) -> Decimal:
    """Half-up rounding to cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_amount(value, field: str = "amount") -> Decimal:
    """
    Coerce user input to a non-negative Decimal with at most 2 decimals.
    Raises ValidationError for anything else (text, NaN, negatives ...).
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        # str() first so floats like 0.1 keep their printed value
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{field} allows at most 2 decimal places")
    return amount


@dataclass(frozen=True)
class LineAmounts:
    tax_amount: Decimal
    total: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


@dataclass(frozen=True)
class PaymentOutcome:
    new_paid_amount: Decimal
    new_status: str


# ---------- Line calculator ----------
def line_tax(base: Decimal, tax) -> Decimal:
    """Tax for one line. `tax` is anything with computation_method & rate."""
    if tax is None:
        return ZERO
    rate = Decimal(tax.rate)
    if tax.computation_method == "PERCENTAGE":
        return round2(base * rate / HUNDRED)
    if tax.computation_method == "FIXED_VALUE":
        # flat per line, not scaled by quantity
        return round2(rate)
    raise ValidationError(
        f"Unknown tax computation method: {tax.computation_method}")


def line_base(quantity, unit_price) -> Decimal:
    """qty × price in whole cents. Exact whenever the product already is."""
    return round2(Decimal(quantity) * Decimal(unit_price))


def compute_line(quantity, unit_price, tax=None) -> LineAmounts:
    """
    tax_amount = round2(qty × price × rate / 100) for PERCENTAGE taxes,
    the flat rate for FIXED_VALUE, 0 without a tax.
    total = line_base(qty, price) + tax_amount.
    """
    quantity = to_amount(quantity, "quantity")
    unit_price = to_amount(unit_price, "unit_price")
    # tax is taken on the exact product, e.g. 1.5 × 0.99 = 1.485
    tax_amount = line_tax(quantity * unit_price, tax)
    return LineAmounts(tax_amount=tax_amount,
                       total=line_base(quantity, unit_price) + tax_amount)


# ---------- Document totals ----------
def aggregate(lines: Iterable) -> DocumentTotals:
    """
    Sum lines (objects with quantity, unit_price, tax_amount) into
    document totals. total is subtotal + tax_amount, exactly.
    """
    lines = list(lines)
    if not lines:
        raise ValidationError("A document needs at least one line item")
    subtotal = sum((line_base(l.quantity, l.unit_price) for l in lines), ZERO)
    tax_amount = sum((Decimal(l.tax_amount) for l in lines), ZERO)
    return DocumentTotals(
        subtotal=subtotal, tax_amount=tax_amount, total=subtotal + tax_amount
    )


# ---------- Payments ----------
def payment_status(total: Decimal, paid_amount: Decimal) -> str:
    if paid_amount <= 0:
        return "UNPAID"
    # >= absorbs rounding residue
    if paid_amount >= total:
        return "PAID"
    return "PARTIAL"


def apply_payment(total, paid_amount, amount) -> PaymentOutcome:
    """
    Validate a payment against what is still owed on a document.
    Overpayments are rejected, never clamped.
    """
    total = Decimal(total)
    paid_amount = Decimal(paid_amount)
    try:
        amount = to_amount(amount, "amount")
    except ValidationError:
        raise ValidationError("Payment amount must be a positive number")
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    if amount > total - paid_amount:
        raise OverpaymentError("Payment amount exceeds remaining balance")
    new_paid = paid_amount + amount
    return PaymentOutcome(
        new_paid_amount=new_paid, new_status="PAID" if new_paid >= total else "PARTIAL"
    )


# ---------- Stand-alone tax calculation ----------
def calculate_tax(amount, tax) -> dict:
    """Tax on a bare amount, shaped for the /taxes/calculate endpoint."""
    amount = to_amount(amount, "amount")
    tax_amount = line_tax(amount, tax)
    return {
        "originalAmount": amount,
        "taxAmount": tax_amount,
        "total": amount + tax_amount,
        "tax": {
            "id": getattr(tax, "pk", None),
            "name": tax.name,
            "computationMethod": tax.computation_method,
            "rate": Decimal(tax.rate),
        },
    }
