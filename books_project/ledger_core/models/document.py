from decimal import Decimal
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

ORDER_STATUS_CHOICES = [
    ("DRAFT", "Draft"),
    ("CONVERTED", "Converted"),  # one-way: became a bill / invoice
]

PAYMENT_STATUS_CHOICES = [
    ("UNPAID", "Unpaid"),
    ("PARTIAL", "Partially paid"),
    ("PAID", "Paid"),
]

ZERO = Decimal("0.00")


def money_field(**kwargs):
    """DecimalField sized for document amounts."""
    kwargs.setdefault("max_digits", 15)
    kwargs.setdefault("decimal_places", 2)
    kwargs.setdefault("default", ZERO)
    return models.DecimalField(**kwargs)


# ---------- Shared document header ----------
class TradeDocument(models.Model):
    """
    Header fields common to orders, bills & invoices.
    Totals are always computed by services.documents, never typed in.
    """

    # PO-/SO-/VB-/CI- number from services.numbering
    number = models.CharField(max_length=32, unique=True)
    date = models.DateField()
    subtotal = money_field()  # Σ quantity × unit price
    tax_amount = money_field()  # Σ line tax
    total = money_field()  # subtotal + tax_amount
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ("-date", "-id")

    def __str__(self):
        return f"{self.number} ({self.total})"

    def clean(self):
        # Totals must add up exactly, no rounding at header level
        if self.subtotal + self.tax_amount != self.total:
            raise ValidationError("Total must equal subtotal + tax amount")


class PayableDocument(TradeDocument):
    """Bill / invoice header: a document money is paid against."""

    due_date = models.DateField(null=True, blank=True)
    paid_amount = money_field(validators=[MinValueValidator(ZERO)])
    payment_status = models.CharField(
        max_length=10, choices=PAYMENT_STATUS_CHOICES, default="UNPAID"
    )

    class Meta(TradeDocument.Meta):
        abstract = True

    @property
    def balance_due(self):
        return self.total - self.paid_amount

    def clean(self):
        super().clean()
        # never accept more than the document is worth
        if self.paid_amount > self.total:
            raise ValidationError("Paid amount cannot exceed document total")
        if self.due_date and self.date and self.due_date < self.date:
            raise ValidationError("Due date cannot be before document date")


# ---------- Shared line item ----------
class DocumentLine(models.Model):
    """One line on any order / bill / invoice."""

    # a product used on any document cannot be deleted
    product = models.ForeignKey(
        "ledger_core.Product",
        on_delete=models.PROTECT,
        related_name="%(class)s_lines",
    )
    quantity = models.DecimalField(
        max_digits=10, decimal_places=2,
        validators=[MinValueValidator(ZERO)],
    )
    unit_price = models.DecimalField(
        max_digits=10, decimal_places=2,
        validators=[MinValueValidator(ZERO)],
    )
    # Optional tax (same for PROTECT as product)
    tax = models.ForeignKey(
        "ledger_core.Tax",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="%(class)s_lines",
    )
    tax_amount = money_field()
    total = money_field()  # quantity × unit price + tax_amount

    class Meta:
        abstract = True
        ordering = ("id",)

    def __str__(self):
        return f"{self.product} × {self.quantity}"
