from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import ConflictError
from ..managers import LedgerEntryManager

# What business event produced a ledger row
REFERENCE_TYPES = [
    ("INVOICE", "Customer invoice"),
    ("BILL", "Vendor bill"),
    ("INVOICE_PAYMENT", "Invoice payment"),
    ("BILL_PAYMENT", "Bill payment"),
    ("INVOICE_REVERSAL", "Invoice reversal"),
    ("BILL_REVERSAL", "Bill reversal"),
    ("ADJUSTMENT", "Adjustment"),
]

MOVEMENT_TYPES = [
    ("IN", "In"),  # goods received on a vendor bill
    ("OUT", "Out"),  # goods shipped on a customer invoice
    ("ADJUSTMENT", "Adjustment"),  # signed correction
]


class AppendOnlyModel(models.Model):
    """Rows are written once and never changed or removed."""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ConflictError(
                f"{self.__class__.__name__} rows are append-only"
            )
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ConflictError(
            f"{self.__class__.__name__} rows cannot be deleted; post a reversal"
        )


# ---------- General ledger ----------
class LedgerEntry(AppendOnlyModel):
    """
    One side of a double-entry posting.
    Exactly one of debit / credit is positive; entries for the same
    (reference_type, reference_id) always balance.
    """

    # accounts with entries can never be removed
    account = models.ForeignKey(
        "ledger_core.Account",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )
    # Set only on receivable / payable rows (the partner ledger)
    contact = models.ForeignKey(
        "ledger_core.Contact",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="ledger_entries",
    )
    transaction_date = models.DateField()
    debit = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal("0.00"))
    credit = models.DecimalField(
        max_digits=15, decimal_places=2, default=Decimal("0.00"))
    description = models.CharField(max_length=255, blank=True, default="")
    reference_type = models.CharField(max_length=20, choices=REFERENCE_TYPES)
    # id of the source row (kept as text: the source may be deleted later)
    reference_id = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = LedgerEntryManager()

    class Meta:
        db_table = "ledger_entries"
        verbose_name_plural = "ledger entries"
        ordering = ("transaction_date", "created_at", "id")
        indexes = [
            models.Index(fields=["account", "transaction_date"], name="le_account_date_idx"),
            models.Index(fields=["contact", "transaction_date"], name="le_contact_date_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="le_reference_idx"),
        ]
        constraints = [
            # one-sided, non-negative amounts
            models.CheckConstraint(
                condition=(
                    models.Q(debit__gt=0, credit=0)
                    | models.Q(credit__gt=0, debit=0)
                ),
                name="ledger_entry_one_sided",
            ),
        ]

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit else f"Cr {self.credit}"
        return f"{self.transaction_date} {self.account.code} {side}"

    def clean(self):
        if self.debit < 0 or self.credit < 0:
            raise ValidationError("Debit and credit must be >= 0")
        if (self.debit > 0) == (self.credit > 0):
            raise ValidationError(
                "Exactly one of debit or credit must be positive")


# ---------- Stock movements ----------
class StockMovement(AppendOnlyModel):
    # products with stock history cannot be removed
    product = models.ForeignKey(
        "ledger_core.Product",
        on_delete=models.PROTECT,
        related_name="stock_movements",
    )
    movement_type = models.CharField(max_length=10, choices=MOVEMENT_TYPES)
    # IN / OUT are positive quantities; ADJUSTMENT carries its own sign
    quantity = models.DecimalField(max_digits=12, decimal_places=2)
    movement_date = models.DateField()
    reference_type = models.CharField(
        max_length=20, choices=REFERENCE_TYPES, null=True, blank=True)
    reference_id = models.CharField(max_length=64, null=True, blank=True)
    notes = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "stock_movements"
        ordering = ("movement_date", "created_at", "id")
        indexes = [
            models.Index(fields=["product", "movement_date"], name="sm_product_date_idx"),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.quantity} × {self.product}"

    def clean(self):
        if self.movement_type in ("IN", "OUT") and self.quantity <= 0:
            raise ValidationError("IN/OUT movements need a positive quantity")
        if self.movement_type == "ADJUSTMENT" and self.quantity == 0:
            raise ValidationError("Adjustment quantity cannot be zero")
