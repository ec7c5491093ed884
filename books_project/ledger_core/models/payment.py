from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import models

PAYMENT_METHODS = [
    ("CASH", "Cash"),  # posts against the Cash account
    ("BANK", "Bank transfer"),  # every other method posts against Bank
    ("CHEQUE", "Cheque"),
    ("ONLINE", "Online"),
]


class Payment(models.Model):
    """Money moving against one bill or invoice. Never edited once recorded."""

    amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    payment_date = models.DateField()
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHODS)
    reference = models.CharField(max_length=100, null=True, blank=True)  # cheque / UTR no.
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ("-payment_date", "-id")

    def __str__(self):
        return f"{self.payment_method} {self.amount} on {self.payment_date}"

    @property
    def settles_in_cash(self):
        return self.payment_method == "CASH"


# ---------- Payments we make ----------
class BillPayment(Payment):
    # a bill with payments can never be deleted
    vendor_bill = models.ForeignKey(
        "ledger_core.VendorBill",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    contact = models.ForeignKey(
        "ledger_core.Contact",
        on_delete=models.PROTECT,
        related_name="bill_payments",
    )

    class Meta(Payment.Meta):
        db_table = "bill_payments"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="bill_payment_positive_amount",
            ),
        ]


# ---------- Payments we receive ----------
class InvoicePayment(Payment):
    customer_invoice = models.ForeignKey(
        "ledger_core.CustomerInvoice",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    contact = models.ForeignKey(
        "ledger_core.Contact",
        on_delete=models.PROTECT,
        related_name="invoice_payments",
    )

    class Meta(Payment.Meta):
        db_table = "invoice_payments"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="invoice_payment_positive_amount",
            ),
        ]
