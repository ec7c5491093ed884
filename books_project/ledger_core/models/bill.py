from django.db import models
from ..managers import DocumentManager
from .document import DocumentLine, PayableDocument


class VendorBill(PayableDocument):  # Represents a vendor bill (what we owe)

    # prevent deleting a vendor who has a bill
    contact = models.ForeignKey(
        "ledger_core.Contact",
        on_delete=models.PROTECT,
        related_name="vendor_bills",
    )
    # Order this bill was converted from, if any.
    # Deleting the order later keeps the bill.
    purchase_order = models.ForeignKey(
        "ledger_core.PurchaseOrder",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="bills",
    )

    objects = DocumentManager()

    class Meta(PayableDocument.Meta):
        db_table = "vendor_bills"
        indexes = [
            models.Index(fields=["contact", "date"], name="vb_contact_date_idx"),
            models.Index(fields=["payment_status"], name="vb_status_idx"),
        ]


class VendorBillItem(DocumentLine):  # Each line item of a bill
    vendor_bill = models.ForeignKey(
        VendorBill, on_delete=models.CASCADE, related_name="items"
    )

    class Meta(DocumentLine.Meta):
        db_table = "vendor_bill_items"
