from django.db import models
from ..managers import DocumentManager
from .document import DocumentLine, PayableDocument


class CustomerInvoice(PayableDocument):  # Represents a customer invoice

    # prevent deleting a customer who has an invoice
    contact = models.ForeignKey(
        "ledger_core.Contact",
        on_delete=models.PROTECT,
        related_name="customer_invoices",
    )
    # Optionally linked to the sales order it came from
    # (if the order is deleted, the invoice keeps its record)
    sales_order = models.ForeignKey(
        "ledger_core.SalesOrder",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoices",
    )

    # Enables CustomerInvoice.objects.outstanding().for_contact(customer)
    objects = DocumentManager()

    class Meta(PayableDocument.Meta):
        db_table = "customer_invoices"
        indexes = [
            models.Index(fields=["contact", "date"], name="ci_contact_date_idx"),
            models.Index(fields=["payment_status"], name="ci_status_idx"),
        ]


class CustomerInvoiceItem(DocumentLine):
    customer_invoice = models.ForeignKey(
        CustomerInvoice, on_delete=models.CASCADE, related_name="items"
    )

    class Meta(DocumentLine.Meta):
        db_table = "customer_invoice_items"
