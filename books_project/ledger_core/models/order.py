from django.db import models
from .document import ORDER_STATUS_CHOICES, DocumentLine, TradeDocument


# ---------- Purchase orders ----------
class PurchaseOrder(TradeDocument):  # what we asked a vendor for
    # cannot delete a vendor who has orders
    contact = models.ForeignKey(
        "ledger_core.Contact",
        on_delete=models.PROTECT,
        related_name="purchase_orders",
    )
    status = models.CharField(
        max_length=10, choices=ORDER_STATUS_CHOICES, default="DRAFT"
    )

    class Meta(TradeDocument.Meta):
        db_table = "purchase_orders"
        indexes = [models.Index(fields=["contact", "date"], name="po_contact_date_idx")]

    @property
    def is_converted(self):
        return self.status == "CONVERTED"


class PurchaseOrderItem(DocumentLine):
    # lines live and die with their order
    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.CASCADE, related_name="items"
    )

    class Meta(DocumentLine.Meta):
        db_table = "purchase_order_items"


# ---------- Sales orders ----------
class SalesOrder(TradeDocument):  # what a customer asked us for
    contact = models.ForeignKey(
        "ledger_core.Contact",
        on_delete=models.PROTECT,
        related_name="sales_orders",
    )
    status = models.CharField(
        max_length=10, choices=ORDER_STATUS_CHOICES, default="DRAFT"
    )

    class Meta(TradeDocument.Meta):
        db_table = "sales_orders"
        indexes = [models.Index(fields=["contact", "date"], name="so_contact_date_idx")]

    @property
    def is_converted(self):
        return self.status == "CONVERTED"


class SalesOrderItem(DocumentLine):
    sales_order = models.ForeignKey(
        SalesOrder, on_delete=models.CASCADE, related_name="items"
    )

    class Meta(DocumentLine.Meta):
        db_table = "sales_order_items"
