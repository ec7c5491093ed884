from django.contrib import admin

from ..models import (BillPayment, CustomerInvoiceItem, InvoicePayment,
                      PurchaseOrderItem, SalesOrderItem, VendorBillItem)

# ---------- Helpful inline admin classes ----------

LINE_FIELDS = ("product", "tax", "quantity", "unit_price", "tax_amount", "total")


class DocumentLineInline(
    admin.TabularInline
    # shows related objects in table format (rows under parent form)
):
    """Lines are priced by the document services; the admin only shows them."""

    extra = 0  # don’t show “empty” rows by default (prevents clutter)
    fields = LINE_FIELDS
    readonly_fields = LINE_FIELDS
    can_delete = False
    ordering = ("id",)  # lines appear in creation order

    def has_add_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("product", "tax")


class PurchaseOrderItemInline(DocumentLineInline):
    model = PurchaseOrderItem


class SalesOrderItemInline(DocumentLineInline):
    model = SalesOrderItem


class VendorBillItemInline(DocumentLineInline):
    model = VendorBillItem


class CustomerInvoiceItemInline(DocumentLineInline):
    model = CustomerInvoiceItem


PAYMENT_FIELDS = ("payment_date", "payment_method", "amount", "reference", "created_at")


class PaymentInline(admin.TabularInline):
    """Payments recorded against a bill/invoice (never edited here)."""

    extra = 0
    fields = PAYMENT_FIELDS
    readonly_fields = PAYMENT_FIELDS
    can_delete = False
    show_change_link = True  # each row has a link to full detail page

    def has_add_permission(self, request, obj=None):
        return False


class BillPaymentInline(PaymentInline):
    model = BillPayment


class InvoicePaymentInline(PaymentInline):
    model = InvoicePayment
