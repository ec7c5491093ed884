from django.contrib import admin

from ..models import CustomerInvoice, PurchaseOrder, SalesOrder, VendorBill
from .actions import convert_to_bill, convert_to_invoice
from .inlines import (BillPaymentInline, CustomerInvoiceItemInline,
                      InvoicePaymentInline, PurchaseOrderItemInline,
                      SalesOrderItemInline, VendorBillItemInline)

# Amounts and counterparties come from the document services;
# the admin can only touch free-text / scheduling fields.
DOCUMENT_READONLY = ("number", "contact", "date", "subtotal", "tax_amount",
                     "total", "created_at", "updated_at")


class DocumentAdmin(admin.ModelAdmin):
    search_fields = ("number", "contact__name")
    date_hierarchy = "date"

    # documents are created through the API so they get numbered & posted
    def has_add_permission(self, request):
        return False

    # Use a SQL join so it fetches contact in the list view
    def get_queryset(self, request):
        return super().get_queryset(request).select_related("contact")


class OrderAdmin(DocumentAdmin):
    list_display = ("number", "contact", "date", "status", "total")
    list_filter = ("status", "date")

    def get_readonly_fields(self, request, obj=None):
        return DOCUMENT_READONLY + ("status",)


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(OrderAdmin):
    inlines = [PurchaseOrderItemInline]
    actions = [convert_to_bill]


@admin.register(SalesOrder)
class SalesOrderAdmin(OrderAdmin):
    inlines = [SalesOrderItemInline]
    actions = [convert_to_invoice]


class PayableAdmin(DocumentAdmin):
    list_display = ("number", "contact", "date", "due_date", "total",
                    "paid_amount", "payment_status")
    list_filter = ("payment_status", "date")

    def get_readonly_fields(self, request, obj=None):
        readonly = DOCUMENT_READONLY + ("paid_amount", "payment_status")
        # fully paid documents are closed
        if obj is not None and obj.payment_status == "PAID":
            readonly += ("due_date", "notes")
        return readonly

    # deleting goes through the service so the ledger gets reversed
    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(VendorBill)
class VendorBillAdmin(PayableAdmin):
    inlines = [VendorBillItemInline, BillPaymentInline]


@admin.register(CustomerInvoice)
class CustomerInvoiceAdmin(PayableAdmin):
    inlines = [CustomerInvoiceItemInline, InvoicePaymentInline]
