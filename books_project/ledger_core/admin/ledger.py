from django.contrib import admin

from ..models import (AuditLog, BillPayment, InvoicePayment, LedgerEntry,
                      StockMovement)


class AppendOnlyAdmin(admin.ModelAdmin):
    """
    Ledger rows, stock movements, payments and the audit log are only ever
    written by the posting services. The admin may browse them, never edit:
    with view permission alone Django renders every field read-only and
    drops the delete_selected action.
    """
    list_per_page = 50

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# Register `LedgerEntry` model
@admin.register(LedgerEntry)
class LedgerEntryAdmin(AppendOnlyAdmin):
    list_display = ("id", "transaction_date", "account", "contact", "debit",
                    "credit", "reference_type", "reference_id")
    list_filter = ("reference_type", "account")
    search_fields = ("description", "reference_id", "account__code", "contact__name")
    date_hierarchy = "transaction_date"

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("account", "contact")


@admin.register(StockMovement)
class StockMovementAdmin(AppendOnlyAdmin):
    list_display = ("id", "movement_date", "product", "movement_type",
                    "quantity", "reference_type", "reference_id")
    list_filter = ("movement_type", "reference_type")
    search_fields = ("product__name", "reference_id", "notes")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("product")


@admin.register(BillPayment)
class BillPaymentAdmin(AppendOnlyAdmin):
    list_display = ("id", "payment_date", "vendor_bill", "contact", "amount", "payment_method")
    list_filter = ("payment_method",)
    search_fields = ("vendor_bill__number", "contact__name", "reference")


@admin.register(InvoicePayment)
class InvoicePaymentAdmin(AppendOnlyAdmin):
    list_display = ("id", "payment_date", "customer_invoice", "contact", "amount", "payment_method")
    list_filter = ("payment_method",)
    search_fields = ("customer_invoice__number", "contact__name", "reference")


# Register `AuditLog` model
@admin.register(AuditLog)
class AuditLogAdmin(AppendOnlyAdmin):
    list_display = ("id", "user", "action", "object_type", "object_id", "created_at")
    list_filter = ("action", "object_type")
    search_fields = ("object_type", "object_id", "user__username")

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        return super().get_queryset(request).select_related("user")
