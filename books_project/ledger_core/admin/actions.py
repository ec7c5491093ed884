from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from ..exceptions import ConflictError, NotFoundError
from ..services import (convert_purchase_order_to_bill,
                        convert_sales_order_to_invoice)

# ---------- Admin actions ----------


def _convert_each(modeladmin, request, queryset, convert, label):
    """
    Convert the selected orders one by one; each conversion runs in its own
    transaction inside the service, so one failure doesn't stop the batch.
    """
    total = queryset.count()
    success = 0
    for order in queryset:
        try:
            document = convert(order.pk, user=request.user)
            success += 1
        except (ConflictError, NotFoundError, ValidationError) as exc:
            modeladmin.message_user(
                request,
                _("Could not convert %(order)s: %(err)s") % {"order": order.number, "err": exc},
                level=messages.ERROR,
            )
            continue
        modeladmin.message_user(request, f"{order.number} → {document.number}")

    # Final summary message
    modeladmin.message_user(
        request,
        _("Converted %(success)d of %(total)d orders into %(label)s.") % {
            "success": success, "total": total, "label": label,
        },
        level=messages.SUCCESS if success == total else messages.WARNING,
    )


""" Add button/action that converts sales orders into customer invoices """


@admin.action(description="Convert selected sales orders to invoices")
def convert_to_invoice(modeladmin, request, queryset):
    _convert_each(modeladmin, request, queryset,
                  convert_sales_order_to_invoice, "invoices")


""" ... and purchase orders into vendor bills """


@admin.action(description="Convert selected purchase orders to bills")
def convert_to_bill(modeladmin, request, queryset):
    _convert_each(modeladmin, request, queryset,
                  convert_purchase_order_to_bill, "bills")
