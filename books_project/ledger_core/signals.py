from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .exceptions import ConflictError
from .models import (Account, CustomerInvoice, LedgerEntry, PurchaseOrder,
                     SalesOrder, StockMovement, VendorBill)

""" Block invoice deletion if any payment was recorded against it."""


# pre_delete signal auto-fires just before Django deletes a model instance
# (admin, shell and queryset deletes included, not just the services)
@receiver(pre_delete, sender=CustomerInvoice)
def prevent_delete_invoice_with_payments(sender, instance, **kwargs):
    if instance.paid_amount > 0 or instance.payments.exists():
        raise ConflictError("Cannot delete invoice with payments.")


"""Block bill deletion if any payment was recorded against it."""


@receiver(pre_delete, sender=VendorBill)
def prevent_delete_bill_with_payments(sender, instance, **kwargs):
    if instance.paid_amount > 0 or instance.payments.exists():
        raise ConflictError("Cannot delete bill with payments.")


"""Converted orders stay as the audit trail of their bill / invoice."""


@receiver(pre_delete, sender=PurchaseOrder)
@receiver(pre_delete, sender=SalesOrder)
def prevent_delete_converted_order(sender, instance, **kwargs):
    if instance.is_converted:
        raise ConflictError("Cannot delete converted order.")


"""Block deletion if account has ever been posted to."""


@receiver(pre_delete, sender=Account)
def prevent_delete_account_with_ledger_entries(sender, instance, **kwargs):
    if LedgerEntry.objects.filter(account=instance).exists():
        raise ConflictError("Cannot delete account with existing transactions.")


"""The ledger & stock history are append-only."""


@receiver(pre_delete, sender=LedgerEntry)
@receiver(pre_delete, sender=StockMovement)
def prevent_delete_history(sender, instance, **kwargs):
    raise ConflictError(
        f"{sender.__name__} rows cannot be deleted; post a reversal instead.")
