import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce

from ..calculations import apply_payment
from ..exceptions import ConflictError, NotFoundError
from ..forms import PaymentInput
from ..models import (BillPayment, Contact, CustomerInvoice, InvoicePayment,
                      VendorBill)
from .audit_helper import log_action
from .posting import post_bill_payment, post_invoice_payment

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


# ----------------------------
# Payment-related workflows
# ----------------------------
def _record(document_model, payment_model, document_field, data: PaymentInput,
            post, user):
    # Everything inside either succeeds
    # as one unit or rolls back if something fails
    with transaction.atomic():
        # Lock the document row until the transaction finishes, so two
        # concurrent payments can't both pass the balance check
        try:
            document = document_model.objects.select_for_update().get(pk=data.document_id)
        except document_model.DoesNotExist:
            raise NotFoundError(
                f"{document_model._meta.verbose_name.capitalize()} not found")
        try:
            contact = Contact.objects.get(pk=data.contact_id)
        except Contact.DoesNotExist:
            raise NotFoundError("Contact not found")
        if document.contact_id != contact.pk:
            raise ValidationError(
                f"{document.number} does not belong to {contact.name}")

        # paid_amount re-read under the lock
        try:
            outcome = apply_payment(document.total, document.paid_amount, data.amount)
        except (ValidationError, ConflictError):
            logger.warning("Rejected payment of %s on %s", data.amount, document.number)
            raise

        payment = payment_model.objects.create(
            **{document_field: document},
            contact=contact,
            amount=data.amount,
            payment_date=data.payment_date,
            payment_method=data.payment_method,
            reference=data.reference,
            notes=data.notes,
        )

        previous = document.paid_amount
        document.paid_amount = outcome.new_paid_amount
        document.payment_status = outcome.new_status
        document.save(update_fields=["paid_amount", "payment_status", "updated_at"])

        post(payment)

        # AUDIT LOGS
        log_action(
            action="apply_payment",
            instance=payment,
            user=user,
            changes={
                "document": document.number,
                "amount": str(payment.amount),
                "method": payment.payment_method,
            },
        )
        log_action(
            action="update",
            instance=document,
            user=user,
            changes={
                "paid_amount": [str(previous), str(document.paid_amount)],
                "payment_status": document.payment_status,
            },
        )
    logger.info("Recorded %s payment of %s on %s (now %s)",
                payment.payment_method, payment.amount, document.number,
                document.payment_status)
    return payment


def record_invoice_payment(data: PaymentInput, *, user=None) -> InvoicePayment:
    """Money received from a customer against one invoice."""
    return _record(CustomerInvoice, InvoicePayment, "customer_invoice", data,
                   post_invoice_payment, user)


def record_bill_payment(data: PaymentInput, *, user=None) -> BillPayment:
    """Money paid to a vendor against one bill."""
    return _record(VendorBill, BillPayment, "vendor_bill", data,
                   post_bill_payment, user)


# ----------------------------
# Queries
# ----------------------------
def _sum(qs):
    return qs.aggregate(total=Coalesce(Sum("amount"), ZERO))["total"]


def payment_stats() -> dict:
    """Counts and amounts across both payment directions."""
    bill_payments = BillPayment.objects.all()
    invoice_payments = InvoicePayment.objects.all()

    by_method = {}
    for qs in (bill_payments, invoice_payments):
        for row in qs.order_by().values("payment_method").annotate(n=Count("id")):
            by_method[row["payment_method"]] = by_method.get(row["payment_method"], 0) + row["n"]

    bill_amount = _sum(bill_payments)
    invoice_amount = _sum(invoice_payments)
    bill_count = bill_payments.count()
    invoice_count = invoice_payments.count()
    return {
        "totalBillPayments": bill_count,
        "totalInvoicePayments": invoice_count,
        "totalPayments": bill_count + invoice_count,
        "billPaymentAmount": bill_amount,
        "invoicePaymentAmount": invoice_amount,
        "totalPaymentAmount": bill_amount + invoice_amount,
        "cashPayments": by_method.get("CASH", 0),
        "bankPayments": by_method.get("BANK", 0),
        "chequePayments": by_method.get("CHEQUE", 0),
        "onlinePayments": by_method.get("ONLINE", 0),
    }


def payments_between(start_date, end_date) -> dict:
    """Both payment directions inside an inclusive date range."""
    window = {"payment_date__gte": start_date, "payment_date__lte": end_date}
    bill_payments = BillPayment.objects.filter(**window).select_related(
        "vendor_bill", "contact")
    invoice_payments = InvoicePayment.objects.filter(**window).select_related(
        "customer_invoice", "contact")

    def row(payment, document):
        return {
            "id": payment.pk,
            "date": payment.payment_date,
            "amount": payment.amount,
            "method": payment.payment_method,
            "contact": payment.contact.name,
            "document": document.number,
        }

    return {
        "period": {"startDate": start_date, "endDate": end_date},
        "billPayments": [row(p, p.vendor_bill) for p in bill_payments],
        "invoicePayments": [row(p, p.customer_invoice) for p in invoice_payments],
        "summary": {
            "totalPaid": _sum(bill_payments),
            "totalReceived": _sum(invoice_payments),
        },
    }


def search_payments(model, *, contact_id=None, payment_method=None, search=None):
    """Newest first; `search` matches the reference or the document number."""
    document_field = "vendor_bill" if model is BillPayment else "customer_invoice"
    qs = model.objects.select_related(document_field, "contact").order_by(
        "-payment_date", "-id")
    if contact_id:
        qs = qs.filter(contact_id=contact_id)
    if payment_method:
        qs = qs.filter(payment_method=payment_method)
    if search:
        qs = qs.filter(Q(reference__icontains=search)
                       | Q(**{f"{document_field}__number__icontains": search})
                       | Q(contact__name__icontains=search))
    return qs


def get_payment(model, payment_id):
    try:
        return search_payments(model).get(pk=payment_id)
    except model.DoesNotExist:
        raise NotFoundError("Payment not found")
