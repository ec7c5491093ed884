import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..calculations import aggregate, compute_line
from ..exceptions import ConflictError, NotFoundError
from ..forms import ConversionInput, DocumentInput
from ..models import (Contact, CustomerInvoice, CustomerInvoiceItem, Product,
                      PurchaseOrder, PurchaseOrderItem, SalesOrder,
                      SalesOrderItem, Tax, VendorBill, VendorBillItem)
from .audit_helper import log_action
from .numbering import DocumentNumberGenerator
from .posting import (post_bill_stock, post_customer_invoice,
                      post_invoice_stock, post_vendor_bill, reverse_entries,
                      reverse_stock)

logger = logging.getLogger(__name__)

SALES, PURCHASE = "sales", "purchase"
ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PricedLine:
    """A resolved, priced line ready to be stored on any document."""
    product: Product
    tax: Optional[Tax]
    quantity: Decimal
    unit_price: Decimal
    tax_amount: Decimal
    total: Decimal

    def as_fields(self) -> dict:
        return {
            "product": self.product,
            "tax": self.tax,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "tax_amount": self.tax_amount,
            "total": self.total,
        }


# ----------------------------
# Lookups
# ----------------------------
def get_or_not_found(model, pk, label=None):
    try:
        return model.objects.get(pk=pk)
    except model.DoesNotExist:
        raise NotFoundError(f"{label or model._meta.verbose_name.capitalize()} not found")


def resolve_contact(contact_id, side: str) -> Contact:
    contact = get_or_not_found(Contact, contact_id, "Contact")
    # a vendor can't be invoiced, a customer can't bill us
    if side == SALES and not contact.is_customer:
        raise ValidationError(f"{contact.name} is not a customer")
    if side == PURCHASE and not contact.is_vendor:
        raise ValidationError(f"{contact.name} is not a vendor")
    return contact


def price_lines(lines, side: str) -> List[PricedLine]:
    """Resolve product/tax ids and compute every line's tax and total."""
    priced = []
    for line in lines:
        product = get_or_not_found(Product, line.product_id, "Product")
        tax = None
        if line.tax_id:
            tax = get_or_not_found(Tax, line.tax_id, "Tax")
            applicable = (tax.applicable_on_sales if side == SALES
                          else tax.applicable_on_purchase)
            if not applicable:
                raise ValidationError(f"Tax {tax.name} does not apply to {side} documents")
        # the line base is stored in cents, e.g. 1.5 × 0.99 → 1.49
        amounts = compute_line(line.quantity, line.unit_price, tax)
        priced.append(PricedLine(
            product=product,
            tax=tax,
            quantity=Decimal(line.quantity),
            unit_price=Decimal(line.unit_price),
            tax_amount=amounts.tax_amount,
            total=amounts.total,
        ))
    return priced


def _create(model, item_model, parent_field, prefix, side, data: DocumentInput,
            numbering, extra=None):
    contact = resolve_contact(data.contact_id, side)
    lines = price_lines(data.lines, side)
    totals = aggregate(lines)
    numbering = numbering or DocumentNumberGenerator()

    fields = {
        "contact": contact,
        "date": data.date,
        "notes": data.notes,
        "subtotal": totals.subtotal,
        "tax_amount": totals.tax_amount,
        "total": totals.total,
    }
    fields.update(extra or {})
    document = numbering.create(prefix, **fields)
    item_model.objects.bulk_create(
        item_model(**{parent_field: document}, **line.as_fields()) for line in lines
    )
    return document


# ----------------------------
# Orders
# ----------------------------
def create_purchase_order(data: DocumentInput, *, numbering=None, user=None) -> PurchaseOrder:
    with transaction.atomic():
        order = _create(PurchaseOrder, PurchaseOrderItem, "purchase_order", "PO",
                        PURCHASE, data, numbering)
        log_action(action="create", instance=order, user=user,
                   changes={"number": order.number, "total": str(order.total)})
    logger.info("Created purchase order %s (%s)", order.number, order.total)
    return order


def create_sales_order(data: DocumentInput, *, numbering=None, user=None) -> SalesOrder:
    with transaction.atomic():
        order = _create(SalesOrder, SalesOrderItem, "sales_order", "SO",
                        SALES, data, numbering)
        log_action(action="create", instance=order, user=user,
                   changes={"number": order.number, "total": str(order.total)})
    logger.info("Created sales order %s (%s)", order.number, order.total)
    return order


def _lock(model, pk):
    try:
        return model.objects.select_for_update().get(pk=pk)
    except model.DoesNotExist:
        raise NotFoundError(f"{model._meta.verbose_name.capitalize()} not found")


def _replace_lines(document, item_model, parent_field, side, data: DocumentInput):
    """Swap a document's header & lines for `data`, with recomputed totals."""
    contact = resolve_contact(data.contact_id, side)
    lines = price_lines(data.lines, side)
    totals = aggregate(lines)

    document.items.all().delete()
    item_model.objects.bulk_create(
        item_model(**{parent_field: document}, **line.as_fields()) for line in lines
    )
    document.contact = contact
    document.date = data.date
    document.notes = data.notes
    document.subtotal = totals.subtotal
    document.tax_amount = totals.tax_amount
    document.total = totals.total
    return document


def _update_order(model, item_model, parent_field, side, order_id,
                  data: DocumentInput, user):
    """Replace a DRAFT order's header and lines; totals are recomputed."""
    with transaction.atomic():
        order = _lock(model, order_id)
        if order.is_converted:
            raise ConflictError(f"Cannot update converted order {order.number}")
        _replace_lines(order, item_model, parent_field, side, data)
        order.save()
        log_action(action="update", instance=order, user=user,
                   changes={"total": str(order.total)})
    return order


def update_purchase_order(order_id, data: DocumentInput, *, user=None) -> PurchaseOrder:
    return _update_order(PurchaseOrder, PurchaseOrderItem, "purchase_order",
                         PURCHASE, order_id, data, user)


def update_sales_order(order_id, data: DocumentInput, *, user=None) -> SalesOrder:
    return _update_order(SalesOrder, SalesOrderItem, "sales_order",
                         SALES, order_id, data, user)


# ----------------------------
# Bills & invoices
# ----------------------------
def create_vendor_bill(data: DocumentInput, *, numbering=None, user=None) -> VendorBill:
    """Create a bill, post it to the ledger and receive its goods into stock."""
    with transaction.atomic():
        extra = {"due_date": data.due_date}
        if data.order_id:
            extra["purchase_order"] = get_or_not_found(
                PurchaseOrder, data.order_id, "Purchase order")
        bill = _create(VendorBill, VendorBillItem, "vendor_bill", "VB",
                       PURCHASE, data, numbering, extra)
        post_vendor_bill(bill)
        post_bill_stock(bill)
        log_action(action="create", instance=bill, user=user,
                   changes={"number": bill.number, "total": str(bill.total)})
    logger.info("Created vendor bill %s (%s)", bill.number, bill.total)
    return bill


def create_customer_invoice(data: DocumentInput, *, numbering=None, user=None) -> CustomerInvoice:
    """Create an invoice, post it to the ledger and ship its goods out of stock."""
    with transaction.atomic():
        extra = {"due_date": data.due_date}
        if data.order_id:
            extra["sales_order"] = get_or_not_found(
                SalesOrder, data.order_id, "Sales order")
        invoice = _create(CustomerInvoice, CustomerInvoiceItem, "customer_invoice",
                          "CI", SALES, data, numbering, extra)
        post_customer_invoice(invoice)
        post_invoice_stock(invoice)
        log_action(action="create", instance=invoice, user=user,
                   changes={"number": invoice.number, "total": str(invoice.total)})
    logger.info("Created customer invoice %s (%s)", invoice.number, invoice.total)
    return invoice


def _update_payable(model, item_model, parent_field, side, reference_type,
                    document_id, data: DocumentInput, post, post_stock, user):
    """
    Re-issue an unpaid bill / invoice with new lines. What it had on the
    books is reversed (dated today) and the new figures are posted on the
    document date. Once money has moved against it the document is frozen.
    """
    with transaction.atomic():
        document = _lock(model, document_id)
        if document.paid_amount > 0:
            logger.warning("Refused to update %s with payments", document.number)
            raise ConflictError(f"Cannot update {document.number}: it has payments")

        today = timezone.localdate()
        reversal_type = f"{reference_type}_REVERSAL"
        reverse_entries(reference_type, document.pk,
                        reversal_type=reversal_type, transaction_date=today)
        reverse_stock(reference_type, document.pk,
                      reversal_type=reversal_type, movement_date=today)

        previous_total = document.total
        _replace_lines(document, item_model, parent_field, side, data)
        document.due_date = data.due_date
        document.save()
        post(document)
        post_stock(document)
        log_action(action="update", instance=document, user=user,
                   changes={"total": [str(previous_total), str(document.total)]})
    logger.info("Re-issued %s (%s → %s)", document.number, previous_total, document.total)
    return document


def update_vendor_bill(bill_id, data: DocumentInput, *, user=None) -> VendorBill:
    return _update_payable(VendorBill, VendorBillItem, "vendor_bill", PURCHASE,
                           "BILL", bill_id, data, post_vendor_bill,
                           post_bill_stock, user)


def update_customer_invoice(invoice_id, data: DocumentInput, *, user=None) -> CustomerInvoice:
    return _update_payable(CustomerInvoice, CustomerInvoiceItem, "customer_invoice",
                           SALES, "INVOICE", invoice_id, data,
                           post_customer_invoice, post_invoice_stock, user)


# ----------------------------
# Conversions (one-way)
# ----------------------------
def _convert(order_model, order_id, target_model, target_item_model,
             parent_field, link_field, prefix, data: Optional[ConversionInput],
             numbering, user):
    with transaction.atomic():
        # Lock the order so two conversions can't both see DRAFT
        order = _lock(order_model, order_id)
        if order.is_converted:
            logger.warning("Rejected second conversion of %s", order.number)
            raise ConflictError(f"Order {order.number} is already converted")

        numbering = numbering or DocumentNumberGenerator()
        document = numbering.create(
            prefix,
            contact=order.contact,
            date=data.date if data else timezone.localdate(),
            due_date=data.due_date if data else None,
            notes=order.notes,
            subtotal=order.subtotal,
            tax_amount=order.tax_amount,
            total=order.total,
            **{link_field: order},
        )
        # Lines are copied verbatim: no recomputation
        target_item_model.objects.bulk_create(
            target_item_model(
                **{parent_field: document},
                product_id=item.product_id,
                tax_id=item.tax_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                tax_amount=item.tax_amount,
                total=item.total,
            )
            for item in order.items.all()
        )
        order.status = "CONVERTED"
        order.save(update_fields=["status", "updated_at"])
        log_action(action="convert", instance=order, user=user,
                   changes={"into": prefix, "document": document.number})
    return document


def convert_sales_order_to_invoice(order_id, data: Optional[ConversionInput] = None,
                                   *, numbering=None, user=None) -> CustomerInvoice:
    with transaction.atomic():
        invoice = _convert(SalesOrder, order_id, CustomerInvoice, CustomerInvoiceItem,
                           "customer_invoice", "sales_order", "CI", data,
                           numbering, user)
        post_customer_invoice(invoice)
        post_invoice_stock(invoice)
    logger.info("Converted sales order %s into invoice %s", order_id, invoice.number)
    return invoice


def convert_purchase_order_to_bill(order_id, data: Optional[ConversionInput] = None,
                                   *, numbering=None, user=None) -> VendorBill:
    with transaction.atomic():
        bill = _convert(PurchaseOrder, order_id, VendorBill, VendorBillItem,
                        "vendor_bill", "purchase_order", "VB", data,
                        numbering, user)
        post_vendor_bill(bill)
        post_bill_stock(bill)
    logger.info("Converted purchase order %s into bill %s", order_id, bill.number)
    return bill


# ----------------------------
# Deletion
# ----------------------------
def _delete_order(model, order_id, user):
    with transaction.atomic():
        order = _lock(model, order_id)
        if order.is_converted:
            raise ConflictError(f"Cannot delete converted order {order.number}")
        log_action(action="delete", instance=order, user=user,
                   changes={"number": order.number})
        order.delete()  # items cascade


def delete_purchase_order(order_id, *, user=None):
    _delete_order(PurchaseOrder, order_id, user)


def delete_sales_order(order_id, *, user=None):
    _delete_order(SalesOrder, order_id, user)


def _delete_payable(model, document_id, reference_type, user):
    with transaction.atomic():
        document = _lock(model, document_id)
        if document.paid_amount > 0:
            logger.warning("Refused to delete %s with payments", document.number)
            raise ConflictError(f"Cannot delete {document.number}: it has payments")

        # the ledger is append-only: cancel the document with mirror rows
        today = timezone.localdate()
        reversal_type = f"{reference_type}_REVERSAL"
        reverse_entries(reference_type, document.pk,
                        reversal_type=reversal_type, transaction_date=today)
        reverse_stock(reference_type, document.pk,
                      reversal_type=reversal_type, movement_date=today)
        log_action(action="delete", instance=document, user=user,
                   changes={"number": document.number, "total": str(document.total)})
        document.delete()  # items cascade
    logger.info("Deleted %s %s", reference_type.lower(), document.number)


def delete_vendor_bill(bill_id, *, user=None):
    _delete_payable(VendorBill, bill_id, "BILL", user)


def delete_customer_invoice(invoice_id, *, user=None):
    _delete_payable(CustomerInvoice, invoice_id, "INVOICE", user)


# ----------------------------
# Queries
# ----------------------------
def search_documents(model, *, contact_id=None, status=None, payment_status=None,
                     search=None):
    """Newest first; `search` matches the number or the contact's name."""
    qs = model.objects.select_related("contact").order_by("-created_at", "-id")
    if contact_id:
        qs = qs.filter(contact_id=contact_id)
    if status:
        qs = qs.filter(status=status)
    if payment_status:
        qs = qs.filter(payment_status=payment_status)
    if search:
        qs = qs.filter(Q(number__icontains=search) | Q(contact__name__icontains=search))
    return qs


def order_stats(model) -> dict:
    agg = model.objects.aggregate(
        count=Count("id"),
        draft=Count("id", filter=Q(status="DRAFT")),
        converted=Count("id", filter=Q(status="CONVERTED")),
        value=Coalesce(Sum("total"), ZERO),
    )
    return {
        "totalOrders": agg["count"],
        "draftOrders": agg["draft"],
        "convertedOrders": agg["converted"],
        "totalValue": agg["value"],
    }


def payable_stats(model) -> dict:
    agg = model.objects.aggregate(
        count=Count("id"),
        paid=Count("id", filter=Q(payment_status="PAID")),
        unpaid=Count("id", filter=Q(payment_status="UNPAID")),
        partial=Count("id", filter=Q(payment_status="PARTIAL")),
        value=Coalesce(Sum("total"), ZERO),
        paid_value=Coalesce(Sum("paid_amount"), ZERO),
    )
    return {
        "totalDocuments": agg["count"],
        "paidDocuments": agg["paid"],
        "unpaidDocuments": agg["unpaid"],
        "partialDocuments": agg["partial"],
        "totalValue": agg["value"],
        "paidValue": agg["paid_value"],
        "pendingValue": agg["value"] - agg["paid_value"],
    }
