import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError

from ..exceptions import ConflictError, NotFoundError
from ..forms import ConversionInput, DocumentInput, LineInput
from ..models import (AuditLog, CustomerInvoice, LedgerEntry, PurchaseOrder,
                      SalesOrder, SalesOrderItem, StockMovement, Tax,
                      VendorBill)
from ..services import (convert_purchase_order_to_bill,
                        convert_sales_order_to_invoice,
                        create_customer_invoice, create_purchase_order,
                        create_sales_order, create_vendor_bill,
                        delete_customer_invoice, delete_purchase_order,
                        delete_sales_order, delete_vendor_bill,
                        record_bill_payment, record_invoice_payment,
                        update_customer_invoice, update_purchase_order,
                        update_sales_order, update_vendor_bill)
from .helpers import BooksTestCase


class OrderTests(BooksTestCase):
    def test_create_sales_order_totals(self):
        order = create_sales_order(self.doc(self.customer, self.line(self.chair, "2", "100.00", self.gst18)))
        order.refresh_from_db()
        self.assertTrue(order.number.startswith("SO-"))
        self.assertEqual(order.status, "DRAFT")
        self.assertEqual(order.subtotal, Decimal("200.00"))
        self.assertEqual(order.tax_amount, Decimal("36.00"))
        self.assertEqual(order.total, Decimal("236.00"))
        item = order.items.get()
        self.assertEqual((item.tax_amount, item.total), (Decimal("36.00"), Decimal("236.00")))
        # orders are not posted
        self.assertFalse(LedgerEntry.objects.exists())
        self.assertTrue(AuditLog.objects.filter(action="create", object_type="SalesOrder").exists())

    def test_multi_line_total_is_exact_sum(self):
        order = create_purchase_order(self.doc(
            self.vendor,
            self.line(self.chair, "3", "60.00", self.gst18),
            self.line(self.chair, "1", "0.05", self.gst18),
        ))
        # 180 + 32.40, 0.05 + 0.01 (0.009 rounds up)
        self.assertEqual(order.subtotal, Decimal("180.05"))
        self.assertEqual(order.tax_amount, Decimal("32.41"))
        self.assertEqual(order.total, order.subtotal + order.tax_amount)

    def test_counterparty_side_checked(self):
        with self.assertRaises(ValidationError):
            create_sales_order(self.doc(self.vendor, self.line(self.chair, "1", "100")))
        with self.assertRaises(ValidationError):
            create_purchase_order(self.doc(self.customer, self.line(self.chair, "1", "100")))

    def test_unknown_references(self):
        missing_product = LineInput(product_id=9999, quantity=Decimal("1"), unit_price=Decimal("1"))
        with self.assertRaises(NotFoundError):
            create_sales_order(self.doc(self.customer, self.line(self.chair, "1", "100"), missing_product))
        # nothing half-written
        self.assertFalse(SalesOrder.objects.exists())
        self.assertFalse(SalesOrderItem.objects.exists())

        missing_tax = LineInput(product_id=self.chair.pk, quantity=Decimal("1"),
                                unit_price=Decimal("1"), tax_id=9999)
        with self.assertRaises(NotFoundError):
            create_sales_order(self.doc(self.customer, missing_tax))

        nobody = DocumentInput(contact_id=9999, date=self.day,
                               lines=(self.line(self.chair, "1", "100"),))
        with self.assertRaises(NotFoundError):
            create_sales_order(nobody)

    def test_tax_side_checked(self):
        purchase_only = Tax.objects.create(
            name="Reverse charge", computation_method="PERCENTAGE", rate=Decimal("5"),
            applicable_on_sales=False)
        with self.assertRaises(ValidationError):
            create_sales_order(self.doc(self.customer, self.line(self.chair, "1", "100", purchase_only)))
        order = create_purchase_order(self.doc(self.vendor, self.line(self.chair, "1", "100", purchase_only)))
        self.assertEqual(order.tax_amount, Decimal("5.00"))

    def test_sub_cent_line_is_rounded_to_cents(self):
        order = create_sales_order(self.doc(self.customer, self.line(self.chair, "1.5", "0.99", self.gst18)))
        order.refresh_from_db()
        # 1.5 × 0.99 = 1.485 → 1.49; tax 18% of 1.485 = 0.2673 → 0.27
        self.assertEqual(order.subtotal, Decimal("1.49"))
        self.assertEqual(order.tax_amount, Decimal("0.27"))
        self.assertEqual(order.total, Decimal("1.76"))
        self.assertEqual(order.items.get().total, Decimal("1.76"))

    def test_update_draft_order(self):
        order = create_sales_order(self.doc(self.customer, self.line(self.chair, "2", "100.00", self.gst18)))
        updated = update_sales_order(order.pk, self.doc(
            self.customer,
            self.line(self.chair, "1", "100.00"),
            self.line(self.consulting, "1", "1000.00", self.gst18),
            notes="revised",
        ))
        updated.refresh_from_db()
        self.assertEqual(updated.items.count(), 2)
        self.assertEqual(updated.total, Decimal("1280.00"))
        self.assertEqual(updated.notes, "revised")
        self.assertEqual(updated.number, order.number)

    def test_update_converted_order_conflicts(self):
        order = create_purchase_order(self.doc(self.vendor, self.line(self.chair, "1", "60")))
        convert_purchase_order_to_bill(order.pk)
        with self.assertRaises(ConflictError):
            update_purchase_order(order.pk, self.doc(self.vendor, self.line(self.chair, "5", "60")))

    def test_delete_draft_order_cascades_items(self):
        order = create_sales_order(self.doc(self.customer, self.line(self.chair, "1", "100")))
        delete_sales_order(order.pk)
        self.assertFalse(SalesOrder.objects.exists())
        self.assertFalse(SalesOrderItem.objects.exists())
        with self.assertRaises(NotFoundError):
            delete_sales_order(order.pk)


class ConversionTests(BooksTestCase):
    def test_sales_order_to_invoice(self):
        order = create_sales_order(self.doc(
            self.customer,
            self.line(self.chair, "2", "100.00", self.gst18),
            self.line(self.consulting, "1", "1000.00"),
        ))
        invoice = convert_sales_order_to_invoice(
            order.pk, ConversionInput(date=datetime.date(2025, 1, 20),
                                      due_date=datetime.date(2025, 2, 19)))
        order.refresh_from_db()

        self.assertEqual(order.status, "CONVERTED")
        self.assertEqual(invoice.sales_order, order)
        self.assertTrue(invoice.number.startswith("CI-"))
        self.assertEqual(invoice.date, datetime.date(2025, 1, 20))
        self.assertEqual((invoice.subtotal, invoice.tax_amount, invoice.total),
                         (order.subtotal, order.tax_amount, order.total))
        self.assertEqual(invoice.payment_status, "UNPAID")
        copied = list(invoice.items.values_list("product_id", "quantity", "tax_amount", "total"))
        original = list(order.items.values_list("product_id", "quantity", "tax_amount", "total"))
        self.assertEqual(copied, original)

        # posted on the invoice date, balanced
        entries = LedgerEntry.objects.for_reference("INVOICE", invoice.pk)
        self.assertEqual(sum(e.debit for e in entries), sum(e.credit for e in entries))
        self.assertEqual({e.transaction_date for e in entries}, {invoice.date})
        # only the goods line moves stock
        movement = StockMovement.objects.get(reference_type="INVOICE")
        self.assertEqual((movement.product, movement.movement_type, movement.quantity),
                         (self.chair, "OUT", Decimal("2.00")))

    def test_second_conversion_conflicts(self):
        order = create_sales_order(self.doc(self.customer, self.line(self.chair, "1", "100")))
        convert_sales_order_to_invoice(order.pk)
        with self.assertRaises(ConflictError):
            convert_sales_order_to_invoice(order.pk)
        self.assertEqual(CustomerInvoice.objects.count(), 1)
        self.assertEqual(LedgerEntry.objects.filter(reference_type="INVOICE").count(), 2)

    def test_purchase_order_to_bill(self):
        order = create_purchase_order(self.doc(self.vendor, self.line(self.chair, "4", "60.00", self.gst18)))
        bill = convert_purchase_order_to_bill(order.pk)
        self.assertEqual(bill.purchase_order, order)
        self.assertEqual(bill.total, Decimal("283.20"))
        self.assertEqual(StockMovement.objects.get(reference_type="BILL").movement_type, "IN")
        self.assertTrue(AuditLog.objects.filter(action="convert", object_id=str(order.pk)).exists())

    def test_converted_order_cannot_be_deleted(self):
        order = create_purchase_order(self.doc(self.vendor, self.line(self.chair, "1", "60")))
        convert_purchase_order_to_bill(order.pk)
        with self.assertRaises(ConflictError):
            delete_purchase_order(order.pk)
        self.assertTrue(PurchaseOrder.objects.filter(pk=order.pk).exists())

    def test_unknown_order(self):
        with self.assertRaises(NotFoundError):
            convert_sales_order_to_invoice(9999)


class BillAndInvoiceTests(BooksTestCase):
    def test_vendor_bill_posting(self):
        bill = create_vendor_bill(self.doc(
            self.vendor, self.line(self.chair, "2", "100.00", self.gst18),
            due_date=datetime.date(2025, 2, 14)))
        self.assertEqual(bill.due_date, datetime.date(2025, 2, 14))
        self.assertEqual(self.balance("5001"), Decimal("200.00"))   # purchases Dr
        self.assertEqual(self.balance("1005"), Decimal("36.00"))    # tax receivable Dr
        self.assertEqual(self.balance("2001"), Decimal("-236.00"))  # payable Cr
        payable = LedgerEntry.objects.get(account__code="2001")
        self.assertEqual(payable.contact, self.vendor)
        # the contact is only on the partner's side
        self.assertIsNone(LedgerEntry.objects.get(account__code="5001").contact)
        self.assertEqual(StockMovement.objects.get().quantity, Decimal("2.00"))

    def test_customer_invoice_posting(self):
        create_customer_invoice(self.doc(self.customer, self.line(self.chair, "2", "100.00", self.gst18)))
        self.assertEqual(self.balance("1003"), Decimal("236.00"))
        self.assertEqual(self.balance("4001"), Decimal("-200.00"))
        self.assertEqual(self.balance("2002"), Decimal("-36.00"))

    def test_untaxed_document_skips_tax_entry(self):
        invoice = create_customer_invoice(self.doc(self.customer, self.line(self.consulting, "1", "1000")))
        self.assertEqual(LedgerEntry.objects.for_reference("INVOICE", invoice.pk).count(), 2)
        self.assertFalse(StockMovement.objects.exists())

    def test_bill_against_order(self):
        order = create_purchase_order(self.doc(self.vendor, self.line(self.chair, "1", "60")))
        bill = create_vendor_bill(self.doc(self.vendor, self.line(self.chair, "1", "60"), order_id=order.pk))
        self.assertEqual(bill.purchase_order, order)
        with self.assertRaises(NotFoundError):
            create_vendor_bill(self.doc(self.vendor, self.line(self.chair, "1", "60"), order_id=9999))

    def test_delete_unpaid_invoice_reverses(self):
        invoice = create_customer_invoice(self.doc(self.customer, self.line(self.chair, "2", "100.00", self.gst18)))
        delete_customer_invoice(invoice.pk)

        self.assertFalse(CustomerInvoice.objects.exists())
        # original rows stay, mirrored by reversal rows
        self.assertEqual(LedgerEntry.objects.filter(reference_type="INVOICE").count(), 3)
        self.assertEqual(LedgerEntry.objects.filter(reference_type="INVOICE_REVERSAL").count(), 3)
        for code in ("1003", "4001", "2002"):
            self.assertEqual(self.balance(code), Decimal("0.00"))
        reversal = StockMovement.objects.get(reference_type="INVOICE_REVERSAL")
        self.assertEqual((reversal.movement_type, reversal.quantity), ("ADJUSTMENT", Decimal("2.00")))
        self.assertTrue(AuditLog.objects.filter(action="delete", object_type="CustomerInvoice").exists())

    def test_delete_unpaid_bill_reverses_stock(self):
        bill = create_vendor_bill(self.doc(self.vendor, self.line(self.chair, "3", "60.00")))
        delete_vendor_bill(bill.pk)
        self.assertFalse(VendorBill.objects.exists())
        reversal = StockMovement.objects.get(reference_type="BILL_REVERSAL")
        self.assertEqual(reversal.quantity, Decimal("-3.00"))
        self.assertEqual(self.balance("2001"), Decimal("0.00"))

    def test_paid_invoice_cannot_be_deleted(self):
        invoice = create_customer_invoice(self.doc(self.customer, self.line(self.chair, "1", "100.00")))
        record_invoice_payment(self.payment(invoice, "50.00"))
        with self.assertRaises(ConflictError):
            delete_customer_invoice(invoice.pk)
        self.assertTrue(CustomerInvoice.objects.filter(pk=invoice.pk).exists())
        self.assertFalse(LedgerEntry.objects.filter(reference_type="INVOICE_REVERSAL").exists())

    def test_zero_quantity_goods_line_moves_no_stock(self):
        invoice = create_customer_invoice(self.doc(
            self.customer,
            self.line(self.chair, "0", "100.00"),
            self.line(self.chair, "1", "100.00"),
        ))
        self.assertEqual(invoice.total, Decimal("100.00"))
        movement = StockMovement.objects.get(reference_type="INVOICE")
        self.assertEqual((movement.movement_type, movement.quantity), ("OUT", Decimal("1.00")))

        delete_customer_invoice(invoice.pk)
        reversal = StockMovement.objects.get(reference_type="INVOICE_REVERSAL")
        self.assertEqual(reversal.quantity, Decimal("1.00"))


class PayableUpdateTests(BooksTestCase):
    def on_hand(self, product):
        """Signed stock for one product: IN & ADJUSTMENT as stored, OUT negative."""
        total = Decimal("0.00")
        for movement in StockMovement.objects.filter(product=product):
            sign = -1 if movement.movement_type == "OUT" else 1
            total += sign * movement.quantity
        return total

    def test_update_unpaid_invoice_reposts(self):
        invoice = create_customer_invoice(self.doc(self.customer, self.line(self.chair, "2", "100.00", self.gst18)))
        updated = update_customer_invoice(invoice.pk, self.doc(
            self.customer,
            self.line(self.chair, "1", "100.00"),
            self.line(self.consulting, "1", "1000.00", self.gst18),
            due_date=datetime.date(2025, 2, 14),
        ))
        updated.refresh_from_db()
        self.assertEqual(updated.number, invoice.number)
        self.assertEqual(updated.total, Decimal("1280.00"))
        self.assertEqual(updated.due_date, datetime.date(2025, 2, 14))
        self.assertEqual(updated.items.count(), 2)

        self.assertEqual(self.balance("1003"), Decimal("1280.00"))
        self.assertEqual(self.balance("4001"), Decimal("-1100.00"))
        self.assertEqual(self.balance("2002"), Decimal("-180.00"))
        self.assertEqual(self.on_hand(self.chair), Decimal("-1.00"))
        self.assertTrue(AuditLog.objects.filter(action="update", object_type="CustomerInvoice").exists())

    def test_second_update_reverses_only_what_is_left(self):
        invoice = create_customer_invoice(self.doc(self.customer, self.line(self.chair, "2", "100.00", self.gst18)))
        update_customer_invoice(invoice.pk, self.doc(self.customer, self.line(self.chair, "1", "100.00")))
        update_customer_invoice(invoice.pk, self.doc(self.customer, self.line(self.chair, "3", "100.00")))

        self.assertEqual(self.balance("1003"), Decimal("300.00"))
        self.assertEqual(self.balance("4001"), Decimal("-300.00"))
        self.assertEqual(self.balance("2002"), Decimal("0.00"))
        self.assertEqual(self.on_hand(self.chair), Decimal("-3.00"))

        # and a delete afterwards cancels exactly the last version
        delete_customer_invoice(invoice.pk)
        for code in ("1003", "4001", "2002"):
            self.assertEqual(self.balance(code), Decimal("0.00"))
        self.assertEqual(self.on_hand(self.chair), Decimal("0.00"))

    def test_update_vendor_bill(self):
        bill = create_vendor_bill(self.doc(self.vendor, self.line(self.chair, "3", "60.00")))
        update_vendor_bill(bill.pk, self.doc(self.vendor, self.line(self.chair, "5", "60.00")))
        self.assertEqual(self.balance("2001"), Decimal("-300.00"))
        self.assertEqual(self.on_hand(self.chair), Decimal("5.00"))

    def test_paid_bill_cannot_be_updated(self):
        bill = create_vendor_bill(self.doc(self.vendor, self.line(self.chair, "3", "60.00")))
        record_bill_payment(self.payment(bill, "10.00"))
        with self.assertRaises(ConflictError):
            update_vendor_bill(bill.pk, self.doc(self.vendor, self.line(self.chair, "1", "60.00")))
        bill.refresh_from_db()
        self.assertEqual(bill.total, Decimal("180.00"))
        self.assertFalse(LedgerEntry.objects.filter(reference_type="BILL_REVERSAL").exists())

    def test_update_checks_counterparty_and_existence(self):
        invoice = create_customer_invoice(self.doc(self.customer, self.line(self.chair, "1", "100.00")))
        with self.assertRaises(ValidationError):
            update_customer_invoice(invoice.pk, self.doc(self.vendor, self.line(self.chair, "1", "100.00")))
        # nothing was reversed by the failed attempt
        self.assertEqual(self.balance("1003"), Decimal("100.00"))
        with self.assertRaises(NotFoundError):
            update_customer_invoice(9999, self.doc(self.customer, self.line(self.chair, "1", "100.00")))
