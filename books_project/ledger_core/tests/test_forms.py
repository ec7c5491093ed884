import datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from ..forms import (OrderListForm, PayableListForm, TaxListForm,
                     parse_account, parse_contact, parse_conversion,
                     parse_document, parse_list, parse_payment, parse_product,
                     parse_report_params, parse_stock_adjustment, parse_tax)


class ParseDocumentTests(SimpleTestCase):
    def payload(self, **overrides):
        data = {
            "contact_id": 1,
            "date": "2025-01-15",
            "due_date": "2025-02-14",
            "items": [{"product_id": 3, "quantity": "2", "unit_price": 100, "tax_id": 4}],
        }
        data.update(overrides)
        return data

    def test_typed_result(self):
        doc = parse_document(self.payload(notes=""))
        self.assertEqual(doc.contact_id, 1)
        self.assertEqual(doc.date, datetime.date(2025, 1, 15))
        self.assertEqual(doc.due_date, datetime.date(2025, 2, 14))
        self.assertIsNone(doc.notes)  # blank → None
        self.assertEqual(len(doc.lines), 1)
        line = doc.lines[0]
        self.assertEqual((line.product_id, line.tax_id), (3, 4))
        self.assertEqual(line.quantity, Decimal("2"))
        self.assertEqual(line.unit_price, Decimal("100"))

    def test_items_required(self):
        for items in (None, [], "nope"):
            with self.subTest(items=items), self.assertRaises(ValidationError) as ctx:
                parse_document(self.payload(items=items))
            self.assertIn("items", ctx.exception.message_dict)

    def test_item_errors_are_indexed(self):
        payload = self.payload(items=[
            {"product_id": 3, "quantity": "1", "unit_price": "5"},
            {"product_id": 3, "quantity": "1", "unit_price": "1.234"},
        ])
        with self.assertRaises(ValidationError) as ctx:
            parse_document(payload)
        self.assertIn("items[1].unit_price", ctx.exception.message_dict)

    def test_negative_quantity_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_document(self.payload(items=[
                {"product_id": 3, "quantity": "-1", "unit_price": "5"}]))
        self.assertIn("items[0].quantity", ctx.exception.message_dict)

    def test_due_date_before_date(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_document(self.payload(due_date="2025-01-01"))
        self.assertIn("due_date", ctx.exception.message_dict)

    def test_missing_header_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_document({"items": [{"product_id": 1, "quantity": 1, "unit_price": 1}]})
        self.assertIn("contact_id", ctx.exception.message_dict)
        self.assertIn("date", ctx.exception.message_dict)


class OtherParserTests(SimpleTestCase):
    def test_payment(self):
        payment = parse_payment({
            "document_id": 7, "contact_id": 2, "amount": "400.00",
            "payment_date": "2025-01-20", "payment_method": "CHEQUE",
            "reference": "CHQ-0091",
        })
        self.assertEqual(payment.amount, Decimal("400.00"))
        self.assertEqual(payment.payment_method, "CHEQUE")
        self.assertIsNone(payment.notes)

    def test_payment_amount_and_method_checked(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_payment({
                "document_id": 7, "contact_id": 2, "amount": "0",
                "payment_date": "2025-01-20", "payment_method": "BARTER",
            })
        self.assertIn("amount", ctx.exception.message_dict)
        self.assertIn("payment_method", ctx.exception.message_dict)

    def test_conversion_defaults_to_today(self):
        today = datetime.date(2025, 3, 1)
        with mock.patch("ledger_core.forms.timezone.localdate", return_value=today):
            conversion = parse_conversion({})
        self.assertEqual(conversion.date, today)
        self.assertIsNone(conversion.due_date)

    def test_account_strips_whitespace(self):
        account = parse_account({"name": " Petty Cash ", "code": " 1010 ", "account_type": "ASSET"})
        self.assertEqual((account.name, account.code), ("Petty Cash", "1010"))
        self.assertIsNone(account.parent_id)

    def test_account_type_checked(self):
        with self.assertRaises(ValidationError):
            parse_account({"name": "X", "code": "9", "account_type": "ASSETS"})

    def test_stock_adjustment_quantity_non_zero(self):
        with self.assertRaises(ValidationError):
            parse_stock_adjustment({"product_id": 1, "quantity": "0", "date": "2025-01-01"})
        adjustment = parse_stock_adjustment(
            {"product_id": 1, "quantity": "-2", "date": "2025-01-01"})
        self.assertEqual(adjustment.quantity, Decimal("-2"))
        self.assertEqual(adjustment.notes, "")

    def test_report_range_order(self):
        with self.assertRaises(ValidationError):
            parse_report_params({"start_date": "2025-02-01", "end_date": "2025-01-01"})
        params = parse_report_params({"as_of_date": "2025-01-31"})
        self.assertEqual(params["as_of_date"], datetime.date(2025, 1, 31))


class CatalogParserTests(SimpleTestCase):
    def test_contact_blank_optionals_become_none(self):
        contact = parse_contact({"name": " Riya Traders ", "contact_type": "VENDOR",
                                 "email": "", "city": "Pune"})
        self.assertEqual(contact.name, "Riya Traders")
        self.assertIsNone(contact.email)
        self.assertEqual(contact.city, "Pune")

    def test_contact_mobile_and_pincode_checked(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_contact({"name": "X", "contact_type": "VENDOR",
                           "mobile": "5123456789", "pincode": "012345"})
        self.assertIn("mobile", ctx.exception.message_dict)
        self.assertIn("pincode", ctx.exception.message_dict)

    def test_partial_update_keeps_stored_values(self):
        stored = SimpleNamespace(name="Office Chair", product_type="GOODS",
                                 sales_price=Decimal("100.00"), purchase_price=Decimal("60.00"),
                                 sales_tax_percent=None, purchase_tax_percent=None,
                                 hsn_code="9401", category="Furniture")
        product = parse_product({"sales_price": "120.00"}, stored)
        self.assertEqual(product.sales_price, Decimal("120.00"))
        self.assertEqual(product.purchase_price, Decimal("60.00"))
        self.assertEqual(product.hsn_code, "9401")

    def test_product_tax_percent_bounded(self):
        with self.assertRaises(ValidationError):
            parse_product({"name": "Desk", "product_type": "GOODS", "sales_tax_percent": "101"})

    def test_tax_flags_default_to_applicable(self):
        tax = parse_tax({"name": "GST 5%", "computation_method": "PERCENTAGE", "rate": "5"})
        self.assertTrue(tax.applicable_on_sales)
        self.assertTrue(tax.applicable_on_purchase)
        flat = parse_tax({"name": "Cess", "computation_method": "FIXED_VALUE", "rate": "150",
                          "applicable_on_sales": False})
        self.assertFalse(flat.applicable_on_sales)
        self.assertEqual(flat.rate, Decimal("150"))

    def test_percentage_tax_capped(self):
        with self.assertRaises(ValidationError):
            parse_tax({"name": "Bad", "computation_method": "PERCENTAGE", "rate": "100.01"})


class ListParamsTests(SimpleTestCase):
    def test_defaults(self):
        self.assertEqual(parse_list(OrderListForm, {}), {"page": 1, "limit": 10})

    def test_blank_filters_dropped(self):
        params = parse_list(PayableListForm, {"page": "2", "limit": "25", "search": "  ",
                                              "payment_status": "", "contact_id": "7"})
        self.assertEqual(params, {"page": 2, "limit": 25, "contact_id": 7})

    def test_limit_bounded(self):
        with self.assertRaises(ValidationError):
            parse_list(OrderListForm, {"limit": "101"})
        with self.assertRaises(ValidationError):
            parse_list(OrderListForm, {"page": "0"})

    def test_boolean_filters_keep_false(self):
        params = parse_list(TaxListForm, {"applicable_on_sales": "false"})
        self.assertIs(params["applicable_on_sales"], False)
        self.assertNotIn("applicable_on_purchase", params)
