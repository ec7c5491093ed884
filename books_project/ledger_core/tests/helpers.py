import datetime
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from ..forms import DocumentInput, LineInput, PaymentInput
from ..models import Account, Contact, LedgerEntry, Product, Tax


class BooksTestCase(TestCase):
    """Seeded chart of accounts plus one customer, one vendor, two products & a tax."""

    def setUp(self):
        call_command("seed_chart_of_accounts", stdout=StringIO())
        self.customer = Contact.objects.create(name="Nimesh Pathak", contact_type="CUSTOMER")
        self.vendor = Contact.objects.create(name="Azure Furniture", contact_type="VENDOR")
        self.chair = Product.objects.create(
            name="Office Chair", product_type="GOODS",
            sales_price=Decimal("100.00"), purchase_price=Decimal("60.00"),
        )
        self.consulting = Product.objects.create(
            name="Consultation Service", product_type="SERVICE",
            sales_price=Decimal("1000.00"),
        )
        self.gst18 = Tax.objects.create(
            name="GST 18%", computation_method="PERCENTAGE", rate=Decimal("18"))
        self.day = datetime.date(2025, 1, 15)

    def line(self, product, quantity, unit_price, tax=None):
        return LineInput(
            product_id=product.pk,
            quantity=Decimal(quantity),
            unit_price=Decimal(unit_price),
            tax_id=tax.pk if tax else None,
        )

    def doc(self, contact, *lines, date=None, **extra):
        """Helper to build a document payload. `lines` are LineInput objects."""
        return DocumentInput(contact_id=contact.pk, date=date or self.day,
                             lines=tuple(lines), **extra)

    def payment(self, document, amount, method="BANK", contact=None, date=None):
        return PaymentInput(
            document_id=document.pk,
            contact_id=(contact or document.contact).pk,
            amount=Decimal(amount),
            payment_date=date or self.day,
            payment_method=method,
        )

    def account(self, code):
        return Account.objects.get(code=code)

    def balance(self, code):
        """debit − credit on one account across the whole ledger."""
        entries = LedgerEntry.objects.filter(account__code=code)
        return sum((e.debit - e.credit for e in entries), Decimal("0.00"))
