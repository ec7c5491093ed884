from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.db import transaction

from ledger_core.models import Account, Contact, HSNCode, Product, Tax

User = get_user_model()

CONTACTS = [
    # name, type, email, mobile, city, state, pincode, address
    ("Nimesh Pathak", "CUSTOMER", "customer1@example.com", "9876543210",
     "Mumbai", "Maharashtra", "400001", "123 Main Street"),
    ("Azure Furniture", "VENDOR", "vendor1@example.com", "9876543211",
     "Delhi", "Delhi", "110001", "456 Business Avenue"),
    ("Shiv Furniture", "BOTH", "both1@example.com", "9876543212",
     "Bangalore", "Karnataka", "560001", "789 Trade Center"),
]

PRODUCTS = [
    # name, type, sales price, purchase price, sales tax %, purchase tax %, hsn, category
    ("Office Chair", "GOODS", "5000", "3500", "18", "18", "9401", "Furniture"),
    ("Wooden Table", "GOODS", "15000", "10000", "18", "18", "9403", "Furniture"),
    ("Sofa Set", "GOODS", "25000", "18000", "18", "18", "9401", "Furniture"),
    ("Dining Table", "GOODS", "20000", "15000", "18", "18", "9403", "Furniture"),
    ("Consultation Service", "SERVICE", "1000", "0", "18", "0", "9983", "Services"),
]

HSN_CODES = [
    ("9401", "Seats and parts thereof", "Furniture"),
    ("9403", "Other furniture and parts thereof", "Furniture"),
    ("9983", "Other professional, technical and business services", "Services"),
]

TAXES = ["5", "12", "18", "28"]  # GST slabs

# non-control accounts the demo books also use
EXTRA_ACCOUNTS = [
    ("4002", "Service Income", "INCOME"),
    ("5002", "Office Expenses", "EXPENSE"),
]


class Command(BaseCommand):
    help = "Seeds the database with demo data (chart of accounts, contacts, products, taxes)."

    # Define command-line argument
    def add_arguments(self, parser):
        parser.add_argument(
            "--username",  # Define flag
            type=str,
            default="admin",
            help="User recorded as creator of the demo contacts (default: admin)",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        # Call the chart command first: posting needs the control accounts
        self.stdout.write(self.style.NOTICE("Seeding demo data..."))
        call_command("seed_chart_of_accounts", stdout=self.stdout)

        for code, name, account_type in EXTRA_ACCOUNTS:
            Account.objects.get_or_create(
                code=code, defaults={"name": name, "account_type": account_type})

        user, created = User.objects.get_or_create(
            username=options["username"],
            defaults={"email": f"{options['username']}@example.com"},
        )
        if created:  # if user newly created
            user.set_unusable_password()
            user.save()

        for name, kind, email, mobile, city, state, pincode, address in CONTACTS:
            Contact.objects.get_or_create(
                name=name,
                defaults={
                    "contact_type": kind, "email": email, "mobile": mobile,
                    "city": city, "state": state, "pincode": pincode,
                    "address": address, "created_by": user,
                },
            )

        for code, description, category in HSN_CODES:
            HSNCode.objects.get_or_create(
                code=code, defaults={"description": description, "category": category})

        for name, kind, sales, purchase, sales_tax, purchase_tax, hsn, category in PRODUCTS:
            Product.objects.get_or_create(
                name=name,
                defaults={
                    "product_type": kind,
                    "sales_price": Decimal(sales),
                    "purchase_price": Decimal(purchase),
                    "sales_tax_percent": Decimal(sales_tax),
                    "purchase_tax_percent": Decimal(purchase_tax),
                    "hsn_code": hsn,
                    "category": category,
                },
            )

        for rate in TAXES:
            Tax.objects.get_or_create(
                name=f"GST {rate}%",
                defaults={"computation_method": "PERCENTAGE", "rate": Decimal(rate)},
            )

        self.stdout.write(self.style.SUCCESS("Demo data seeded successfully!"))
