import decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def header_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("number", models.CharField(max_length=32, unique=True)),
        ("date", models.DateField()),
        ("subtotal", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
        ("tax_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
        ("total", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
        ("notes", models.TextField(blank=True, null=True)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


def payable_fields():
    return header_fields() + [
        ("due_date", models.DateField(blank=True, null=True)),
        ("paid_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15, validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))])),
        ("payment_status", models.CharField(choices=[("UNPAID", "Unpaid"), ("PARTIAL", "Partially paid"), ("PAID", "Paid")], default="UNPAID", max_length=10)),
    ]


def line_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("quantity", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))])),
        ("unit_price", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.00"))])),
        ("tax_amount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
        ("total", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
        ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="%(class)s_lines", to="ledger_core.product")),
        ("tax", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="%(class)s_lines", to="ledger_core.tax")),
    ]


def payment_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("amount", models.DecimalField(decimal_places=2, max_digits=15, validators=[django.core.validators.MinValueValidator(decimal.Decimal("0.01"))])),
        ("payment_date", models.DateField()),
        ("payment_method", models.CharField(choices=[("CASH", "Cash"), ("BANK", "Bank transfer"), ("CHEQUE", "Cheque"), ("ONLINE", "Online")], max_length=10)),
        ("reference", models.CharField(blank=True, max_length=100, null=True)),
        ("notes", models.TextField(blank=True, null=True)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
    ]


REFERENCE_TYPES = [
    ("INVOICE", "Customer invoice"),
    ("BILL", "Vendor bill"),
    ("INVOICE_PAYMENT", "Invoice payment"),
    ("BILL_PAYMENT", "Bill payment"),
    ("INVOICE_REVERSAL", "Invoice reversal"),
    ("BILL_REVERSAL", "Bill reversal"),
    ("ADJUSTMENT", "Adjustment"),
]

ORDER_STATUS = [("DRAFT", "Draft"), ("CONVERTED", "Converted")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    """ Initial schema:
        - catalog: chart of accounts, contacts, products, HSN codes, taxes
        - documents: purchase/sales orders, vendor bills, customer invoices + lines
        - payments against bills & invoices
        - append-only ledger entries & stock movements, audit log
    """

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=200, unique=True)),
                ("account_type", models.CharField(choices=[("ASSET", "Asset"), ("LIABILITY", "Liability"), ("EQUITY", "Equity"), ("INCOME", "Income"), ("EXPENSE", "Expense")], max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="children", to="ledger_core.account")),
            ],
            options={
                "db_table": "chart_of_accounts",
                "ordering": ("code",),
                "indexes": [
                    models.Index(fields=["account_type"], name="coa_type_idx"),
                    models.Index(fields=["parent"], name="coa_parent_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Contact",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("contact_type", models.CharField(choices=[("CUSTOMER", "Customer"), ("VENDOR", "Vendor"), ("BOTH", "Both")], max_length=10)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("mobile", models.CharField(blank=True, max_length=10, null=True, validators=[django.core.validators.RegexValidator("^[6-9]\\d{9}$", "Mobile must be a valid 10-digit number")])),
                ("city", models.CharField(blank=True, max_length=100, null=True)),
                ("state", models.CharField(blank=True, max_length=100, null=True)),
                ("pincode", models.CharField(blank=True, max_length=6, null=True, validators=[django.core.validators.RegexValidator("^[1-9][0-9]{5}$", "Pincode must be a valid 6-digit PIN code")])),
                ("address", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="contacts_created", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "contacts",
                "ordering": ("name",),
                "indexes": [
                    models.Index(fields=["name"], name="contacts_name_idx"),
                    models.Index(fields=["contact_type"], name="contacts_type_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="HSNCode",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=16, unique=True)),
                ("description", models.TextField()),
                ("category", models.CharField(blank=True, max_length=100, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "HSN code",
                "db_table": "hsn_codes",
                "ordering": ("code",),
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, unique=True)),
                ("product_type", models.CharField(choices=[("GOODS", "Goods"), ("SERVICE", "Service")], max_length=10)),
                ("sales_price", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=10, validators=[django.core.validators.MinValueValidator(decimal.Decimal("0"))])),
                ("purchase_price", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=10, validators=[django.core.validators.MinValueValidator(decimal.Decimal("0"))])),
                ("sales_tax_percent", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("purchase_tax_percent", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("hsn_code", models.CharField(blank=True, max_length=16, null=True)),
                ("category", models.CharField(blank=True, max_length=100, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "products",
                "ordering": ("name",),
                "indexes": [models.Index(fields=["category"], name="products_category_idx")],
            },
        ),
        migrations.CreateModel(
            name="Tax",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("computation_method", models.CharField(choices=[("PERCENTAGE", "Percentage"), ("FIXED_VALUE", "Fixed value")], max_length=12)),
                ("rate", models.DecimalField(decimal_places=2, max_digits=10)),
                ("applicable_on_sales", models.BooleanField(default=True)),
                ("applicable_on_purchase", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name_plural": "taxes",
                "db_table": "taxes",
                "ordering": ("name",),
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("rate__gte", 0)), name="tax_non_negative_rate"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "audit_logs",
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["object_type", "object_id"], name="audit_object_idx"),
                    models.Index(fields=["created_at"], name="audit_created_idx"),
                ],
            },
        ),
        # ---------- Orders ----------
        migrations.CreateModel(
            name="PurchaseOrder",
            fields=header_fields() + [
                ("status", models.CharField(choices=ORDER_STATUS, default="DRAFT", max_length=10)),
                ("contact", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="purchase_orders", to="ledger_core.contact")),
            ],
            options={
                "db_table": "purchase_orders",
                "ordering": ("-date", "-id"),
                "abstract": False,
                "indexes": [models.Index(fields=["contact", "date"], name="po_contact_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="PurchaseOrderItem",
            fields=line_fields() + [
                ("purchase_order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="ledger_core.purchaseorder")),
            ],
            options={
                "db_table": "purchase_order_items",
                "ordering": ("id",),
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="SalesOrder",
            fields=header_fields() + [
                ("status", models.CharField(choices=ORDER_STATUS, default="DRAFT", max_length=10)),
                ("contact", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="sales_orders", to="ledger_core.contact")),
            ],
            options={
                "db_table": "sales_orders",
                "ordering": ("-date", "-id"),
                "abstract": False,
                "indexes": [models.Index(fields=["contact", "date"], name="so_contact_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="SalesOrderItem",
            fields=line_fields() + [
                ("sales_order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="ledger_core.salesorder")),
            ],
            options={
                "db_table": "sales_order_items",
                "ordering": ("id",),
                "abstract": False,
            },
        ),
        # ---------- Bills & invoices ----------
        migrations.CreateModel(
            name="VendorBill",
            fields=payable_fields() + [
                ("contact", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="vendor_bills", to="ledger_core.contact")),
                ("purchase_order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="bills", to="ledger_core.purchaseorder")),
            ],
            options={
                "db_table": "vendor_bills",
                "ordering": ("-date", "-id"),
                "abstract": False,
                "indexes": [
                    models.Index(fields=["contact", "date"], name="vb_contact_date_idx"),
                    models.Index(fields=["payment_status"], name="vb_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VendorBillItem",
            fields=line_fields() + [
                ("vendor_bill", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="ledger_core.vendorbill")),
            ],
            options={
                "db_table": "vendor_bill_items",
                "ordering": ("id",),
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="CustomerInvoice",
            fields=payable_fields() + [
                ("contact", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="customer_invoices", to="ledger_core.contact")),
                ("sales_order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="invoices", to="ledger_core.salesorder")),
            ],
            options={
                "db_table": "customer_invoices",
                "ordering": ("-date", "-id"),
                "abstract": False,
                "indexes": [
                    models.Index(fields=["contact", "date"], name="ci_contact_date_idx"),
                    models.Index(fields=["payment_status"], name="ci_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomerInvoiceItem",
            fields=line_fields() + [
                ("customer_invoice", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="ledger_core.customerinvoice")),
            ],
            options={
                "db_table": "customer_invoice_items",
                "ordering": ("id",),
                "abstract": False,
            },
        ),
        # ---------- Payments ----------
        migrations.CreateModel(
            name="BillPayment",
            fields=payment_fields() + [
                ("vendor_bill", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.vendorbill")),
                ("contact", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bill_payments", to="ledger_core.contact")),
            ],
            options={
                "db_table": "bill_payments",
                "ordering": ("-payment_date", "-id"),
                "abstract": False,
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="bill_payment_positive_amount"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoicePayment",
            fields=payment_fields() + [
                ("customer_invoice", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.customerinvoice")),
                ("contact", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="invoice_payments", to="ledger_core.contact")),
            ],
            options={
                "db_table": "invoice_payments",
                "ordering": ("-payment_date", "-id"),
                "abstract": False,
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="invoice_payment_positive_amount"),
                ],
            },
        ),
        # ---------- Ledger & stock ----------
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("transaction_date", models.DateField()),
                ("debit", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                ("credit", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=15)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("reference_type", models.CharField(choices=REFERENCE_TYPES, max_length=20)),
                ("reference_id", models.CharField(max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="ledger_entries", to="ledger_core.account")),
                ("contact", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="ledger_entries", to="ledger_core.contact")),
            ],
            options={
                "verbose_name_plural": "ledger entries",
                "db_table": "ledger_entries",
                "ordering": ("transaction_date", "created_at", "id"),
                "abstract": False,
                "indexes": [
                    models.Index(fields=["account", "transaction_date"], name="le_account_date_idx"),
                    models.Index(fields=["contact", "transaction_date"], name="le_contact_date_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="le_reference_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("credit", 0), ("debit__gt", 0)),
                            models.Q(("credit__gt", 0), ("debit", 0)),
                            _connector="OR",
                        ),
                        name="ledger_entry_one_sided",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("movement_type", models.CharField(choices=[("IN", "In"), ("OUT", "Out"), ("ADJUSTMENT", "Adjustment")], max_length=10)),
                ("quantity", models.DecimalField(decimal_places=2, max_digits=12)),
                ("movement_date", models.DateField()),
                ("reference_type", models.CharField(blank=True, choices=REFERENCE_TYPES, max_length=20, null=True)),
                ("reference_id", models.CharField(blank=True, max_length=64, null=True)),
                ("notes", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="stock_movements", to="ledger_core.product")),
            ],
            options={
                "db_table": "stock_movements",
                "ordering": ("movement_date", "created_at", "id"),
                "abstract": False,
                "indexes": [
                    models.Index(fields=["product", "movement_date"], name="sm_product_date_idx"),
                ],
            },
        ),
    ]
