from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import models

PRODUCT_TYPES = [
    ("GOODS", "Goods"),  # stocked, moves through stock statement
    ("SERVICE", "Service"),
]


# ---------- Products ----------
class Product(models.Model):  # Represents something the business sells & purchases

    # Required human-readable name of the product
    name = models.CharField(max_length=200, unique=True)
    product_type = models.CharField(max_length=10, choices=PRODUCT_TYPES)

    # store standard prices per product
    sales_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    # also the unit cost used to value closing stock
    purchase_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    sales_tax_percent = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    purchase_tax_percent = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )

    # Harmonized System of Nomenclature code (see HSNCode)
    hsn_code = models.CharField(max_length=16, null=True, blank=True)
    category = models.CharField(max_length=100, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        indexes = [models.Index(fields=["category"], name="products_category_idx")]
        ordering = ("name",)

    def __str__(self):
        return self.name

    @property
    def is_stocked(self):
        return self.product_type == "GOODS"

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


# ---------- HSN codes (lookup table) ----------
class HSNCode(models.Model):
    code = models.CharField(max_length=16, unique=True)
    description = models.TextField()
    category = models.CharField(max_length=100, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "hsn_codes"
        verbose_name = "HSN code"
        ordering = ("code",)

    def __str__(self):
        return f"{self.code} – {self.description[:40]}"
