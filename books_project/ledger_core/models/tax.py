from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models

TAX_METHODS = [
    ("PERCENTAGE", "Percentage"),  # rate % of quantity × unit price
    ("FIXED_VALUE", "Fixed value"),  # rate is a flat amount per line
]


# ---------- Tax ----------
class Tax(models.Model):
    name = models.CharField(max_length=100, unique=True)  # e.g. "GST 18%"
    computation_method = models.CharField(max_length=12, choices=TAX_METHODS)
    rate = models.DecimalField(max_digits=10, decimal_places=2)

    # Which documents may carry this tax
    applicable_on_sales = models.BooleanField(default=True)
    applicable_on_purchase = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "taxes"
        verbose_name_plural = "taxes"
        ordering = ("name",)
        constraints = [
            # Ensure rate is never negative
            models.CheckConstraint(
                condition=models.Q(rate__gte=0),
                name="tax_non_negative_rate",
            ),
        ]

    def __str__(self):
        if self.computation_method == "PERCENTAGE":
            return f"{self.name} ({self.rate}%)"
        return f"{self.name} ({self.rate} flat)"

    def clean(self):
        if self.rate is not None and self.rate < 0:
            raise ValidationError("Tax rate must be >= 0")
        if self.computation_method == "PERCENTAGE" and self.rate is not None \
                and self.rate > Decimal("100"):
            raise ValidationError("Percentage tax rate cannot exceed 100")
        if not (self.applicable_on_sales or self.applicable_on_purchase):
            raise ValidationError(
                "Tax must apply to sales, purchases or both")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
