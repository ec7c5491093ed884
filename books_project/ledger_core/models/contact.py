from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models

CONTACT_TYPES = [
    ("CUSTOMER", "Customer"),
    ("VENDOR", "Vendor"),
    ("BOTH", "Both"),  # buys from us and sells to us
]

# Indian mobile numbers (10 digits, starting 6-9) and PIN codes
mobile_validator = RegexValidator(
    r"^[6-9]\d{9}$", "Mobile must be a valid 10-digit number")
pincode_validator = RegexValidator(
    r"^[1-9][0-9]{5}$", "Pincode must be a valid 6-digit PIN code")


# ---------- Contact ----------
# Counterparty of every order, bill, invoice, payment & ledger entry
class Contact(models.Model):
    # The contact’s legal or trade name
    name = models.CharField(max_length=200)
    # Which side(s) of the business this contact sits on
    contact_type = models.CharField(max_length=10, choices=CONTACT_TYPES)

    # Optional contact details for billing/communication
    email = models.EmailField(null=True, blank=True)
    mobile = models.CharField(
        max_length=10, null=True, blank=True, validators=[mobile_validator]
    )
    city = models.CharField(max_length=100, null=True, blank=True)
    state = models.CharField(max_length=100, null=True, blank=True)
    pincode = models.CharField(
        max_length=6, null=True, blank=True, validators=[pincode_validator]
    )
    address = models.TextField(null=True, blank=True)

    # Track user who created it
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        # a user who created contacts cannot be removed
        on_delete=models.PROTECT,
        related_name="contacts_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "contacts"
        indexes = [
            models.Index(fields=["name"], name="contacts_name_idx"),
            models.Index(fields=["contact_type"], name="contacts_type_idx"),
        ]
        ordering = ("name",)

    # Display contact name in admin/UI
    def __str__(self):
        return self.name

    @property
    def is_customer(self):
        return self.contact_type in ("CUSTOMER", "BOTH")

    @property
    def is_vendor(self):
        return self.contact_type in ("VENDOR", "BOTH")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
