from django.core.exceptions import ValidationError
from django.db import models

# Choice Lists
ACCOUNT_TYPES = [
    # Used in Account model to classify general ledger accounts
    ("ASSET", "Asset"),
    ("LIABILITY", "Liability"),
    ("EQUITY", "Equity"),
    ("INCOME", "Income"),
    ("EXPENSE", "Expense"),
]

# Balance sheet vs P&L split
BALANCE_SHEET_TYPES = ("ASSET", "LIABILITY", "EQUITY")
PROFIT_AND_LOSS_TYPES = ("INCOME", "EXPENSE")

# Assets/Expenses → Debit, Liabilities/Equity/Income → Credit.
DEBIT_NORMAL_TYPES = ("ASSET", "EXPENSE")


class Account(models.Model):
    """
    Ledger account in the Chart of Accounts.
    - code and name are unique across the chart
    - account_type: determines reporting - BS vs P&L
    - parent: optional sub-account hierarchy, always of the same type
    """

    # Every account has a code
    # which lets you sort/group accounts consistently in reports.
    code = models.CharField(max_length=32, unique=True)
    # Human-readable name → "Cash", "Accounts Payable".
    name = models.CharField(max_length=200, unique=True)

    # Classify account into one of the 5 basic accounting types
    account_type = models.CharField(
        max_length=10,
        choices=ACCOUNT_TYPES,
        # This tells system whether the account
        # goes on the Balance Sheet or P&L
    )

    # Optional hierarchy:
    # you can make sub-accounts
    # (e.g. 1000 Current Assets, 1001 Cash, 1002 Bank)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        # removing a parent promotes its children to top level;
        # services.catalog.delete_account refuses while children exist
        on_delete=models.SET_NULL,
        related_name="children",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "chart_of_accounts"
        indexes = [  # Optimize queries
            # For reports grouped by account_type (P&L, Balance Sheet)
            models.Index(fields=["account_type"], name="coa_type_idx"),
            models.Index(fields=["parent"], name="coa_parent_idx"),  # Sub-accounts by parent
        ]
        ordering = ("code",)

    def __str__(self):
        # Make accounts readable in the Django admin and debugging
        return f"{self.code} – {self.name}"  # Example: "1001 – Cash".

    @property
    def is_debit_normal(self):
        return self.account_type in DEBIT_NORMAL_TYPES

    def clean(self):
        if self.parent_id is None:
            return
        if self.pk and self.parent_id == self.pk:
            raise ValidationError("An account cannot be its own parent")
        # Parent & child must sit on the same side of the books
        if self.parent.account_type != self.account_type:
            raise ValidationError(
                "Parent account must be of the same account type"
            )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
