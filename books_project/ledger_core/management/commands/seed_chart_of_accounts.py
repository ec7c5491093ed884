from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction

from ledger_core.models import Account

# LEDGER_ACCOUNT_CODES key → (name, type) of the control account it points to
CONTROL_ACCOUNTS = {
    "cash": ("Cash", "ASSET"),
    "bank": ("Bank Account", "ASSET"),
    "receivable": ("Accounts Receivable", "ASSET"),
    "inventory": ("Inventory", "ASSET"),
    "tax_receivable": ("GST Receivable", "ASSET"),
    "payable": ("Accounts Payable", "LIABILITY"),
    "tax_payable": ("GST Payable", "LIABILITY"),
    "equity": ("Owner Equity", "EQUITY"),
    "sales": ("Sales Income", "INCOME"),
    "purchases": ("Purchases", "EXPENSE"),
}


class Command(BaseCommand):
    help = "Create the control accounts the posting rules book against (idempotent)."

    @transaction.atomic
    def handle(self, *args, **options):
        created = 0
        for key, code in settings.LEDGER_ACCOUNT_CODES.items():
            name, account_type = CONTROL_ACCOUNTS[key]
            # get_or_create returns (object, created)
            account, was_created = Account.objects.get_or_create(
                code=code,
                defaults={"name": name, "account_type": account_type},
            )
            if was_created:
                created += 1
            elif account.account_type != account_type:
                self.stdout.write(self.style.WARNING(
                    f"{account} exists with type {account.account_type}, "
                    f"expected {account_type}"))

        # print text to console
        self.stdout.write(self.style.SUCCESS(
            f"Chart of accounts ready: {created} created, "
            f"{len(settings.LEDGER_ACCOUNT_CODES) - created} already present"))
