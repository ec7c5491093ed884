import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, ProtectedError, Q

from ..exceptions import ConflictError, NotFoundError
from ..forms import AccountInput, ContactInput, ProductInput, TaxInput
from ..models import Account, Contact, LedgerEntry, Product, Tax
from ..models.account import ACCOUNT_TYPES
from .audit_helper import log_action

logger = logging.getLogger(__name__)


def _get(model, pk, label):
    try:
        return model.objects.get(pk=pk)
    except model.DoesNotExist:
        raise NotFoundError(f"{label} not found")


def _apply(instance, data, user, action="update"):
    """Copy the input onto the row and audit which fields actually moved."""
    changes = {}
    for field, value in vars(data).items():
        old = getattr(instance, field)
        if old != value:
            changes[field] = [None if old is None else str(old),
                              None if value is None else str(value)]
        setattr(instance, field, value)
    with transaction.atomic():
        instance.save()
        log_action(action=action, instance=instance, user=user, changes=changes)
    return instance


# ----------------------------
# Contacts
# ----------------------------
def _check_contact_email(email, exclude=None):
    if not email:
        return
    qs = Contact.objects.filter(email__iexact=email)
    if exclude is not None:
        qs = qs.exclude(pk=exclude)
    if qs.exists():
        raise ConflictError(f"A contact with email {email} already exists")


def create_contact(data: ContactInput, *, user=None) -> Contact:
    _check_contact_email(data.email)
    with transaction.atomic():
        contact = Contact.objects.create(created_by=user, **vars(data))
        log_action(action="create", instance=contact, user=user,
                   changes={"name": contact.name, "type": contact.contact_type})
    logger.info("Created contact %s (%s)", contact.name, contact.contact_type)
    return contact


def update_contact(contact_id, data: ContactInput, *, user=None) -> Contact:
    contact = _get(Contact, contact_id, "Contact")
    _check_contact_email(data.email, exclude=contact.pk)
    # a side the contact already trades on can't be taken away
    becomes_customer = data.contact_type in ("CUSTOMER", "BOTH")
    becomes_vendor = data.contact_type in ("VENDOR", "BOTH")
    if not becomes_vendor and (contact.purchase_orders.exists()
                               or contact.vendor_bills.exists()):
        raise ConflictError(f"{contact.name} has purchase documents and must stay a vendor")
    if not becomes_customer and (contact.sales_orders.exists()
                                 or contact.customer_invoices.exists()):
        raise ConflictError(f"{contact.name} has sales documents and must stay a customer")
    _apply(contact, data, user)
    logger.info("Updated contact %s", contact.pk)
    return contact


def search_contacts(*, contact_type=None, search=None):
    qs = Contact.objects.all()
    if contact_type:
        # BOTH shows up under either side
        qs = qs.filter(contact_type__in=(contact_type, "BOTH"))
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(email__icontains=search)
                       | Q(mobile__icontains=search) | Q(city__icontains=search))
    return qs


def contact_stats() -> dict:
    agg = Contact.objects.aggregate(
        total=Count("id"),
        customers=Count("id", filter=Q(contact_type="CUSTOMER")),
        vendors=Count("id", filter=Q(contact_type="VENDOR")),
        both=Count("id", filter=Q(contact_type="BOTH")),
    )
    return {
        "totalContacts": agg["total"],
        "customers": agg["customers"],
        "vendors": agg["vendors"],
        "both": agg["both"],
    }


# ----------------------------
# Products
# ----------------------------
def _check_unique_name(model, name, exclude=None):
    qs = model.objects.filter(name__iexact=name)
    if exclude is not None:
        qs = qs.exclude(pk=exclude)
    if qs.exists():
        raise ConflictError(f"{model._meta.verbose_name.capitalize()} {name} already exists")


def create_product(data: ProductInput, *, user=None) -> Product:
    _check_unique_name(Product, data.name)
    with transaction.atomic():
        product = Product.objects.create(**vars(data))
        log_action(action="create", instance=product, user=user,
                   changes={"name": product.name, "type": product.product_type})
    logger.info("Created product %s (%s)", product.name, product.product_type)
    return product


def update_product(product_id, data: ProductInput, *, user=None) -> Product:
    product = _get(Product, product_id, "Product")
    _check_unique_name(Product, data.name, exclude=product.pk)
    if product.is_stocked and data.product_type != "GOODS" \
            and product.stock_movements.exists():
        raise ConflictError(f"{product.name} has stock movements and must stay GOODS")
    _apply(product, data, user)
    logger.info("Updated product %s", product.pk)
    return product


def search_products(*, product_type=None, category=None, search=None):
    qs = Product.objects.all()
    if product_type:
        qs = qs.filter(product_type=product_type)
    if category:
        qs = qs.filter(category__iexact=category)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(hsn_code__icontains=search)
                       | Q(category__icontains=search))
    return qs


def product_categories() -> list:
    return list(
        Product.objects.exclude(category__isnull=True).exclude(category="")
        .order_by("category").values_list("category", flat=True).distinct()
    )


def product_stats() -> dict:
    agg = Product.objects.aggregate(
        total=Count("id"),
        goods=Count("id", filter=Q(product_type="GOODS")),
        services=Count("id", filter=Q(product_type="SERVICE")),
    )
    return {
        "totalProducts": agg["total"],
        "goods": agg["goods"],
        "services": agg["services"],
        "categories": len(product_categories()),
    }


# ----------------------------
# Taxes
# ----------------------------
def create_tax(data: TaxInput, *, user=None) -> Tax:
    _check_unique_name(Tax, data.name)
    with transaction.atomic():
        tax = Tax.objects.create(**vars(data))
        log_action(action="create", instance=tax, user=user,
                   changes={"name": tax.name, "rate": str(tax.rate)})
    logger.info("Created tax %s", tax)
    return tax


def update_tax(tax_id, data: TaxInput, *, user=None) -> Tax:
    """Rate changes only affect documents priced afterwards."""
    tax = _get(Tax, tax_id, "Tax")
    _check_unique_name(Tax, data.name, exclude=tax.pk)
    _apply(tax, data, user)
    logger.info("Updated tax %s", tax)
    return tax


def search_taxes(*, computation_method=None, applicable_on_sales=None,
                 applicable_on_purchase=None, search=None):
    qs = Tax.objects.all()
    if computation_method:
        qs = qs.filter(computation_method=computation_method)
    if applicable_on_sales is not None:
        qs = qs.filter(applicable_on_sales=applicable_on_sales)
    if applicable_on_purchase is not None:
        qs = qs.filter(applicable_on_purchase=applicable_on_purchase)
    if search:
        qs = qs.filter(name__icontains=search)
    return qs


def taxes_for_side(side: str):
    if side == "sales":
        return Tax.objects.filter(applicable_on_sales=True)
    if side == "purchase":
        return Tax.objects.filter(applicable_on_purchase=True)
    raise ValidationError("Tax type must be sales or purchase")


def tax_stats() -> dict:
    agg = Tax.objects.aggregate(
        total=Count("id"),
        percentage=Count("id", filter=Q(computation_method="PERCENTAGE")),
        fixed=Count("id", filter=Q(computation_method="FIXED_VALUE")),
        sales=Count("id", filter=Q(applicable_on_sales=True)),
        purchase=Count("id", filter=Q(applicable_on_purchase=True)),
    )
    return {
        "totalTaxes": agg["total"],
        "percentageTaxes": agg["percentage"],
        "fixedValueTaxes": agg["fixed"],
        "salesTaxes": agg["sales"],
        "purchaseTaxes": agg["purchase"],
    }


# ----------------------------
# Chart of accounts
# ----------------------------
def create_account(data: AccountInput, *, user=None) -> Account:
    if Account.objects.filter(code=data.code).exists():
        raise ConflictError(f"Account code {data.code} already exists")
    if Account.objects.filter(name=data.name).exists():
        raise ConflictError(f"Account name {data.name} already exists")
    parent = None
    if data.parent_id:
        parent = _get(Account, data.parent_id, "Parent account")
        if parent.account_type != data.account_type:
            raise ValidationError("Parent account must be of the same account type")

    with transaction.atomic():
        account = Account.objects.create(
            name=data.name, code=data.code,
            account_type=data.account_type, parent=parent,
        )
        log_action(action="create", instance=account, user=user,
                   changes={"code": account.code, "type": account.account_type})
    logger.info("Created account %s", account)
    return account


def update_account(account_id, data: AccountInput, *, user=None) -> Account:
    account = _get(Account, account_id, "Account")
    if Account.objects.filter(code=data.code).exclude(pk=account.pk).exists():
        raise ConflictError(f"Account code {data.code} already exists")
    if Account.objects.filter(name=data.name).exclude(pk=account.pk).exists():
        raise ConflictError(f"Account name {data.name} already exists")
    # posting looks control accounts up by code
    if data.code != account.code and account.code in settings.LEDGER_ACCOUNT_CODES.values():
        raise ConflictError(f"Account {account.code} is a control account; its code is fixed")
    if data.account_type != account.account_type:
        if account.children.exists():
            raise ConflictError("Cannot change the type of an account with child accounts")
        if LedgerEntry.objects.filter(account=account).exists():
            raise ConflictError("Cannot change the type of an account with existing transactions")

    parent = None
    if data.parent_id:
        if data.parent_id == account.pk:
            raise ValidationError("An account cannot be its own parent")
        parent = _get(Account, data.parent_id, "Parent account")
        if parent.account_type != data.account_type:
            raise ValidationError("Parent account must be of the same account type")
        # walk up from the new parent; meeting ourselves would close a loop
        ancestor = parent
        while ancestor is not None:
            if ancestor.pk == account.pk:
                raise ValidationError("An account cannot be moved under its own sub-account")
            ancestor = ancestor.parent

    changes = {}
    for field, value in (("name", data.name), ("code", data.code),
                         ("account_type", data.account_type),
                         ("parent_id", parent.pk if parent else None)):
        if getattr(account, field) != value:
            changes[field] = [getattr(account, field), value]
    account.name, account.code = data.name, data.code
    account.account_type, account.parent = data.account_type, parent
    with transaction.atomic():
        account.save()
        log_action(action="update", instance=account, user=user, changes=changes)
    logger.info("Updated account %s", account.code)
    return account


def search_accounts(*, account_type=None, parent_id=None, search=None):
    qs = Account.objects.select_related("parent")
    if account_type:
        qs = qs.filter(account_type=account_type)
    if parent_id:
        qs = qs.filter(parent_id=parent_id)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(code__icontains=search))
    return qs


def accounts_by_type(account_type):
    if account_type not in dict(ACCOUNT_TYPES):
        raise ValidationError(f"Unknown account type {account_type}")
    return Account.objects.filter(account_type=account_type).select_related("parent")


def delete_account(account_id, *, user=None):
    """Only leaf accounts that were never posted to can go."""
    account = _get(Account, account_id, "Account")
    if account.children.exists():
        raise ConflictError("Cannot delete account with child accounts")
    if LedgerEntry.objects.filter(account=account).exists():
        raise ConflictError("Cannot delete account with existing transactions")
    with transaction.atomic():
        log_action(action="delete", instance=account, user=user,
                   changes={"code": account.code})
        account.delete()
    logger.info("Deleted account %s", account.code)


def account_hierarchy() -> list:
    """Nested tree of the whole chart, roots first, siblings by name."""
    accounts = list(Account.objects.order_by("name"))
    by_parent = {}
    for account in accounts:
        by_parent.setdefault(account.parent_id, []).append(account)

    def node(account):
        return {
            "id": account.pk,
            "name": account.name,
            "code": account.code,
            "type": account.account_type,
            "children": [node(child) for child in by_parent.get(account.pk, [])],
        }

    return [node(root) for root in by_parent.get(None, [])]


def account_stats() -> dict:
    counts = {
        row["account_type"]: row["n"]
        for row in Account.objects.order_by().values("account_type").annotate(n=Count("id"))
    }
    stats = {"totalAccounts": sum(counts.values())}
    for value, _label in ACCOUNT_TYPES:
        stats[value.lower()] = counts.get(value, 0)
    return stats


# ----------------------------
# Master data deletion
# ----------------------------
def _delete_protected(instance, user, references):
    """
    Delete a master-data row unless a transaction row points at it.
    `references` maps a readable label to a queryset of referencing rows.
    """
    for label, qs in references.items():
        if qs.exists():
            logger.warning("Refused to delete %s %s: used by %s",
                           instance.__class__.__name__, instance.pk, label)
            raise ConflictError(f"Cannot delete {instance}: it is used by {label}")
    pk = instance.pk
    try:
        with transaction.atomic():
            log_action(action="delete", instance=instance, user=user,
                       changes={"name": str(instance)})
            instance.delete()
    except ProtectedError as exc:
        # a reference type not listed above still blocks at the schema level
        raise ConflictError(f"Cannot delete {instance}: it is still referenced") from exc
    logger.info("Deleted %s %s", instance.__class__.__name__, pk)


def delete_contact(contact_id, *, user=None):
    contact = _get(Contact, contact_id, "Contact")
    _delete_protected(contact, user, {
        "purchase orders": contact.purchase_orders.all(),
        "sales orders": contact.sales_orders.all(),
        "vendor bills": contact.vendor_bills.all(),
        "customer invoices": contact.customer_invoices.all(),
        "bill payments": contact.bill_payments.all(),
        "invoice payments": contact.invoice_payments.all(),
    })


def delete_product(product_id, *, user=None):
    product = _get(Product, product_id, "Product")
    _delete_protected(product, user, {
        "purchase orders": product.purchaseorderitem_lines.all(),
        "sales orders": product.salesorderitem_lines.all(),
        "vendor bills": product.vendorbillitem_lines.all(),
        "customer invoices": product.customerinvoiceitem_lines.all(),
        "stock movements": product.stock_movements.all(),
    })


def delete_tax(tax_id, *, user=None):
    tax = _get(Tax, tax_id, "Tax")
    _delete_protected(tax, user, {
        "purchase orders": tax.purchaseorderitem_lines.all(),
        "sales orders": tax.salesorderitem_lines.all(),
        "vendor bills": tax.vendorbillitem_lines.all(),
        "customer invoices": tax.customerinvoiceitem_lines.all(),
    })
