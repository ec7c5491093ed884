from .account import Account
from .auditlog import AuditLog
from .bill import VendorBill, VendorBillItem
from .contact import Contact
from .invoice import CustomerInvoice, CustomerInvoiceItem
from .ledger import LedgerEntry, StockMovement
from .order import (PurchaseOrder, PurchaseOrderItem, SalesOrder,
                    SalesOrderItem)
from .payment import BillPayment, InvoicePayment
from .product import HSNCode, Product
from .tax import Tax

__all__ = [
    "Account",
    "AuditLog",
    "BillPayment",
    "Contact",
    "CustomerInvoice",
    "CustomerInvoiceItem",
    "HSNCode",
    "InvoicePayment",
    "LedgerEntry",
    "Product",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "SalesOrder",
    "SalesOrderItem",
    "StockMovement",
    "Tax",
    "VendorBill",
    "VendorBillItem",
]
