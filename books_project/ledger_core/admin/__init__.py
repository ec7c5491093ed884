from .actions import convert_to_bill, convert_to_invoice
from .catalog import (AccountAdmin, ContactAdmin, HSNCodeAdmin, ProductAdmin,
                      TaxAdmin)
from .documents import (CustomerInvoiceAdmin, PurchaseOrderAdmin,
                        SalesOrderAdmin, VendorBillAdmin)
from .inlines import (BillPaymentInline, CustomerInvoiceItemInline,
                      InvoicePaymentInline, PurchaseOrderItemInline,
                      SalesOrderItemInline, VendorBillItemInline)
from .ledger import (AppendOnlyAdmin, AuditLogAdmin, BillPaymentAdmin,
                     InvoicePaymentAdmin, LedgerEntryAdmin, StockMovementAdmin)
