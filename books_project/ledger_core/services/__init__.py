from .catalog import (account_hierarchy, account_stats, accounts_by_type,
                      contact_stats, create_account, create_contact,
                      create_product, create_tax, delete_account,
                      delete_contact, delete_product, delete_tax,
                      product_categories, product_stats, search_accounts,
                      search_contacts, search_products, search_taxes,
                      tax_stats, taxes_for_side, update_account,
                      update_contact, update_product, update_tax)
from .documents import (convert_purchase_order_to_bill,
                        convert_sales_order_to_invoice, create_customer_invoice,
                        create_purchase_order, create_sales_order,
                        create_vendor_bill, delete_customer_invoice,
                        delete_purchase_order, delete_sales_order,
                        delete_vendor_bill, order_stats, payable_stats,
                        search_documents, update_customer_invoice,
                        update_purchase_order, update_sales_order,
                        update_vendor_bill)
from .numbering import DocumentNumberGenerator
from .payment import (get_payment, payment_stats, payments_between,
                      record_bill_payment, record_invoice_payment,
                      search_payments)
from .posting import adjust_stock
from .reports import (balance_sheet, dashboard, partner_ledger,
                      profit_and_loss, stock_statement)
