from django.core.exceptions import ObjectDoesNotExist

# Malformed input is reported with django.core.exceptions.ValidationError


class NotFoundError(ObjectDoesNotExist):
    """Raised when a referenced id (contact, product, tax, account...) does not resolve."""
    pass


class ConflictError(Exception):
    """Raised when a business rule blocks the operation
    (duplicate unique field, delete blocked by transactions,
    converting an already-converted order)."""
    pass


class OverpaymentError(ConflictError):
    """Raised when a payment exceeds the document's remaining balance."""
    pass


class UnbalancedJournalError(Exception):
    """Raised when a set of ledger entries fails the double-entry balance check."""
    pass
