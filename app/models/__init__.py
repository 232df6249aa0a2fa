from app.models.bank_transaction import BankTransaction
from app.models.business_settings import BusinessSettings
from app.models.expense import Expense
from app.models.quote import Quote
from app.models.reconciliation_link import ReconciliationLink

__all__ = [
    "BankTransaction",
    "BusinessSettings",
    "Expense",
    "Quote",
    "ReconciliationLink",
]
