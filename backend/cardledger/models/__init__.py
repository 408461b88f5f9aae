from .inventory import Lot, ShowCard
from .shows import Show, Expense
from .transactions import Transaction, CashTransaction
from .audit import CorrectionEvent

__all__ = [
    'Lot', 'ShowCard',
    'Show', 'Expense',
    'Transaction', 'CashTransaction',
    'CorrectionEvent',
]
