"""Loaders for normalized transaction rows"""

from .csv_loader import TransactionCsvLoader, rows_to_transactions, parse_amount

__all__ = ['TransactionCsvLoader', 'rows_to_transactions', 'parse_amount']
