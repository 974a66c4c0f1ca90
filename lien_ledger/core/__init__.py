"""
Core modules for Lien Ledger.

This package contains the pure calculation functionality: currency
handling, lien reduction, bill aggregation, invoices and settlements.
"""
