"""
Financial reporting module.

Per-project budget/collection records, table helpers and the Excel
workbook export.
"""
