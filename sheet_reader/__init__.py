"""Sparse-row reconciliation for spreadsheet sheets."""
