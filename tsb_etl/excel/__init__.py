"""Workbook reading, header resolution and row extraction."""
