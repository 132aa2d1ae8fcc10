"""Valuation exports: CSV projection tables and Markdown summaries.

- writers.py: CSV emitters with fixed column schemas
- reports.py: valuation.md summary generator
"""
