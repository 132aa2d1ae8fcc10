"""Portfolio domain: stocks, strategies, journal entries and canvas nodes.

- models.py: record types and identifier generation
- store.py: in-process store with JSON snapshot
- search.py: filtering, sorting and totals for stock tables
- currency.py / logos.py: display helpers
"""
