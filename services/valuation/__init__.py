"""DCF valuation calculator.

Projects a metric (FCF, operating income, dividend or EBITDA) over a
horizon, discounts it with a terminal multiple, and reports fair value per
share against the current price. See `services/valuation/dcf.py`.
"""
