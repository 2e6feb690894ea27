"""
Order API

Order lifecycle and aggregation service: creates orders against a
product/service catalog, moves them between statuses and reports totals
and monthly profit, backed by PostgreSQL.
"""

__version__ = "0.1.0"
