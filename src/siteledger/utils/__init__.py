"""Utility functions for siteledger."""

from siteledger.utils.date_parser import parse_date, widen_date_range
from siteledger.utils.amount_parser import parse_amount, quantize_amount

__all__ = ["parse_date", "widen_date_range", "parse_amount", "quantize_amount"]
