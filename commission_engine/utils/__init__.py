"""Utility functions."""

from commission_engine.utils.numbers import (
    format_money,
    is_set,
    parse_amount,
    parse_decimal,
    quantize_money,
)

__all__ = [
    "format_money",
    "is_set",
    "parse_amount",
    "parse_decimal",
    "quantize_money",
]
