"""Storefront orders service: cart-to-order conversion with stock consistency."""

__version__ = "1.0.0"
