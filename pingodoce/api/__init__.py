"""Pingo Doce API integration module."""

from .client import PingoDoceClient, Session, clean_response_data
from .models import (
    BrandInfo,
    CatalogProduct,
    ProductLine,
    TransactionDetail,
    TransactionSummary,
)

__all__ = [
    "PingoDoceClient",
    "Session",
    "clean_response_data",
    "BrandInfo",
    "CatalogProduct",
    "ProductLine",
    "TransactionDetail",
    "TransactionSummary",
]
