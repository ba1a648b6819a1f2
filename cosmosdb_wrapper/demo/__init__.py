"""
Scripted demo of the document context against Cosmos DB.

Usage:
    python -m cosmosdb_wrapper.demo --no-wait
"""

from .cli import main
from .driver import DocumentDemo

__all__ = ["DocumentDemo", "main"]
