"""
Test helpers for the Cosmos DB wrapper.

Provides an in-memory fake of the azure-cosmos client objects so the document
context can be exercised without the emulator.
"""

from .fake_cosmos import FakeContainerProxy, FakeCosmosClient, FakeDatabaseProxy

__all__ = [
    'FakeContainerProxy',
    'FakeCosmosClient',
    'FakeDatabaseProxy',
]
