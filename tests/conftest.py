"""
Test configuration and fixtures for the Cosmos DB wrapper.

Unit tests run the document context against the in-memory fake client from
``tests.helpers``; integration tests talk to the Cosmos DB emulator and are
skipped unless ``COSMOS_EMULATOR_TESTS=1``.
"""

import os
import subprocess
import sys
import time
import uuid
from pathlib import Path
from typing import Generator

# Add parent directory to path so we can import cosmosdb_wrapper and tests.helpers
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
import requests

from cosmosdb_wrapper import CosmosDBConfig, DocumentContext
from cosmosdb_wrapper.config import EMULATOR_ENDPOINT, EMULATOR_KEY
from tests.helpers import FakeCosmosClient


@pytest.fixture
def cosmos_config():
    """Cosmos DB configuration for testing."""
    return CosmosDBConfig(
        endpoint="https://localhost:8081/",
        key="dGVzdC1rZXk=",
        database_name="test-database",
        connection_verify=False,
        enable_debug_logging=False
    )


@pytest.fixture
def fake_client():
    """In-memory Cosmos DB account."""
    return FakeCosmosClient()


@pytest.fixture
def context_factory(cosmos_config, fake_client):
    """Builds independent contexts over the same fake account."""
    return lambda: DocumentContext(cosmos_config, client=fake_client)


@pytest.fixture
def context(context_factory) -> Generator[DocumentContext, None, None]:
    """Document context with its database and containers provisioned."""
    with context_factory() as ctx:
        ctx.ensure_created()
        yield ctx


@pytest.fixture
def other_context(context_factory, context) -> Generator[DocumentContext, None, None]:
    """Second, independent context over the same database as ``context``."""
    with context_factory() as ctx:
        yield ctx


# ===== Emulator Integration Test Fixtures =====

EMULATOR_COMPOSE_FILE = Path(__file__).parent.parent / "docker-compose.emulator.yml"


def _emulator_running() -> bool:
    try:
        response = requests.get(EMULATOR_ENDPOINT, timeout=2, verify=False)
    except requests.RequestException:
        return False
    # Any answer from the gateway means it is up; unauthenticated calls get 401
    return response.status_code < 500


def _wait_for_emulator(max_retries: int = 60, delay: float = 2.0) -> None:
    """Wait for the Cosmos DB emulator to accept requests."""
    print("Waiting for the Cosmos DB emulator to be ready...")

    for attempt in range(max_retries):
        if _emulator_running():
            print("Cosmos DB emulator is ready!")
            return
        print(f"Attempt {attempt + 1}/{max_retries}: emulator not ready yet...")
        time.sleep(delay)

    raise RuntimeError("Cosmos DB emulator failed to start within the expected time")


@pytest.fixture(scope="session")
def emulator_container() -> Generator[None, None, None]:
    """Ensure the Cosmos DB emulator is running for integration tests."""
    if os.getenv("COSMOS_EMULATOR_TESTS") != "1":
        pytest.skip("Set COSMOS_EMULATOR_TESTS=1 to run tests against the Cosmos DB emulator")

    if _emulator_running():
        print("Cosmos DB emulator is already running")
        yield
        return

    print("Starting Cosmos DB emulator container...")
    try:
        subprocess.run(
            ["docker", "compose", "-f", str(EMULATOR_COMPOSE_FILE), "up", "-d"],
            check=True, capture_output=True
        )
        _wait_for_emulator()

        yield

    finally:
        print("Stopping Cosmos DB emulator container...")
        try:
            subprocess.run(
                ["docker", "compose", "-f", str(EMULATOR_COMPOSE_FILE), "down"],
                check=True, capture_output=True
            )
        except subprocess.CalledProcessError as e:
            print(f"Warning: Failed to stop Cosmos DB emulator container: {e}")


@pytest.fixture
def emulator_config(emulator_container):
    """Cosmos DB configuration for emulator integration testing (one database per test)."""
    return CosmosDBConfig(
        endpoint=EMULATOR_ENDPOINT,
        key=EMULATOR_KEY,
        database_name=f"integration-{uuid.uuid4().hex}",
        connection_verify=False
    )


@pytest.fixture
def emulator_context(emulator_config) -> Generator[DocumentContext, None, None]:
    """Provisioned context against the emulator; the database is dropped afterwards."""
    with DocumentContext(emulator_config) as ctx:
        ctx.ensure_created()
        try:
            yield ctx
        finally:
            ctx.ensure_deleted()
