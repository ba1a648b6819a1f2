import os
import uuid
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file if it exists
load_dotenv()

# Well-known endpoint (vNext emulator, HTTP by default) and key of the local emulator
EMULATOR_ENDPOINT = "http://localhost:8081/"
EMULATOR_KEY = "C2y6yDjf5/R+ob0N8A7Cgv30VRDJIWEHLM+4QDU5DE2nQ9nDuVTqobD4b8mGGyPMbIZnqyMsEcaGQy67XIw/Jw=="

VALID_CONSISTENCY_LEVELS = ["Strong", "BoundedStaleness", "Session", "ConsistentPrefix", "Eventual"]


def _is_local_endpoint(endpoint: str) -> bool:
    host = urlparse(endpoint).hostname or ""
    return host in ("localhost", "127.0.0.1", "::1")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _default_database_name() -> str:
    # One database per run so repeated demos never see each other's documents
    return os.getenv("COSMOS_DATABASE_NAME") or f"cosmos-demo-{uuid.uuid4().hex}"


class CosmosDBConfig(BaseModel):
    """Configuration for Cosmos DB connection and operations."""

    endpoint: str = Field(
        default_factory=lambda: os.getenv("COSMOS_ENDPOINT", EMULATOR_ENDPOINT),
        description="Cosmos DB account endpoint"
    )

    key: str = Field(
        default_factory=lambda: os.getenv("COSMOS_KEY", EMULATOR_KEY),
        description="Cosmos DB account key"
    )

    database_name: str = Field(
        default_factory=_default_database_name,
        description="Database holding the demo containers"
    )

    # Connection settings
    connection_verify: bool = Field(
        default_factory=lambda: _env_flag(
            "COSMOS_CONNECTION_VERIFY",
            not _is_local_endpoint(os.getenv("COSMOS_ENDPOINT", EMULATOR_ENDPOINT))
        ),
        description="Verify the TLS certificate (an HTTPS emulator uses a self-signed one)"
    )

    consistency_level: Optional[str] = Field(
        default_factory=lambda: os.getenv("COSMOS_CONSISTENCY_LEVEL"),
        description="Client consistency level override"
    )

    retries: int = Field(
        default=3,
        description="Number of retry attempts the SDK makes for failed requests"
    )

    timeout_seconds: int = Field(
        default=30,
        description="Connection timeout in seconds"
    )

    # Logging settings
    enable_debug_logging: bool = Field(
        default_factory=lambda: _env_flag("COSMOS_DEBUG_LOGGING", False),
        description="Enable debug logging for Cosmos DB operations"
    )

    @field_validator('endpoint')
    @classmethod
    def validate_endpoint(cls, v):
        """Validate the account endpoint URL."""
        if not v or not v.startswith(("http://", "https://")):
            raise ValueError("Cosmos DB endpoint must be an http(s) URL")
        return v

    @field_validator('key')
    @classmethod
    def validate_key(cls, v):
        """Validate account key."""
        if not v:
            raise ValueError("Cosmos DB account key is required")
        return v

    @field_validator('database_name')
    @classmethod
    def validate_database_name(cls, v):
        """Validate database name against the characters Cosmos DB rejects."""
        if not v or any(c in v for c in '/\\?#'):
            raise ValueError(f"Invalid database name: {v!r}")
        return v

    @field_validator('consistency_level')
    @classmethod
    def validate_consistency_level(cls, v):
        """Validate consistency level value."""
        if v is not None and v not in VALID_CONSISTENCY_LEVELS:
            raise ValueError(f"Consistency level must be one of: {VALID_CONSISTENCY_LEVELS}")
        return v

    @property
    def is_emulator(self) -> bool:
        """Whether the endpoint points at a local emulator."""
        return _is_local_endpoint(self.endpoint)

    def client_options(self) -> dict:
        """Keyword arguments passed to ``CosmosClient``."""
        options = {
            'connection_verify': self.connection_verify,
            'connection_timeout': self.timeout_seconds,
            'retry_total': self.retries,
            'logging_enable': self.enable_debug_logging,
        }
        if self.consistency_level:
            options['consistency_level'] = self.consistency_level
        return options

    @classmethod
    def from_env(cls) -> 'CosmosDBConfig':
        """Create configuration from environment variables.

        Returns:
            CosmosDBConfig instance
        """
        return cls()

    @classmethod
    def for_local_emulator(cls, database_name: Optional[str] = None) -> 'CosmosDBConfig':
        """Create configuration for the local Cosmos DB emulator.

        Args:
            database_name: Optional fixed database name (a unique one is generated otherwise)

        Returns:
            CosmosDBConfig instance configured for the emulator
        """
        kwargs = {}
        if database_name:
            kwargs['database_name'] = database_name
        return cls(
            endpoint=EMULATOR_ENDPOINT,
            key=EMULATOR_KEY,
            connection_verify=False,
            enable_debug_logging=True,
            **kwargs
        )

    model_config = ConfigDict(
        validate_assignment=True
    )
