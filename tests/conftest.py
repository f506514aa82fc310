"""Pytest configuration for all tests."""

from pathlib import Path
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
import structlog

from sealdb.client import SealClient
from sealdb.core.config import Settings
from sealdb.domain.entities.schema import SchemaDefinition
from sealdb.domain.services.schema_loader import parse_schema


@pytest.fixture(autouse=True)
def reset_structlog():
    """Clients configure structlog globally; undo it after each test."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def schema_document() -> dict[str, Any]:
    """Schema used across tests: users, posts referencing users, numbered tags."""
    return {
        "User": {
            "id": {"type": "string", "isId": True},
            "email": {"type": "string", "isUnique": True, "isRequired": True},
            "name": {"type": "string"},
            "age": {"type": "number"},
            "role": {"type": "string", "default": "member"},
            "active": {"type": "boolean", "default": True},
        },
        "Post": {
            "id": {"type": "string", "isId": True},
            "title": {"type": "string", "isRequired": True},
            "authorId": {"type": "string", "ref": "User"},
            "tags": {"type": "array", "items": {"type": "string"}},
            "publishedAt": {"type": "date"},
        },
        "Tag": {
            "id": {"type": "number", "isId": True},
            "label": {"type": "string", "isUnique": True},
        },
    }


@pytest.fixture
def schema(schema_document: dict[str, Any]) -> SchemaDefinition:
    return parse_schema(schema_document)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(_env_file=None, data_dir=tmp_path / "data", encryption_key="test-secret-key")


@pytest_asyncio.fixture
async def client(schema: SchemaDefinition, settings: Settings) -> AsyncGenerator[SealClient, None]:
    """Client backed by an encrypted store in a temporary directory."""
    async with SealClient(schema, settings) as db:
        yield db
