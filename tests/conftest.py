"""Shared fixtures and helpers for tests."""

import os
import warnings
from pathlib import Path

import pytest
from testcontainers.core.container import DockerContainer
from testcontainers.core.waiting_utils import wait_for_logs
from tree_sitter import Parser
from tree_sitter_language_pack import get_parser

from kg_builder.db import InMemoryGraphDatabase
from kg_builder.embeddings import HashEmbeddingProvider

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# AgeTestBase: helpers for integration tests that need the AGE container
# ---------------------------------------------------------------------------

_DEFAULT_AGE_IMAGE = "apache/age:latest"


class AgeTestBase:
    @staticmethod
    def database_image() -> str:
        return os.getenv("KG_BUILDER_TEST_AGE_IMAGE", _DEFAULT_AGE_IMAGE)

    @staticmethod
    def create_container(image_tag: str) -> DockerContainer:
        return (
            DockerContainer(image_tag)
            .with_exposed_ports(5432)
            .with_env("POSTGRES_USER", "postgres")
            .with_env("POSTGRES_PASSWORD", "postgres")
            .with_env("POSTGRES_DB", "postgres")
        )

    @staticmethod
    def wait_for_postgres(container: DockerContainer) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DeprecationWarning)
            wait_for_logs(container, "database system is ready to accept connections", timeout=60)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def python_parser() -> Parser:
    """Return a tree-sitter parser for Python."""
    return get_parser("python")


@pytest.fixture
def go_parser() -> Parser:
    """Return a tree-sitter parser for Go."""
    return get_parser("go")


@pytest.fixture
def javascript_parser() -> Parser:
    """Return a tree-sitter parser for JavaScript."""
    return get_parser("javascript")


@pytest.fixture
def typescript_parser() -> Parser:
    """Return a tree-sitter parser for TypeScript."""
    return get_parser("typescript")


@pytest.fixture
def in_memory_db() -> InMemoryGraphDatabase:
    return InMemoryGraphDatabase()


@pytest.fixture
def hash_embedder() -> HashEmbeddingProvider:
    return HashEmbeddingProvider()
