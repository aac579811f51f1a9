"""
Pytest configuration and fixtures for fieldops-ingest tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import os
from typing import Generator

import pytest

from fieldops_ingest.batch.pipeline import IngestPipeline
from fieldops_ingest.config import PipelineConfig
from fieldops_ingest.core.profiles.profile_config import SourceProfile
from fieldops_ingest.storage.local_store import LocalObjectStore

from tests.fakes import InMemoryBatchRegistry, InMemoryRawRowStore

TEST_BUCKET = "ingest-test"
TEST_HEADERS = ["TechId", "TechName", "Supervisor", "Total Jobs", "Installs"]


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# PROFILE / STORE FIXTURES
# =======================

@pytest.fixture
def test_profile() -> SourceProfile:
    """Small ontrac-style profile (five headers) used by stage tests"""
    return SourceProfile(source_system="ontrac", expected_headers=list(TEST_HEADERS))


@pytest.fixture
def profiles(test_profile) -> dict[str, SourceProfile]:
    return {test_profile.source_system: test_profile}


@pytest.fixture
def local_store(tmp_path) -> LocalObjectStore:
    """Object store on a temporary directory"""
    return LocalObjectStore(tmp_path / "storage", TEST_BUCKET)


@pytest.fixture
def registry() -> InMemoryBatchRegistry:
    return InMemoryBatchRegistry()


@pytest.fixture
def raw_rows() -> InMemoryRawRowStore:
    return InMemoryRawRowStore()


@pytest.fixture
def pipeline(local_store, registry, raw_rows, profiles) -> IngestPipeline:
    """Pipeline wired to the local store and in-memory row store doubles"""
    return IngestPipeline(
        store=local_store,
        registry=registry,
        raw_rows=raw_rows,
        profiles=profiles,
        settings=PipelineConfig(max_workers=2, insert_chunk_size=2),
    )


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container():
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_pipeline",
        password="test_password",
        dbname="test_datawarehouse",
    ) as postgres:
        # Wait for container to be ready
        postgres.get_connection_url()
        yield postgres


@pytest.fixture(scope="session")
def db_pool(postgres_container) -> Generator:
    """
    Connection pool against the test container with the schema created

    Yields:
        DatabaseConnectionPool
    """
    from fieldops_ingest.warehouse.connection import DatabaseConnectionPool
    from fieldops_ingest.warehouse.schema_mgmt import SchemaManager

    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_datawarehouse",
        user="test_pipeline",
        password="test_password",
        min_size=1,
        max_size=5,
    )
    pool.open()
    SchemaManager(pool).ensure_schema()
    yield pool
    pool.close()


@pytest.fixture
def clean_db(db_pool):
    """
    Provide a clean database by truncating the pipeline tables before each test

    Yields:
        DatabaseConnectionPool over empty tables
    """
    from fieldops_ingest.warehouse.schema_mgmt import BATCH_TABLE, RAW_TABLE

    db_pool.execute_command(f"TRUNCATE TABLE {RAW_TABLE}, {BATCH_TABLE} CASCADE")
    yield db_pool


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_env_vars():
    """
    Set test environment variables

    This fixture loads config/test.env when present
    """
    from dotenv import load_dotenv

    env_path = os.path.join(
        os.path.dirname(os.path.dirname(__file__)),
        "config",
        "test.env"
    )

    if os.path.exists(env_path):
        load_dotenv(env_path, override=True)
