"""
Pipeline configuration.

Configuration is read from the environment once, by ``IngestConfig.from_env``,
and passed explicitly into every component. Nothing else reads os.environ.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, model_validator

DEFAULT_BUCKET = "ingest-ontrac-raw-v1"


class StorageConfig(BaseModel):
    backend: Literal["supabase", "local"] = "supabase"
    bucket: str = Field(DEFAULT_BUCKET, min_length=1)
    supabase_url: str | None = None
    supabase_service_role_key: SecretStr | None = None
    local_root: Path = Path(".storage")

    @model_validator(mode="after")
    def _check_credentials(self) -> "StorageConfig":
        if self.backend == "supabase" and (not self.supabase_url or not self.supabase_service_role_key):
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the supabase backend")
        return self


class DatabaseConfig(BaseModel):
    host: str = "localhost"
    port: int = Field(5432, ge=1, le=65535)
    database: str = "datawarehouse"
    user: str = "pipeline"
    password: SecretStr
    min_size: int = Field(1, ge=0)
    # commit and undo hold one connection for the advisory lock and need a second for their queries
    max_size: int = Field(10, ge=2)
    timeout: float = Field(30.0, gt=0)

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> "DatabaseConfig":
        if self.min_size > self.max_size:
            raise ValueError("DB_POOL_MIN_SIZE must not exceed DB_POOL_MAX_SIZE")
        return self


class PipelineConfig(BaseModel):
    insert_chunk_size: int = Field(500, ge=1)
    max_workers: int = Field(4, ge=1)
    storage_list_limit: int = Field(500, ge=1)
    undo_list_page_size: int = Field(1000, ge=1)
    remove_chunk_size: int = Field(200, ge=1)
    source_profiles_path: Path | None = None


class IngestConfig(BaseModel):
    storage: StorageConfig
    database: DatabaseConfig
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None,
                 environ: Mapping[str, str] | None = None) -> "IngestConfig":
        """
        Build configuration from environment variables.

        Args:
            env_file: Optional .env file loaded first (existing variables win)
            environ: Mapping to read instead of os.environ (tests)

        Returns:
            IngestConfig

        Raises:
            pydantic.ValidationError: If a value is missing or malformed
        """
        if environ is None:
            if env_file:
                load_dotenv(env_file, override=False)
            environ = os.environ
        env = environ

        def opt(name: str) -> str | None:
            value = env.get(name)
            return value if value not in (None, "") else None

        def num(name: str, default: int) -> int:
            value = opt(name)
            return int(value) if value is not None else default

        def seconds(name: str, default: float) -> float:
            value = opt(name)
            return float(value) if value is not None else default

        storage = StorageConfig(
            backend=opt("STORAGE_BACKEND") or "supabase",
            bucket=opt("STORAGE_BUCKET") or DEFAULT_BUCKET,
            supabase_url=opt("SUPABASE_URL"),
            supabase_service_role_key=opt("SUPABASE_SERVICE_ROLE_KEY"),
            local_root=Path(opt("LOCAL_STORAGE_ROOT") or ".storage"),
        )
        database = DatabaseConfig(
            host=opt("DB_HOST") or "localhost",
            port=num("DB_PORT", 5432),
            database=opt("DB_NAME") or "datawarehouse",
            user=opt("DB_USER") or "pipeline",
            password=opt("DB_PASSWORD"),
            min_size=num("DB_POOL_MIN_SIZE", 1),
            max_size=num("DB_POOL_MAX_SIZE", 10),
            timeout=seconds("DB_POOL_TIMEOUT", 30.0),
        )
        pipeline = PipelineConfig(
            insert_chunk_size=num("INGEST_INSERT_CHUNK_SIZE", 500),
            max_workers=num("INGEST_MAX_WORKERS", 4),
            storage_list_limit=num("INGEST_STORAGE_LIST_LIMIT", 500),
            undo_list_page_size=num("INGEST_UNDO_LIST_PAGE_SIZE", 1000),
            remove_chunk_size=num("INGEST_REMOVE_CHUNK_SIZE", 200),
            source_profiles_path=opt("INGEST_SOURCE_PROFILES"),
        )
        return cls(storage=storage, database=database, pipeline=pipeline)
