# mongo_tenant/settings.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# switch environments with MONGO_TENANT_ENV; a missing .env file is fine
env = os.getenv("MONGO_TENANT_ENV", "dev")
load_dotenv(f".env.{env}")


@dataclass(frozen=True)
class Settings:
    """
    Process-wide defaults, read once from the environment.
    Schemas may still override the tenant key per entity type.
    """
    mongo_uri: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    mongo_db: str = os.getenv("MONGO_DB", "mongo_tenant")
    tenant_id_key: str = os.getenv("MONGO_TENANT_ID_KEY", "tenantId")
    log_level: str = os.getenv("MONGO_TENANT_LOG_LEVEL", "WARNING")


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """
    Convenience for scripts and apps. The library itself never calls this.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
