"""Engine and connection pool for the configured database."""

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url

from tablecrud.config import get_settings
from tablecrud.errors import ConfigurationFailure


@lru_cache
def get_engine() -> Engine:
    """Create the process-wide engine, failing when no database is configured."""

    settings = get_settings()
    if not settings.database_url:
        raise ConfigurationFailure.db_config_missing()

    url = make_url(settings.database_url)
    options: dict = {"future": True, "pool_pre_ping": True}
    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout_seconds,
        )
    return create_engine(url, **options)
