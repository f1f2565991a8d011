"""
Process entry point.

Owns the lifecycle of configuration, logging, the database engine and the
workflow engine.  Run with::

    uvicorn membership_api.main:create_app_from_config --factory

The packaged defaults use a local SQLite file.  For PostgreSQL install the
``postgres`` extra and point ``DATABASE_URL`` at the server.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from membership_api.app import create_app
from membership_config import KernelConfig, get_active_config
from membership_kernel.db.engine import (
    create_engine_from_url,
    create_session_factory,
    create_tables,
)
from membership_kernel.logging_config import configure_logging, get_logger
from membership_kernel.services.workflow_engine import WorkflowEngine

logger = get_logger("api.main")


def create_app_from_config(config: Optional[KernelConfig] = None) -> FastAPI:
    """Wire config, logging, store and engine into a FastAPI app."""
    config = config or get_active_config()
    configure_logging(level=config.logging.level)

    db = config.database
    sa_engine = create_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
    workflow = WorkflowEngine(
        create_session_factory(sa_engine),
        rejection_placeholder=config.workflow.rejection_placeholder,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # create_all skips tables that already exist
        create_tables(sa_engine)
        logger.info("api_started", extra={"dialect": sa_engine.dialect.name})
        try:
            yield
        finally:
            sa_engine.dispose()

    app = create_app(workflow, lifespan=lifespan)
    app.state.db_engine = sa_engine
    return app
