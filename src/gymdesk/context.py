"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import SessionFactory, bootstrap_database
from .infra.gateway import SQLModelGateway
from .scheduler import BackgroundScheduler, create_scheduler
from .services.cache import ResultCache
from .services.data_client import DataClient


@dataclass
class AppContext:
    """Everything a process needs to talk to the studio data store."""

    config: BaseConfig
    engine: Engine
    session_factory: SessionFactory
    gateway: SQLModelGateway
    client: DataClient
    scheduler: Optional[BackgroundScheduler] = None

    def start_scheduler(self) -> BackgroundScheduler:
        """Start the nightly maintenance jobs; repeated calls reuse the scheduler."""
        if self.scheduler is None:
            self.scheduler = create_scheduler(self)
        if not self.scheduler.running:
            self.scheduler.start()
        return self.scheduler

    def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()
        self.client.close()
        self.engine.dispose()


def create_app_context(
    config: Optional[BaseConfig] = None, *, start_scheduler: bool = False
) -> AppContext:
    """Create the engine, schema, gateway and an opened data client.

    With ``start_scheduler`` the background overdue sweep runs as well.
    """

    if config is None:
        config = BaseConfig()

    engine, session_factory = bootstrap_database(config)

    gateway = SQLModelGateway(session_factory, engine=engine)
    client = DataClient(gateway, ResultCache(ttl=config.CACHE_TTL_SECONDS)).open()

    ctx = AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        gateway=gateway,
        client=client,
    )
    if start_scheduler:
        ctx.start_scheduler()
    return ctx
