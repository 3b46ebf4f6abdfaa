# vaultdrop/main.py

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from vaultdrop.api import health, messages, slack
from vaultdrop.config import Settings
from vaultdrop.core.message import MessageLifecycle
from vaultdrop.core.message_logic import utcnow
from vaultdrop.core.rate_limiter import RateLimiter
from vaultdrop.core.route_limits import install_route_limits, route_ceiling
from vaultdrop.infra.postgres import build_engine, init_db
from vaultdrop.infra.store import SQLMessageStore
from vaultdrop.services.notifier import NotificationDispatcher, NullNotifier, SMTPNotifier
from vaultdrop.services.reaper import Reaper
from vaultdrop.utils.logger import setup_logger

logger = logging.getLogger(__name__)


def build_notifier(settings: Settings):
    if not settings.notifications_enabled:
        return NullNotifier()
    return SMTPNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.email_username,
        password=settings.email_password,
    )


def create_app(
    settings: Optional[Settings] = None,
    store=None,
    notifier=None,
    rate_limiter: Optional[RateLimiter] = None,
    clock: Callable = utcnow,
) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logger(settings.log_level, settings.error_log)

    if store is None:
        engine = build_engine(settings.database_url, statement_timeout=settings.request_timeout_seconds)
        init_db(engine)
        store = SQLMessageStore(engine)

    if notifier is None:
        notifier = build_notifier(settings)
    dispatcher = NotificationDispatcher(notifier)
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            capacity=settings.rate_capacity,
            refill_rate=settings.rate_refill_per_second,
            idle_seconds=settings.visitor_idle_seconds,
        )
    lifecycle = MessageLifecycle(store, dispatcher, clock=clock)
    reaper = Reaper(
        store,
        ttl=settings.message_ttl,
        interval_seconds=settings.reaper_interval_seconds,
        clock=clock,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.run_background_tasks:
            reaper.start()
            rate_limiter.start_gc(settings.visitor_gc_interval_seconds)
        yield
        # Let an in-flight sweep finish, but not forever
        reaper.stop(settings.shutdown_grace_seconds)
        rate_limiter.stop_gc(settings.shutdown_grace_seconds)
        dispatcher.shutdown(wait=False)

    app = FastAPI(
        title="VaultDrop",
        version="1.0.0",
        description="Read-once encrypted message drop",
        lifespan=lifespan,
        dependencies=[Depends(route_ceiling)],
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token"],
        expose_headers=["Link"],
        max_age=300,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    install_route_limits(app, settings.route_limit, settings.route_limit_enabled)

    app.state.settings = settings
    app.state.store = store
    app.state.lifecycle = lifecycle
    app.state.rate_limiter = rate_limiter
    app.state.reaper = reaper
    app.state.dispatcher = dispatcher

    # Register routers
    app.include_router(messages.router, tags=["Messages"])
    app.include_router(slack.router, tags=["Chat commands"])
    app.include_router(health.router, tags=["Health"])

    return app
