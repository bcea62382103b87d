"""
FastAPI application for the Praxis plan API.

Thin HTTP surface over the job submission service. In DEV_MODE the
worker pools run inside this process on in-memory queues; otherwise jobs
go to Redis and are picked up by the RQ worker processes.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from praxis import __version__
from praxis.config import AppConfig, QueueSettings, config
from praxis.errors import PraxisError
from praxis.routes import plans_router, tasks_router, users_router
from praxis.submission import SubmissionService
from praxis.utils.logging import api_logger as logger, configure_logging, get_log_buffer


@dataclass
class Services:
    plans: Any
    tasks: Any
    queue: Any
    submission: SubmissionService
    local_workers: Any = None
    pipelines: Any = None


def build_services(
    app_config: AppConfig,
    *,
    plans=None,
    tasks=None,
    queue=None,
) -> Services:
    """
    Wire the services used by the routes.

    Anything passed in is used as is; the rest defaults to Supabase and
    either the local pools (DEV_MODE) or the Redis queues.
    """
    settings = QueueSettings.from_config(app_config)
    local_workers = None
    pipelines = None

    if plans is None or tasks is None:
        from praxis.database import PlanService, TaskService

        plans = plans or PlanService()
        tasks = tasks or TaskService()

    if queue is None:
        if app_config.DEV_MODE:
            from praxis.jobs import LocalWorkers
            from praxis.workers import build_pipelines

            pipelines = build_pipelines(app_config, plans=plans, tasks=tasks)
            local_workers = LocalWorkers(pipelines.handlers(), settings)
            queue = local_workers.source
        else:
            from praxis.queue.tasks import RedisJobQueue

            queue = RedisJobQueue(settings)

    submission = SubmissionService(
        plans,
        queue,
        placeholder_title=app_config.PLAN_PLACEHOLDER_TITLE,
        max_prompt_length=app_config.PROMPT_MAX_LENGTH,
    )

    return Services(
        plans=plans,
        tasks=tasks,
        queue=queue,
        submission=submission,
        local_workers=local_workers,
        pipelines=pipelines,
    )


def create_app(app_config: AppConfig = config, services: Optional[Services] = None) -> FastAPI:
    """
    Build the app. Tests pass ready-made services; otherwise they are
    built on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(app_config.LOG_LEVEL)
        app.state.services = services or build_services(app_config)

        local_workers = app.state.services.local_workers
        if local_workers is not None:
            local_workers.start()
            logger.info("Local worker pools started (DEV_MODE)")

        logger.info(
            "Praxis API started",
            environment=app_config.ENVIRONMENT,
            ai_provider=app_config.AI_PROVIDER,
            dev_mode=app_config.DEV_MODE,
        )
        try:
            yield
        finally:
            if local_workers is not None:
                await local_workers.stop()
            if app.state.services.pipelines is not None:
                await app.state.services.pipelines.aclose()
            logger.info("Praxis API stopped")

    app = FastAPI(
        title="Praxis API",
        description="Asynchronous AI plan generation",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.include_router(plans_router)
    app.include_router(tasks_router)
    app.include_router(users_router)

    @app.exception_handler(PraxisError)
    async def praxis_error_handler(request: Request, exc: PraxisError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}", code=exc.kind.value)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.to_dict()},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": {
                    "message": str(exc) if app_config.DEBUG else "An error occurred",
                    "code": "INTERNAL_ERROR",
                    "statusCode": 500,
                },
            },
        )

    @app.get("/health")
    async def health_check():
        """
        Always 200; queue details are best effort.

        `recent_failures` lists the latest pipeline errors this process
        logged (all of them in dev mode, where the pools run in-process).
        """
        queues: dict = {"mode": "local" if app_config.DEV_MODE else "redis"}
        if not app_config.DEV_MODE and app_config.redis_configured:
            from praxis.queue.connection import redis_health_check

            queues.update(redis_health_check())

        buffer = get_log_buffer()
        return {
            "status": "healthy",
            "version": __version__,
            "queues": queues,
            "logs": buffer.get_stats(),
            "recent_failures": buffer.failures(limit=10),
        }

    return app


app = create_app()
