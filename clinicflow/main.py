"""
ClinicFlow - Workflow automation service for clinic operations.

Features:
- Rule-driven reactions to clinic events (appointments, vitals, files, ...)
- Durable delayed actions
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from .config import Settings, get_settings
from .logging import setup_logging, get_logger
from .adapters.base import BlobStore
from .api.router import router
from .api.rules_router import router as rules_router
from .actions.alerts import RecentAlerts
from .middleware import CorrelationIdMiddleware, MetricsMiddleware, ValidationMiddleware
from .metrics import Metrics
from .health import HealthChecker
from .rules.samples import sample_rules
from .services.engine_factory import build_engine

SERVICE_NAME = "clinicflow"
VERSION = "0.1.0"

logger = get_logger()


def create_app(settings: Settings | None = None, blob: BlobStore | None = None) -> FastAPI:
    """
    Build the application and the engine it owns.

    Args:
        settings: Configuration (defaults to get_settings())
        blob: Storage backend override (defaults to the configured backend)
    """
    settings = settings or get_settings()
    setup_logging(json_output=settings.LOG_JSON, service_name=SERVICE_NAME)

    metrics = Metrics(service_name=SERVICE_NAME, version=VERSION)
    handle = build_engine(settings=settings, blob=blob, metrics=metrics)
    recent_alerts = RecentAlerts()
    handle.alerts.subscribe(recent_alerts)
    health_checker = HealthChecker(service_name=SERVICE_NAME, version=VERSION, store=handle.blob)

    app = FastAPI(
        title="ClinicFlow",
        version=VERSION,
        description="Workflow automation engine for clinic events",
    )
    app.state.settings = settings
    app.state.handle = handle
    app.state.recent_alerts = recent_alerts
    app.state.metrics = metrics

    # Last added runs first: correlation ID, then metrics, then validation
    app.add_middleware(ValidationMiddleware, max_size=settings.MAX_EVENT_SIZE)
    app.add_middleware(MetricsMiddleware, metrics=metrics)
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(router)
    app.include_router(rules_router)

    app.mount("/metrics", make_asgi_app(registry=metrics.registry))

    @app.get("/health")
    async def health():
        """
        Liveness probe - basic health check.

        Returns 200 if service is running.
        """
        logger.debug("health_check_liveness")
        return health_checker.liveness()

    @app.get("/health/ready")
    async def health_ready():
        """
        Readiness probe - comprehensive health check.

        Returns:
            200: Service is ready to handle traffic
            503: Service is not ready
        """
        logger.debug("health_check_readiness")
        metrics.update_system_metrics()
        result = await health_checker.readiness()
        status_code = 200 if result["status"] == "ready" else 503
        return JSONResponse(content=result, status_code=status_code)

    @app.on_event("startup")
    async def startup_event():
        """Load persisted state, seed sample rules and start the delayed-action loop."""
        logger.info(
            "service_starting",
            version=VERSION,
            env=settings.ENV,
            store_backend=settings.STORE_BACKEND,
        )
        await handle.engine.store.load()
        if settings.SEED_SAMPLE_RULES:
            seeded = await handle.engine.seed_rules(sample_rules())
            logger.info("rules.seeded", count=seeded)
        handle.queue.start(handle.engine.executor.execute)

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop the delayed-action loop, release the store and mark the service down."""
        logger.info("service_stopping")
        await handle.queue.stop()
        await handle.blob.close()
        metrics.app_up.labels(service=SERVICE_NAME, version=VERSION).set(0)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clinicflow.main:app",
        host="0.0.0.0",
        port=get_settings().SERVICE_PORT,
        reload=True,
    )
