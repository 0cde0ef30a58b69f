from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from autopilot.api.v1.middleware.error_handler import ErrorHandlerMiddleware
from autopilot.api.v1.middleware.logging_middleware import LoggingMiddleware
from autopilot.api.v1.router import v1_router
from autopilot.config import settings
from autopilot.dependencies import build_gateway, build_services
from autopilot.utils.logging import setup_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(debug=settings.debug)
    logger = get_logger("startup")
    logger.info("Starting mobile autopilot agent", version="0.1.0")

    services = getattr(app.state, "services", None)
    if services is None:
        services = build_services(settings, gateway=build_gateway(settings))
        app.state.services = services
    services.scanner.start()
    logger.info(
        "Skills registry initialized",
        skill_count=len(services.registry),
        installed_apps=len(services.scanner.snapshot),
    )

    yield

    logger.info("Shutting down")
    await services.scanner.stop()
    await services.store.shutdown()
    if services.bridge is not None:
        await services.bridge.aclose()


def create_app(services=None) -> FastAPI:
    """Build the application.

    *services* may be pre-built (tests inject fakes); otherwise they are
    assembled from settings when the app starts.
    """
    app = FastAPI(
        title="Mobile Autopilot Agent",
        description="Skill-routed multi-role GUI automation for mobile devices",
        version="0.1.0",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # Middleware is applied in reverse order -- outermost first.
    # 1. CORS (outermost -- handles preflight before anything else)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # 2. Error handler (catches exceptions from inner layers)
    app.add_middleware(ErrorHandlerMiddleware)
    # 3. Request/response logger (innermost -- logs timing around handler)
    app.add_middleware(LoggingMiddleware)

    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()
