# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.insights_config import CORS_ORIGINS
from config.logging_config import configure_logging
from middleware.request_logging import RequestLoggingMiddleware
from routers.insights_routes import router as insights_router


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Portfolio Insights")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(insights_router, prefix="/api/insights")

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    # db startup
    from database import Base, engine
    import models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)

    return app


app = create_app()
