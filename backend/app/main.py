from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from backend.app.core.config import settings
from backend.app.core.logging import setup_logging
from backend.app.services.errors import DrawError
from backend.app.web.draws import draw_error_handler, router as draws_router
from backend.app.web.routes import limiter, router as admin_router


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.project_name)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(DrawError, draw_error_handler)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(admin_router)
    app.include_router(draws_router)
    return app


app = create_app()
