from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import get_settings
from .core.logging import configure_logging
from .api.routes_agents import router as agents_router
from .api.routes_chat import router as chat_router
from .api.routes_domains import router as domains_router
from .api.routes_jobs import router as jobs_router
from .services.agents.manager import agent_manager

configure_logging()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await agent_manager.initialize()
    try:
        yield
    finally:
        await agent_manager.shutdown()


app = FastAPI(title="Competitor Intelligence API", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Body and query validation errors answer 400
    errors = exc.errors()
    message = errors[0]["msg"].removeprefix("Value error, ") if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"detail": message, "errors": jsonable_encoder(errors)},
    )


# CORS:
# - In prod, FRONTEND_ORIGIN is required and we never fall back to "*".
# - In non-prod, wide-open CORS is only enabled if CORS_ALLOW_ALL_ORIGINS=True.
if settings.ENV.lower() == "prod":
    if not settings.FRONTEND_ORIGIN:
        raise RuntimeError(
            "FRONTEND_ORIGIN must be set in production, refusing to start with wide-open CORS."
        )
    origins = [
        o.strip()
        for o in settings.FRONTEND_ORIGIN.split(",")
        if o.strip()
    ]
else:
    if settings.CORS_ALLOW_ALL_ORIGINS:
        origins = ["*"]
    elif settings.FRONTEND_ORIGIN:
        origins = [
            o.strip()
            for o in settings.FRONTEND_ORIGIN.split(",")
            if o.strip()
        ]
    else:
        origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(agents_router, prefix=settings.API_PREFIX)
app.include_router(domains_router, prefix=settings.API_PREFIX)
app.include_router(jobs_router, prefix=settings.API_PREFIX)
app.include_router(chat_router, prefix=settings.API_PREFIX)
