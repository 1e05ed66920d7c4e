from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from askdesk.config import settings
from askdesk.exceptions import DomainError, InternalError
from askdesk.logging_config import configure_logging
from askdesk.metrics import metrics_endpoint
from askdesk.middleware.logging_middleware import RequestLoggingMiddleware
from askdesk.routers import answers, auth, questions, reputation, teams, votes
from askdesk.schemas.common import ErrorResponse

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure structured logging before anything else
    configure_logging()
    yield


app = FastAPI(title=f"{settings.app_name} API", version="0.1.0", lifespan=lifespan)

# Register request logging middleware (runs on every request)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    body = ErrorResponse(error=exc.kind, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error("storage_error", error=str(exc), exc_info=exc)
    body = ErrorResponse(error=InternalError.kind, detail="Internal error")
    return JSONResponse(status_code=InternalError.status_code, content=body.model_dump())


# Register all API routers
app.include_router(auth.router)
app.include_router(teams.router)
app.include_router(questions.router)
app.include_router(answers.router)
app.include_router(votes.router)
app.include_router(reputation.router)

# Prometheus metrics endpoint
app.get("/metrics")(metrics_endpoint)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
