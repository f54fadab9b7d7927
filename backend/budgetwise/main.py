"""
FastAPI entrypoint for Budgetwise backend application.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from budgetwise.core.config import settings
from budgetwise.core.exceptions import (
    AuthError,
    BudgetwiseError,
    LimitExceededError,
    NotFoundError,
    PersistenceError,
    QuotaExceededError,
)
from budgetwise.core.utils import format_error
from budgetwise.api.dependencies import create_backend
from budgetwise.api.router import api_router
from budgetwise.services.session_service import SessionRegistry

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Tear down live sessions and the backend client on shutdown."""
    yield
    app.state.sessions.close_all()
    await app.state.backend.close()


app = FastAPI(
    title="Budgetwise API",
    description="Backend API for personal budgets and expenses",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.backend = create_backend()
app.state.sessions = SessionRegistry()

# Include API routes
app.include_router(api_router, prefix="/api")

ERROR_STATUS = [
    (NotFoundError, 404),
    (LimitExceededError, 400),
    (QuotaExceededError, 409),
    (AuthError, 401),
    (PersistenceError, 502),
]


@app.exception_handler(BudgetwiseError)
async def budgetwise_error_handler(request: Request, exc: BudgetwiseError):
    """Translate domain errors into JSON error responses."""
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
    details = None
    if isinstance(exc, LimitExceededError):
        details = {"remaining": str(exc.remaining)}
    elif isinstance(exc, QuotaExceededError):
        details = {"limit": exc.limit}
    elif isinstance(exc, PersistenceError) and exc.cause is not None:
        details = {"cause": str(exc.cause)}
    return JSONResponse(status_code=status_code, content=format_error(exc.message, details))


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Budgetwise API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
