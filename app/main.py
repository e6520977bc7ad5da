# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the Verifolio API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.auth import routes as auth_routes
from app.config import settings
from app.exceptions import (
    VerifolioException,
    http_exception_handler,
    validation_exception_handler,
    verifolio_exception_handler,
)
from app.routers import (
    clients,
    contacts,
    deals,
    documents,
    expenses,
    health,
    missions,
    payments,
    proposals,
    public,
    reviews,
    task_templates,
    tasks,
    trash,
    verifolio,
)
from lib.supabase_client import SupabaseClientError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    The Supabase client is created lazily on first use, so startup only
    reports the configuration.
    """
    logger.info(f"Starting Verifolio API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    logger.info(f"Trash retention: {settings.TRASH_RETENTION_DAYS} days")

    yield

    logger.info("Shutting down Verifolio API")


# Create FastAPI application
app = FastAPI(
    title="Verifolio API",
    description="""
## Business backend for freelancers

Every resource belongs to the authenticated user (Supabase JWT bearer token).

### Resources

| Area | Routes |
|------|--------|
| **CRM** | `/clients`, `/contacts` |
| **Pipeline** | `/deals`, `/missions` |
| **Documents** | `/quotes`, `/invoices`, `/proposals` |
| **Organisation** | `/tasks`, `/task-templates`, `/expenses`, `/trash` |
| **Portfolio** | `/verifolio`, `/public/verifolio/{slug}` |

### Conventions

- Successful responses wrap their payload in `{"data": ...}`
- Errors are `{"error": "<message>", "code": "<CODE>"}` with the HTTP status
- Deleting moves rows to the trash (`deleted_at`); they are purged after 30 days
""",
    version=health.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Token verification"},
        {"name": "Health", "description": "API health and readiness checks"},
        {"name": "Clients", "description": "Clients, suppliers and their contacts"},
        {"name": "Contacts", "description": "People linked to clients, deals and missions"},
        {"name": "Deals", "description": "Sales pipeline"},
        {"name": "Missions", "description": "Won deals being delivered and invoiced"},
        {"name": "Quotes", "description": "Quotes with numbered line items"},
        {"name": "Invoices", "description": "Invoices with numbered line items"},
        {"name": "Proposals", "description": "Commercial proposals built from templates"},
        {"name": "Tasks", "description": "Manual and system tasks"},
        {"name": "Task Templates", "description": "Reusable task checklists"},
        {"name": "Expenses", "description": "Expenses, categories, stats and export"},
        {"name": "Trash", "description": "Restore or purge deleted rows"},
        {"name": "Verifolio", "description": "Public portfolio management"},
        {"name": "Public", "description": "Unauthenticated share links"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(VerifolioException, verifolio_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)


@app.exception_handler(APIError)
@app.exception_handler(SupabaseClientError)
async def handle_database_exception(request: Request, exc: Exception):
    """Database failures that no service translated."""
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Database error",
            "code": "DATABASE_ERROR",
        }
    )


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(auth_routes.router, prefix=f"{API_PREFIX}/auth", tags=["Auth"])
app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])

# CRM
app.include_router(clients.router, prefix=f"{API_PREFIX}/clients", tags=["Clients"])
app.include_router(contacts.router, prefix=f"{API_PREFIX}/contacts", tags=["Contacts"])

# Pipeline
app.include_router(deals.router, prefix=f"{API_PREFIX}/deals", tags=["Deals"])
app.include_router(missions.router, prefix=f"{API_PREFIX}/missions", tags=["Missions"])

# Documents
app.include_router(documents.quotes_router, prefix=f"{API_PREFIX}/quotes", tags=["Quotes"])
app.include_router(documents.invoices_router, prefix=f"{API_PREFIX}/invoices", tags=["Invoices"])
app.include_router(proposals.router, prefix=f"{API_PREFIX}/proposals", tags=["Proposals"])

# Organisation
app.include_router(tasks.router, prefix=f"{API_PREFIX}/tasks", tags=["Tasks"])
app.include_router(task_templates.router, prefix=f"{API_PREFIX}/task-templates", tags=["Task Templates"])
app.include_router(expenses.router, prefix=f"{API_PREFIX}/expenses", tags=["Expenses"])
app.include_router(payments.router, prefix=f"{API_PREFIX}/payments", tags=["Payments"])
app.include_router(trash.router, prefix=f"{API_PREFIX}/trash", tags=["Trash"])

# Portfolio
app.include_router(verifolio.router, prefix=f"{API_PREFIX}/verifolio", tags=["Verifolio"])
app.include_router(reviews.requests_router, prefix=f"{API_PREFIX}/review-requests", tags=["Review Requests"])
app.include_router(reviews.router, prefix=f"{API_PREFIX}/reviews", tags=["Reviews"])
app.include_router(public.router, prefix=f"{API_PREFIX}/public", tags=["Public"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "Verifolio API",
        "version": health.VERSION,
        "docs": "/docs",
        "health": f"{API_PREFIX}/health",
    }
