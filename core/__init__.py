# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains framework-agnostic business logic:
# - models/: Pydantic schemas for request validation
# - services/: One service class per feature, sitting directly over Supabase
#
# Code in this package should NOT import from FastAPI or Celery.
# Services raise app.exceptions errors; routers only translate HTTP.
# =============================================================================
