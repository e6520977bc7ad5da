# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuthUser(BaseModel):
    """
    Authenticated user extracted from Supabase JWT.

    Its id is the tenant key: every owned row carries it in user_id
    (owner_user_id for proposals).
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None


class UserResponse(BaseModel):
    """
    Current user with the company settings used for documents.

    Company fields stay None until the user has filled in their company.
    """

    id: UUID
    email: Optional[str] = None
    company_name: Optional[str] = None
    default_currency: Optional[str] = None
    default_tax_rate: Optional[float] = None
