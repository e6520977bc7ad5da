# =============================================================================
# core/models/review.py - Client Review Schemas
# =============================================================================
# A review request is opened for a sent invoice of a mission. Its public
# token lets each recipient leave one review through
# /public/reviews/{token}. Reviews arrive unpublished; the user decides
# which ones go public.
# =============================================================================

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Optional per-criterion ratings, in display order
RATING_CRITERIA = [
    ("rating_responsiveness", "Réactivité", "Rapidité de réponse et disponibilité"),
    ("rating_quality", "Qualité du travail", "Qualité des livrables et du résultat"),
    ("rating_requirements", "Respect du cahier des charges", "Compréhension et respect des besoins"),
    ("rating_communication", "Communication", "Clarté et qualité des échanges"),
    ("rating_recommendation", "Recommandation", "Probabilité de recommander ce prestataire"),
]


class ReviewRequestStatus(str, Enum):
    """
    - sent: just created
    - pending: reminded, still waiting
    - responded: at least one review came back
    """
    SENT = "sent"
    PENDING = "pending"
    RESPONDED = "responded"


class ReliabilityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Requests
# =============================================================================

class ReviewRecipientInput(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    contact_id: UUID | None = None


class ReviewRequestCreate(BaseModel):
    """
    Schema for opening a review request on an invoice.

    Example:
        {
            "invoice_id": "550e8400-...",
            "title": "Votre avis sur la refonte du site",
            "recipients": [{"email": "jean@acme.fr"}]
        }
    """

    invoice_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    context_text: str | None = None
    recipients: list[ReviewRecipientInput] = Field(default_factory=list)


# =============================================================================
# Reviews
# =============================================================================

class ReviewSubmit(BaseModel):
    """
    A review left through the public form.

    rating_overall defaults to the rounded mean of the criteria given.
    """

    reviewer_email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    reviewer_name: str | None = Field(default=None, max_length=150)
    reviewer_role: str | None = Field(default=None, max_length=150)
    reviewer_company: str | None = Field(default=None, max_length=150)
    confirm_collaboration: bool = False
    consent_display_identity: bool = False
    comment: str = Field(..., min_length=1)
    rating_overall: int | None = Field(default=None, ge=1, le=5)
    rating_responsiveness: int | None = Field(default=None, ge=1, le=5)
    rating_quality: int | None = Field(default=None, ge=1, le=5)
    rating_requirements: int | None = Field(default=None, ge=1, le=5)
    rating_communication: int | None = Field(default=None, ge=1, le=5)
    rating_recommendation: int | None = Field(default=None, ge=1, le=5)
