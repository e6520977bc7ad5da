# =============================================================================
# app/routers/public.py - Unauthenticated Endpoints
# =============================================================================
# Share links: a proposal through its public_token, a review request form
# through its public_token and a published Verifolio page through its
# slug. No Authorization header is read here.
# =============================================================================

from fastapi import APIRouter, status

from core.models.review import ReviewSubmit
from core.services.proposal_service import ProposalService
from core.services.review_service import ReviewService
from core.services.verifolio_service import VerifolioService

router = APIRouter()


@router.get("/proposals/{token}")
async def get_public_proposal(token: str):
    """
    Proposal behind a share link, rendered.

    Returns 404 for unknown tokens and trashed proposals.
    """
    proposal = ProposalService.get_by_token(token)
    return {
        "data": {
            **ProposalService.render(proposal),
            "client": proposal.get("client"),
            "company": proposal.get("company"),
            "deal": proposal.get("deal"),
        }
    }


@router.get("/reviews/{token}")
async def get_public_review_request(token: str, email: str | None = None):
    """
    What the review form shows: request title, client, invoice number and
    rating criteria. With ?email=, already_responded says whether that
    address already left a review.

    Unknown tokens answer 404; a cancelled or deleted invoice answers 400.
    """
    return {"data": ReviewService.get_public_request(token, email)}


@router.post("/reviews/{token}/submit", status_code=status.HTTP_201_CREATED)
async def submit_public_review(token: str, payload: ReviewSubmit):
    """Leave a review. One review per email and request."""
    review = ReviewService.submit_review(token, payload)
    return {
        "success": True,
        "message": "Merci pour votre retour ! Votre avis a été transmis au prestataire.",
        "data": {
            "id": review["id"],
            "reliability_score": review.get("reliability_score"),
            "reliability_level": review.get("reliability_level"),
        },
    }


@router.get("/verifolio/{slug}")
async def get_public_verifolio(slug: str):
    """Published portfolio page. Unpublished or unknown slugs answer 404."""
    return {"data": VerifolioService.get_public_profile(slug)}
