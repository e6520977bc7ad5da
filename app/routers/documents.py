# =============================================================================
# app/routers/documents.py - Quote & Invoice Endpoints
# =============================================================================
# Quotes and invoices expose the same route set, built once by
# build_document_router() for each service:
#   POST/GET  ""               create, list
#   GET       /next-number     preview of the next number
#   DELETE    /bulk            trash several documents
#   PATCH     /bulk            set one status on several documents
#   GET/PATCH/DELETE /{id}     read (with items), update, trash
#   PATCH     /{id}/status     status change (invoice rules apply)
# All endpoints require authentication.
# =============================================================================

from enum import Enum
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from pydantic import BaseModel

from app.dependencies import CurrentUser
from core.models.common import BulkIdsRequest
from core.models.document import (
    BulkStatusUpdate,
    InvoiceCreate,
    InvoiceStatus,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    QuoteCreate,
    QuoteStatus,
    QuoteStatusUpdate,
    QuoteUpdate,
)
from core.services.document_service import DocumentService, InvoiceService, QuoteService


def build_document_router(
    service: type[DocumentService],
    create_model: type[BaseModel],
    update_model: type[BaseModel],
    status_model: type[BaseModel],
    status_enum: type[Enum],
) -> APIRouter:
    """Router with the shared quote/invoice endpoints bound to one service."""
    router = APIRouter()
    DocumentId = Annotated[UUID, Path(description=f"{service.entity.capitalize()} UUID")]

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_document(payload: create_model, user: CurrentUser):
        """Create a draft with a generated number and computed totals."""
        return {"data": service.create(user.id, payload)}

    @router.get("")
    async def list_documents(
        user: CurrentUser,
        doc_status: Annotated[status_enum | None, Query(alias="status")] = None,
        client_id: Annotated[UUID | None, Query()] = None,
        deal_id: Annotated[UUID | None, Query()] = None,
    ):
        return {
            "data": service.list_documents(
                user.id,
                status=doc_status.value if doc_status else None,
                client_id=client_id,
                deal_id=deal_id,
            )
        }

    @router.get("/next-number")
    async def preview_next_number(user: CurrentUser):
        """Number the next document would get. Nothing is reserved."""
        return {"data": {"numero": service.preview_next_number(user.id)}}

    @router.delete("/bulk")
    async def bulk_delete_documents(payload: BulkIdsRequest, user: CurrentUser):
        deleted = service.bulk_delete(user.id, payload.ids)
        return {"success": True, "deleted": deleted}

    @router.patch("/bulk")
    async def bulk_update_documents(payload: BulkStatusUpdate, user: CurrentUser):
        updated = service.bulk_update_status(user.id, payload.ids, payload.updates)
        return {"success": True, "updated": updated}

    @router.get("/{document_id}")
    async def get_document(document_id: DocumentId, user: CurrentUser):
        return {"data": service.get(user.id, document_id)}

    @router.patch("/{document_id}")
    async def update_document(document_id: DocumentId, payload: update_model, user: CurrentUser):
        """Update header fields; items, when sent, replace every line."""
        return {"data": service.update(user.id, document_id, payload)}

    @router.delete("/{document_id}")
    async def delete_document(document_id: DocumentId, user: CurrentUser):
        service.delete(user.id, document_id)
        return {"success": True}

    @router.patch("/{document_id}/status")
    async def set_document_status(document_id: DocumentId, payload: status_model, user: CurrentUser):
        return {"data": service.set_status(user.id, document_id, payload.status)}

    return router


quotes_router = build_document_router(
    QuoteService, QuoteCreate, QuoteUpdate, QuoteStatusUpdate, QuoteStatus
)
invoices_router = build_document_router(
    InvoiceService, InvoiceCreate, InvoiceUpdate, InvoiceStatusUpdate, InvoiceStatus
)
