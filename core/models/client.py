# =============================================================================
# core/models/client.py - Client & Contact Schemas
# =============================================================================
# Clients are the companies or individuals a freelancer works with. The same
# table also stores suppliers (is_supplier) so expenses can point at them.
# Contacts are people, linked to clients through client_contacts.
# =============================================================================

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class ClientType(str, Enum):
    """
    Legal form of a client.

    - particulier: private individual
    - entreprise: company
    """
    PARTICULIER = "particulier"
    ENTREPRISE = "entreprise"


class ClientCreate(BaseModel):
    """
    Schema for creating a client.

    Example:
        {
            "type": "entreprise",
            "nom": "Acme SAS",
            "email": "contact@acme.fr"
        }
    """

    type: ClientType = Field(
        default=ClientType.ENTREPRISE,
        description="Client legal form"
    )

    nom: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Client name"
    )

    email: str | None = Field(default=None, max_length=255)
    telephone: str | None = Field(default=None, max_length=50)
    adresse: str | None = None
    code_postal: str | None = Field(default=None, max_length=20)
    ville: str | None = Field(default=None, max_length=100)
    pays: str | None = Field(default=None, max_length=100)
    notes: str | None = None

    vat_enabled: bool = Field(
        default=True,
        description="Whether documents for this client carry VAT"
    )

    is_client: bool = True
    is_supplier: bool = False


class ClientUpdate(BaseModel):
    """Schema for a partial client update. Only provided fields are written."""

    type: ClientType | None = None
    nom: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    telephone: str | None = Field(default=None, max_length=50)
    adresse: str | None = None
    code_postal: str | None = Field(default=None, max_length=20)
    ville: str | None = Field(default=None, max_length=100)
    pays: str | None = Field(default=None, max_length=100)
    notes: str | None = None
    vat_enabled: bool | None = None
    is_client: bool | None = None
    is_supplier: bool | None = None


class ClientBulkUpdate(BaseModel):
    """
    Bulk update of clients.

    Only "type" may be changed in bulk; other keys in "updates" are ignored
    and an update without a valid type is rejected.

    Example:
        {"ids": ["..."], "updates": {"type": "particulier"}}
    """

    ids: list[UUID] = Field(..., min_length=1)
    updates: dict[str, str] = Field(..., description="Fields to change")


class ClientContactLink(BaseModel):
    """Link an existing contact to a client."""

    contact_id: UUID
    is_primary: bool = False
    role: str | None = Field(default=None, max_length=100)


class ContactCreate(BaseModel):
    """
    Schema for creating a contact.

    Example:
        {"civilite": "Mme", "prenom": "Claire", "nom": "Martin"}
    """

    civilite: str | None = Field(default=None, max_length=20)
    prenom: str | None = Field(default=None, max_length=100)
    nom: str = Field(..., min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    telephone: str | None = Field(default=None, max_length=50)
    notes: str | None = None


class ContactUpdate(BaseModel):
    """Schema for a partial contact update."""

    civilite: str | None = Field(default=None, max_length=20)
    prenom: str | None = Field(default=None, max_length=100)
    nom: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    telephone: str | None = Field(default=None, max_length=50)
    notes: str | None = None
