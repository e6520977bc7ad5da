# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for request validation:
# - common.py: tags, badges, bulk ids, reorder lists
# - client.py: clients and contacts
# - deal.py: deals and predefined badges
# - mission.py: missions and the status transition table
# - document.py: quotes, invoices and line items
# - proposal.py: proposals, sections and variables
# - task.py: tasks and task templates
# - expense.py: expenses and categories
# - payment.py: client payments, advances and refunds
# - trash.py: trash listing
# - verifolio.py: public portfolio profile, activities, reviews
# - review.py: review requests and the public review form
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Shared
# -----------------------------------------------------------------------------
from .common import BadgeCreate, BulkIdsRequest, ReorderRequest, TagCreate

# -----------------------------------------------------------------------------
# CRM
# -----------------------------------------------------------------------------
from .client import (
    ClientBulkUpdate,
    ClientContactLink,
    ClientCreate,
    ClientType,
    ClientUpdate,
    ContactCreate,
    ContactUpdate,
)
from .deal import (
    DealContactsReplace,
    DealCreate,
    DealStatus,
    DealStatusUpdate,
    DealUpdate,
    PredefinedBadge,
)
from .mission import (
    MISSION_TRANSITIONS,
    MissionCreate,
    MissionInvoiceLink,
    MissionStatus,
    MissionStatusUpdate,
    MissionSupplierCreate,
    MissionUpdate,
    allowed_transitions,
)

# -----------------------------------------------------------------------------
# Documents
# -----------------------------------------------------------------------------
from .document import (
    BulkStatusUpdate,
    InvoiceCreate,
    InvoiceStatus,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    LineItemInput,
    QuoteCreate,
    QuoteStatus,
    QuoteStatusUpdate,
    QuoteUpdate,
)
from .proposal import (
    ProposalCreate,
    ProposalSectionUpdate,
    ProposalStatus,
    ProposalStatusUpdate,
    ProposalUpdate,
    ProposalVariableInput,
    ProposalVariablesReplace,
)

# -----------------------------------------------------------------------------
# Work & Money
# -----------------------------------------------------------------------------
from .task import (
    ApplyTemplateRequest,
    TaskCreate,
    TaskEntityType,
    TaskOwnerScope,
    TaskStatus,
    TaskUpdate,
    TemplateCreate,
    TemplateItemCreate,
    TemplateItemUpdate,
    TemplateTargetType,
    TemplateUpdate,
)
from .expense import (
    CategoryCreate,
    CategoryUpdate,
    ExpenseCreate,
    ExpenseUpdate,
    PaymentMethod,
)
from .payment import (
    InvoicePaymentStatus,
    PaymentAssociate,
    PaymentCreate,
    PaymentMeans,
    PaymentType,
)

# -----------------------------------------------------------------------------
# Trash & Portfolio
# -----------------------------------------------------------------------------
from .trash import TRASH_TABLES, TrashedItem, TrashEntityType
from .verifolio import (
    ActivityCreate,
    ActivityUpdate,
    ProfileCreate,
    ProfileUpdate,
    PublishedToggle,
    ReviewSelectionCreate,
    ReviewSelectionUpdate,
)
from .review import (
    ReliabilityLevel,
    ReviewRecipientInput,
    ReviewRequestCreate,
    ReviewRequestStatus,
    ReviewSubmit,
)

# -----------------------------------------------------------------------------
# __all__ - Explicit public API
# -----------------------------------------------------------------------------
__all__ = [
    # Shared
    "BadgeCreate",
    "BulkIdsRequest",
    "ReorderRequest",
    "TagCreate",
    # Clients & contacts
    "ClientBulkUpdate",
    "ClientContactLink",
    "ClientCreate",
    "ClientType",
    "ClientUpdate",
    "ContactCreate",
    "ContactUpdate",
    # Deals
    "DealContactsReplace",
    "DealCreate",
    "DealStatus",
    "DealStatusUpdate",
    "DealUpdate",
    "PredefinedBadge",
    # Missions
    "MISSION_TRANSITIONS",
    "MissionCreate",
    "MissionInvoiceLink",
    "MissionStatus",
    "MissionStatusUpdate",
    "MissionSupplierCreate",
    "MissionUpdate",
    "allowed_transitions",
    # Quotes & invoices
    "BulkStatusUpdate",
    "InvoiceCreate",
    "InvoiceStatus",
    "InvoiceStatusUpdate",
    "InvoiceUpdate",
    "LineItemInput",
    "QuoteCreate",
    "QuoteStatus",
    "QuoteStatusUpdate",
    "QuoteUpdate",
    # Proposals
    "ProposalCreate",
    "ProposalSectionUpdate",
    "ProposalStatus",
    "ProposalStatusUpdate",
    "ProposalUpdate",
    "ProposalVariableInput",
    "ProposalVariablesReplace",
    # Tasks
    "ApplyTemplateRequest",
    "TaskCreate",
    "TaskEntityType",
    "TaskOwnerScope",
    "TaskStatus",
    "TaskUpdate",
    "TemplateCreate",
    "TemplateItemCreate",
    "TemplateItemUpdate",
    "TemplateTargetType",
    "TemplateUpdate",
    # Expenses
    "CategoryCreate",
    "CategoryUpdate",
    "ExpenseCreate",
    "ExpenseUpdate",
    "PaymentMethod",
    # Payments
    "InvoicePaymentStatus",
    "PaymentAssociate",
    "PaymentCreate",
    "PaymentMeans",
    "PaymentType",
    # Trash
    "TRASH_TABLES",
    "TrashedItem",
    "TrashEntityType",
    # Verifolio
    "ActivityCreate",
    "ActivityUpdate",
    "ProfileCreate",
    "ProfileUpdate",
    "PublishedToggle",
    "ReviewSelectionCreate",
    "ReviewSelectionUpdate",
    # Reviews
    "ReliabilityLevel",
    "ReviewRecipientInput",
    "ReviewRequestCreate",
    "ReviewRequestStatus",
    "ReviewSubmit",
]
