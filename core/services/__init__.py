# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .activity_service import ActivityService
from .client_service import ClientService, ContactService
from .deal_service import DealService
from .document_service import InvoiceService, QuoteService
from .expense_service import ExpenseCategoryService, ExpenseService
from .label_service import LabelService
from .mission_service import MissionService
from .payment_service import PaymentService
from .proposal_service import ProposalService
from .review_service import ReviewService
from .task_service import TaskService, TaskTemplateService
from .trash_service import TrashService
from .verifolio_service import VerifolioService

__all__ = [
    "ActivityService",
    "ClientService",
    "ContactService",
    "DealService",
    "QuoteService",
    "InvoiceService",
    "ExpenseService",
    "ExpenseCategoryService",
    "LabelService",
    "MissionService",
    "PaymentService",
    "ProposalService",
    "ReviewService",
    "TaskService",
    "TaskTemplateService",
    "TrashService",
    "VerifolioService",
]
