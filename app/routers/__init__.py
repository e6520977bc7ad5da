# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - clients.py / contacts.py: CRM
# - deals.py / missions.py: sales pipeline and delivery
# - documents.py: quotes and invoices (one router per document type)
# - proposals.py: proposals built from templates
# - tasks.py / task_templates.py: to-dos and reusable checklists
# - expenses.py: expenses, categories, stats and CSV export
# - payments.py: client payments and settlement summaries
# - trash.py: soft-deleted rows
# - verifolio.py: public portfolio management
# - reviews.py: review requests and collected reviews
# - public.py: unauthenticated share links
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import (
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

__all__ = [
    "clients",
    "contacts",
    "deals",
    "documents",
    "expenses",
    "health",
    "missions",
    "payments",
    "proposals",
    "public",
    "reviews",
    "task_templates",
    "tasks",
    "trash",
    "verifolio",
]
