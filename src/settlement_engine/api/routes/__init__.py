"""API routes."""

from settlement_engine.api.routes.health import router as health_router
from settlement_engine.api.routes.invoices import router as invoices_router
from settlement_engine.api.routes.payroll import router as payroll_router
from settlement_engine.api.routes.projects import router as projects_router
from settlement_engine.api.routes.time_entries import router as time_entries_router

__all__ = [
    "health_router",
    "invoices_router",
    "payroll_router",
    "projects_router",
    "time_entries_router",
]
