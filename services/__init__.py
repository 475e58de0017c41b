from .client_store import client_store
from .appointment_store import appointment_store
from .financial_store import financial_store
from .catalog_service import service_catalog
from .product_store import product_store
from .settings_store import settings_store
from .whatsapp_service import whatsapp_service
from .automation_service import automation_service
from .closing_service import closing_workflow
from .setup_service import setup_service

__all__ = [
    "client_store",
    "appointment_store",
    "financial_store",
    "service_catalog",
    "product_store",
    "settings_store",
    "whatsapp_service",
    "automation_service",
    "closing_workflow",
    "setup_service"
]
