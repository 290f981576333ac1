from ordering.api.errors import register_error_handlers
from ordering.api.routes import (
    admin_router,
    inventory_router,
    maintenance_router,
    order_router,
    webhook_router,
)

__all__ = [
    "admin_router",
    "inventory_router",
    "maintenance_router",
    "order_router",
    "register_error_handlers",
    "webhook_router",
]
