from .templates import router as templates_router
from .email import router as email_router
from .webhooks import router as webhooks_router
from .analytics import router as analytics_router

__all__ = [
    'templates_router',
    'email_router',
    'webhooks_router',
    'analytics_router',
]
