from .schemas import (
    TemplateCreate, TemplateUpdate, TemplateResponse, TemplateDeleteResponse,
    SendEmailRequest, SendEmailResponse,
    OpenWebhookPayload, ClickWebhookPayload, WebhookResponse,
    OpenBreakdownRow, ClickBreakdownRow, SentEmailLogRow,
    RecentEmail, StatsResponse, ActivityItem
)

__all__ = [
    'TemplateCreate', 'TemplateUpdate', 'TemplateResponse', 'TemplateDeleteResponse',
    'SendEmailRequest', 'SendEmailResponse',
    'OpenWebhookPayload', 'ClickWebhookPayload', 'WebhookResponse',
    'OpenBreakdownRow', 'ClickBreakdownRow', 'SentEmailLogRow',
    'RecentEmail', 'StatsResponse', 'ActivityItem'
]
