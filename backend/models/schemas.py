from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime


# ==================== TEMPLATES ====================
class TemplateBase(BaseModel):
    name: str
    subject: str
    html_content: str


class TemplateCreate(TemplateBase):
    pass


class TemplateUpdate(TemplateBase):
    pass


class TemplateResponse(TemplateBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TemplateDeleteResponse(BaseModel):
    message: str
    deletedTemplate: TemplateResponse


# ==================== SENDING ====================
class SendEmailRequest(BaseModel):
    template_id: int = Field(..., description="Template to send")
    to_email: str = Field(..., description="Recipient email address")


class SendEmailResponse(BaseModel):
    success: bool
    message: str
    emailId: int


# ==================== PROVIDER WEBHOOKS ====================
class OpenWebhookPayload(BaseModel):
    """Open event pushed by the provider. Unknown fields are ignored."""
    message_id: str = Field(..., alias="MessageID")
    recipient: Optional[str] = Field(None, alias="Recipient")
    # Kept as text: providers send more fractional digits than datetime holds
    received_at: Optional[str] = Field(None, alias="ReceivedAt")
    user_agent: Optional[str] = Field(None, alias="UserAgent")
    ip: Optional[str] = Field(None, alias="IP")
    event_id: Optional[str] = Field(None, alias="EventID")

    model_config = ConfigDict(populate_by_name=True)


class ClickWebhookPayload(OpenWebhookPayload):
    """Click event pushed by the provider."""
    original_link: Optional[str] = Field(None, alias="OriginalLink")


class WebhookResponse(BaseModel):
    success: bool = True
    duplicate: Optional[bool] = None


# ==================== ANALYTICS ====================
class OpenBreakdownRow(BaseModel):
    template_name: str
    recipient: str
    open_count: int
    first_opened_at: Optional[datetime] = None


class ClickBreakdownRow(BaseModel):
    template_name: str
    recipient: str
    click_count: int
    first_clicked_at: Optional[datetime] = None


class SentEmailLogRow(BaseModel):
    id: int
    template_name: Optional[str] = None
    recipient: str
    sent_at: Optional[datetime] = None
    status: str
    opens: int
    clicks: int
    last_activity_at: Optional[datetime] = None


class RecentEmail(BaseModel):
    template: str
    recipient: str
    sent_at: Optional[datetime] = None
    status: str


class StatsResponse(BaseModel):
    totalEmails: int
    openRate: float
    clickRate: float
    templates: int
    recentEmails: List[RecentEmail]


class ActivityItem(BaseModel):
    type: str
    description: str
    timestamp: Optional[datetime] = None
