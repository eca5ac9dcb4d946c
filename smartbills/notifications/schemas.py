"""
Request/response schemas for notifications (camelCase on the wire)
"""
from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from smartbills.utils.timezone import to_utc_aware


class NotificationCreate(BaseModel):
    """Body of POST /notifications and POST /notifications/preview.

    ``sendAt`` and ``dueDate`` are kept as raw values so the store can report
    an unparsable timestamp as a validation error of its own.
    """
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    provider_name: Optional[str] = Field(default=None, alias="providerName")
    amount: Optional[float] = None
    bill_id: Optional[str] = Field(default=None, alias="billId")
    due_date: Optional[Union[datetime, str]] = Field(default=None, alias="dueDate")
    send_at: Optional[Union[datetime, str]] = Field(default=None, alias="sendAt")
    channels: Optional[List[str]] = None

    @field_validator("bill_id", mode="before")
    @classmethod
    def stringify_bill_id(cls, v):
        if v is None:
            return v
        return str(v)


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    recipient_email: str = Field(alias="recipientEmail")
    title: str
    message: Optional[str] = None
    provider_name: Optional[str] = Field(default=None, alias="providerName")
    amount: Optional[float] = None
    bill_id: Optional[str] = Field(default=None, alias="billId")
    send_at: datetime = Field(alias="sendAt")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    channels: List[str]
    status: str
    attempts: int
    last_error: Optional[str] = Field(default=None, alias="lastError")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("send_at", "due_date", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v):
        return to_utc_aware(v)


class NotificationCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    inserted_id: str = Field(alias="insertedId")
    scheduled_for: datetime = Field(alias="scheduledFor")


class CancelResult(BaseModel):
    success: bool = True


class PreviewResult(BaseModel):
    success: bool
    id: Optional[str] = None


class AttemptLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    notification_id: str = Field(alias="notificationId")
    channel: str
    outcome: str
    occurred_at: datetime = Field(alias="occurredAt")
    detail: Optional[str] = None

    @field_validator("occurred_at")
    @classmethod
    def ensure_utc(cls, v):
        return to_utc_aware(v)
