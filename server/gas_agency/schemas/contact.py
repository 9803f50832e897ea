"""Support ticket schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import Pagination


class ContactStatus(str, Enum):
    NEW = "NEW"
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"
    ARCHIVED = "ARCHIVED"


class CreateContactRequest(BaseModel):
    """A customer's support request."""

    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    category: Optional[str] = Field(None, max_length=50)
    priority: Optional[str] = Field(None, pattern=r"^(low|normal|high|urgent)$")
    related_booking_id: Optional[str] = Field(None, max_length=64)
    preferred_contact: Optional[str] = Field(None, pattern=r"^(email|phone)$")
    phone: Optional[str] = Field(None, max_length=20)


class UpdateContactRequest(BaseModel):
    status: Optional[ContactStatus] = None
    category: Optional[str] = Field(None, max_length=50)
    priority: Optional[str] = Field(None, pattern=r"^(low|normal|high|urgent)$")


class ReplyRequest(BaseModel):
    body: str = Field(..., min_length=1, max_length=5000)
    status: Optional[ContactStatus] = Field(None, description="Status to set; defaults to OPEN")


class ContactReply(BaseModel):
    id: str
    author_id: Optional[str] = None
    body: str
    is_admin: bool
    created_at: datetime


class ContactMessage(BaseModel):
    id: str
    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    subject: str
    message: str
    category: Optional[str] = None
    priority: Optional[str] = None
    related_booking_id: Optional[str] = None
    preferred_contact: Optional[str] = None
    phone: Optional[str] = None
    status: ContactStatus
    last_replied_at: Optional[datetime] = None
    created_at: datetime
    replies: List[ContactReply] = Field(default_factory=list)


class ContactList(BaseModel):
    data: List[ContactMessage]
    pagination: Pagination


class ContactStats(BaseModel):
    total: int
    new: int
    open: int
    resolved: int
    archived: int
