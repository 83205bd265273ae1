"""Contact and tag schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ContactCreate(BaseModel):
    """Schema for creating a contact by hand."""

    email: EmailStr
    name: str | None = None
    tags: list[str] = []
    notes: str | None = None


class TagsUpdate(BaseModel):
    """Full replacement of a contact's tags, optionally with notes."""

    tags: list[str]
    notes: str | None = None


class ContactResponse(BaseModel):
    """Schema for contact response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str | None = None
    first_seen: date
    last_seen: date
    meeting_count: int
    tags: list[str] = []
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class ContactEnvelope(BaseModel):
    success: bool = True
    data: ContactResponse


class ContactListResponse(BaseModel):
    success: bool = True
    data: list[ContactResponse]
    count: int


class NewContactsResponse(ContactListResponse):
    days: int


class TaggedContactsResponse(ContactListResponse):
    tag: str


class TagCount(BaseModel):
    tag: str
    count: int = Field(ge=0)


class TagListResponse(BaseModel):
    success: bool = True
    data: list[TagCount]
