"""Contact API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from crmsync.api.deps import get_contact_store, read_or_default
from crmsync.schemas.contact import (
    ContactCreate,
    ContactEnvelope,
    ContactListResponse,
    ContactResponse,
    NewContactsResponse,
    TaggedContactsResponse,
    TagsUpdate,
)
from crmsync.services.contact_store import ContactStore

router = APIRouter()

# About ten years; keeps the cutoff date representable
MAX_NEW_CONTACT_DAYS = 3650


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    store: Annotated[ContactStore, Depends(get_contact_store)],
) -> ContactListResponse:
    """List all contacts, newest first."""
    contacts = await read_or_default(store.list_all, [], "list contacts")
    return ContactListResponse(
        data=[ContactResponse.model_validate(c) for c in contacts],
        count=len(contacts),
    )


@router.get("/new", response_model=NewContactsResponse)
async def list_new_contacts(
    store: Annotated[ContactStore, Depends(get_contact_store)],
    days: int = Query(7, ge=1, le=MAX_NEW_CONTACT_DAYS),
) -> NewContactsResponse:
    """List contacts created within the last ``days`` days."""
    contacts = await read_or_default(lambda: store.list_since(days), [], "list new contacts")
    return NewContactsResponse(
        data=[ContactResponse.model_validate(c) for c in contacts],
        count=len(contacts),
        days=days,
    )


@router.get("/tag/{tag}", response_model=TaggedContactsResponse)
async def list_contacts_by_tag(
    tag: str,
    store: Annotated[ContactStore, Depends(get_contact_store)],
) -> TaggedContactsResponse:
    """List contacts carrying ``tag``."""
    contacts = await read_or_default(lambda: store.list_by_tag(tag), [], "list contacts by tag")
    return TaggedContactsResponse(
        data=[ContactResponse.model_validate(c) for c in contacts],
        count=len(contacts),
        tag=tag,
    )


@router.post("", response_model=ContactEnvelope)
async def create_contact(
    payload: ContactCreate,
    store: Annotated[ContactStore, Depends(get_contact_store)],
) -> ContactEnvelope:
    """Create a contact by hand."""
    contact = await store.create_contact(
        payload.email,
        name=payload.name,
        tags=payload.tags,
        notes=payload.notes,
    )
    return ContactEnvelope(data=ContactResponse.model_validate(contact))


@router.post("/{contact_id}/tags", response_model=ContactEnvelope)
async def set_contact_tags(
    contact_id: int,
    payload: TagsUpdate,
    store: Annotated[ContactStore, Depends(get_contact_store)],
) -> ContactEnvelope:
    """Replace a contact's tags and, optionally, its notes."""
    contact = await store.set_tags(contact_id, payload.tags, payload.notes)
    return ContactEnvelope(data=ContactResponse.model_validate(contact))
