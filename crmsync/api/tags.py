"""Tag API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from crmsync.api.deps import get_contact_store, read_or_default
from crmsync.schemas.contact import TagCount, TagListResponse
from crmsync.services.contact_store import ContactStore

router = APIRouter()


@router.get("", response_model=TagListResponse)
async def list_tags(
    store: Annotated[ContactStore, Depends(get_contact_store)],
) -> TagListResponse:
    """Tag usage counts, including unused predefined tags."""
    predefined = [TagCount(tag=tag, count=0) for tag in dict.fromkeys(store.settings.predefined_tags)]
    tags = await read_or_default(store.list_tags_with_counts, predefined, "count tags")
    return TagListResponse(data=tags)
