"""Catalog read paths: courses, events and digital products."""

import logging
from typing import Any
from uuid import UUID

from src.api.middleware.error_handler import NotFoundError
from src.core.config import get_settings
from src.core.i18n import Locale
from src.core.supabase import get_supabase_client
from src.models.order import ItemType
from src.schemas.catalog import CourseDetailResponse, EventDetailResponse
from src.services.catalog_presentation import build_course_detail, build_event_detail

logger = logging.getLogger(__name__)

# Order item type -> catalog table
CATALOG_TABLES: dict[ItemType, str] = {
    "course": "courses",
    "product": "digital_products",
    "event": "events",
}


def _is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except ValueError:
        return False
    return True


class CatalogService:
    """Service for published catalog lookups."""

    def __init__(self) -> None:
        """Initialize catalog service with Supabase client."""
        self.client = get_supabase_client()
        self.settings = get_settings()

    async def get_course_by_slug(self, slug: str) -> dict[str, Any] | None:
        """Get a published course by slug.

        Args:
            slug: The course URL slug.

        Returns:
            dict | None: The course row or None if not found or unpublished.
        """
        response = (
            self.client.table("courses")
            .select("*")
            .eq("slug", slug)
            .eq("is_published", True)
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def get_event(self, identifier: str) -> dict[str, Any] | None:
        """Get a published event by UUID or slug.

        Args:
            identifier: Event UUID string or URL slug.

        Returns:
            dict | None: The event row or None if not found or unpublished.
        """
        column = "id" if _is_uuid(identifier) else "slug"
        response = (
            self.client.table("events")
            .select("*")
            .eq(column, identifier)
            .eq("is_published", True)
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def get_catalog_item(self, item_type: ItemType, item_id: UUID | str) -> dict[str, Any] | None:
        """Get a catalog row for an order line item, published or not.

        Args:
            item_type: course, product or event.
            item_id: The catalog row UUID.

        Returns:
            dict | None: The row or None if it does not exist.
        """
        response = (
            self.client.table(CATALOG_TABLES[item_type])
            .select("*")
            .eq("id", str(item_id))
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def get_course_detail(self, slug: str, locale: Locale) -> CourseDetailResponse:
        """Get the localized course detail page model.

        Raises:
            NotFoundError: If no published course has this slug.
        """
        course = await self.get_course_by_slug(slug)
        if not course:
            raise NotFoundError("Course not found")

        return build_course_detail(course, locale, self.settings.store_currency)

    async def get_event_detail(self, identifier: str, locale: Locale) -> EventDetailResponse:
        """Get the localized event detail page model.

        Raises:
            NotFoundError: If no published event matches the identifier.
        """
        event = await self.get_event(identifier)
        if not event:
            raise NotFoundError("Event not found")

        return build_event_detail(event, locale, self.settings.store_currency)
