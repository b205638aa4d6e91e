"""Course catalog API routes."""

from fastapi import APIRouter

from src.api.deps import RequestLocale
from src.schemas.catalog import CourseDetailResponse
from src.services.catalog_service import CatalogService

router = APIRouter(prefix="/courses", tags=["courses"])


@router.get(
    "/{slug}",
    response_model=CourseDetailResponse,
    summary="Get course detail",
    description="Returns a published course with text and prices rendered for the request locale.",
)
async def get_course(slug: str, locale: RequestLocale) -> CourseDetailResponse:
    """Get the detail page model of a published course.

    Args:
        slug: The course URL slug.
        locale: Locale resolved from ?lang, the locale cookie or Accept-Language.

    Raises:
        NotFoundError: 404 if no published course has this slug.
    """
    return await CatalogService().get_course_detail(slug, locale)
