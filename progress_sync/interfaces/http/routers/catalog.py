from fastapi import APIRouter, Depends, HTTPException

from ....application.progress_tracker import ProgressTracker
from ....domain.errors import ApiError
from ....infrastructure.catalog import CatalogClient
from ..dependencies import get_catalog, get_tracker

router = APIRouter(prefix="/api/catalog", tags=["catalog"])

def _upstream_error(e: ApiError) -> HTTPException:
    # статус сервера пробрасываем как есть, сетевые ошибки - 502
    return HTTPException(status_code=e.status or 502, detail=e.message)

@router.get("/courses")
async def all_courses(catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.get_all_courses()
    except ApiError as e:
        raise _upstream_error(e)

@router.get("/courses/{course_id}")
async def course_detail(course_id: int, catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.get_course(course_id)
    except ApiError as e:
        raise _upstream_error(e)

# контент не кэшируется: из него записывается число видео курса
@router.get("/courses/{course_id}/content")
async def course_content(course_id: int, catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.get_course_content(course_id)
    except ApiError as e:
        raise _upstream_error(e)

@router.get("/enrolled")
async def enrolled_courses(tracker: ProgressTracker = Depends(get_tracker)):
    """Записанные курсы пользователя; серверный прогресс применяется к отображению"""
    try:
        return await tracker.refresh_enrolled_courses()
    except ApiError as e:
        raise _upstream_error(e)

@router.get("/trainers")
async def all_trainers(catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.get_all_trainers()
    except ApiError as e:
        raise _upstream_error(e)
