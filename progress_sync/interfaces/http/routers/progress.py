from fastapi import APIRouter, Depends, HTTPException, Query, status

from ....application.progress_tracker import ProgressTracker
from ..dependencies import get_tracker
from ..schemas import (
    MarkVideoReq, VideoStatusResp, CourseProgressResp, ServerProgressReq,
    SyncStatusResp, SyncReportResp, NavigationReq, NavigationResp, TeardownResp,
)

router = APIRouter(prefix="/api", tags=["progress"])

# --- Синхронизация:

@router.get("/progress/sync/status", response_model=SyncStatusResp)
def sync_status(tracker: ProgressTracker = Depends(get_tracker)):
    return SyncStatusResp(syncing=tracker.is_syncing(), last_synced_at=tracker.scheduler.last_synced_at())

@router.post("/progress/sync", response_model=SyncReportResp)
async def sync_now(tracker: ProgressTracker = Depends(get_tracker)):
    report = await tracker.sync_now()
    return SyncReportResp.model_validate(report)

@router.post("/progress/teardown", response_model=TeardownResp)
def teardown(tracker: ProgressTracker = Depends(get_tracker)):
    return TeardownResp(accepted=tracker.flush_on_teardown())

@router.post("/navigation", response_model=NavigationResp)
async def navigation(payload: NavigationReq, tracker: ProgressTracker = Depends(get_tracker)):
    report = await tracker.on_navigate(payload.path)
    if report is None:
        return NavigationResp(synced=False)
    return NavigationResp(synced=True, report=SyncReportResp.model_validate(report))

# --- Прогресс по курсам:

def _course_resp(tracker: ProgressTracker, course_id: int, total_videos: int | None) -> CourseProgressResp:
    total = total_videos if total_videos is not None else tracker.store.total_videos(course_id)
    return CourseProgressResp(
        course_id=course_id,
        completed_count=tracker.completed_count(course_id),
        total_videos=total,
        progress=tracker.course_progress(course_id, total or 0),
        display_progress=tracker.display_progress(course_id, total),
        server_progress=tracker.server_progress(course_id),
    )

@router.get("/progress/{course_id}", response_model=CourseProgressResp)
def course_progress(course_id: int,
                    total_videos: int | None = Query(None, ge=0),
                    tracker: ProgressTracker = Depends(get_tracker)):
    return _course_resp(tracker, course_id, total_videos)

# мутации выполняются в event loop: таймеру debounce нужен запущенный цикл
@router.post("/progress/{course_id}/videos/{video_id}/complete", response_model=CourseProgressResp)
async def mark_complete(course_id: int, video_id: int, payload: MarkVideoReq | None = None,
                        tracker: ProgressTracker = Depends(get_tracker)):
    total_videos = payload.total_videos if payload else None
    try:
        tracker.mark_complete(course_id, video_id, total_videos)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _course_resp(tracker, course_id, total_videos)

@router.post("/progress/{course_id}/videos/{video_id}/incomplete", response_model=CourseProgressResp)
async def mark_incomplete(course_id: int, video_id: int, payload: MarkVideoReq | None = None,
                          tracker: ProgressTracker = Depends(get_tracker)):
    total_videos = payload.total_videos if payload else None
    try:
        tracker.mark_incomplete(course_id, video_id, total_videos)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _course_resp(tracker, course_id, total_videos)

@router.get("/progress/{course_id}/videos/{video_id}", response_model=VideoStatusResp)
def video_status(course_id: int, video_id: int, tracker: ProgressTracker = Depends(get_tracker)):
    return VideoStatusResp(course_id=course_id, video_id=video_id,
                           completed=tracker.is_completed(course_id, video_id))

@router.put("/progress/{course_id}/server-progress", response_model=CourseProgressResp)
def set_server_progress(course_id: int, payload: ServerProgressReq,
                        tracker: ProgressTracker = Depends(get_tracker)):
    tracker.apply_server_progress(course_id, payload.progress)
    return _course_resp(tracker, course_id, None)
