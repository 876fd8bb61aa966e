from datetime import datetime

from pydantic import BaseModel, Field

class MarkVideoReq(BaseModel):
    total_videos: int | None = Field(default=None, ge=0)

class VideoStatusResp(BaseModel):
    course_id: int
    video_id: int
    completed: bool

class CourseProgressResp(BaseModel):
    course_id: int
    completed_count: int
    total_videos: int | None = None
    progress: int
    display_progress: int
    server_progress: int | None = None

class ServerProgressReq(BaseModel):
    progress: int | None = Field(default=None, ge=0, le=100)

class SyncStatusResp(BaseModel):
    syncing: bool
    last_synced_at: datetime | None = None

class ProgressUpdateOut(BaseModel):
    course_id: int
    progress: int
    class Config: from_attributes = True

class SyncReportResp(BaseModel):
    kind: str
    outcome: str
    updates: list[ProgressUpdateOut] = []
    skipped_course_ids: list[int] = []
    error: str | None = None
    class Config: from_attributes = True

class NavigationReq(BaseModel):
    path: str

class NavigationResp(BaseModel):
    synced: bool
    report: SyncReportResp | None = None

class TeardownResp(BaseModel):
    accepted: bool
