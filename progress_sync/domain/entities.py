from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProgressUpdate:
    course_id: int
    progress: int

    def to_payload(self) -> dict:
        # формат тела PUT /user/progress на стороне сервера
        return {"courseId": self.course_id, "progress": self.progress}


@dataclass
class SyncReport:
    kind: str  # "single" | "batch"
    outcome: str  # "success" | "failure" | "busy" | "empty"
    updates: list[ProgressUpdate] = field(default_factory=list)
    skipped_course_ids: list[int] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == "success"
