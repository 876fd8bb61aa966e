class ApiError(Exception):
    """Ошибка транспорта: не-2xx ответ или сетевая ошибка (status=None)."""

    def __init__(self, message: str, status: int | None = None, data=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    def __repr__(self) -> str:
        return f"ApiError(status={self.status!r}, message={self.message!r})"


class RemoteSyncError(ApiError):
    pass
