"""RESTlet response payload and the downloaded log file record."""
from dataclasses import dataclass, field


@dataclass
class RestletError:
    code: str | None = None
    message: str | None = None

    @classmethod
    def from_json(cls, data):
        if data is None:
            return None
        if isinstance(data, str):
            return cls(message=data)
        return cls(code=data.get("code"), message=data.get("message"))


@dataclass
class RestletLogFile:
    name: str | None = None
    content: str = ""
    size: int | None = None
    type: str | None = None
    modified: str | None = None
    file_id: str | None = None

    @classmethod
    def from_json(cls, data: dict):
        return cls(
            name=data.get("name"),
            content=data.get("content") or "",
            size=data.get("size"),
            type=data.get("type"),
            modified=data.get("modified"),
            file_id=data.get("fileId"),
        )


@dataclass
class RestletResponse:
    success: bool | None
    message: str | None = None
    log_files: list = field(default_factory=list)
    error: RestletError | None = None

    @classmethod
    def from_json(cls, data: dict):
        return cls(
            success=data.get("success"),
            message=data.get("message"),
            log_files=[RestletLogFile.from_json(item) for item in data.get("logFiles") or []],
            error=RestletError.from_json(data.get("error")),
        )

    def failure_reason(self) -> str:
        if self.message:
            return self.message
        if self.error and (self.error.message or self.error.code):
            return self.error.message or self.error.code
        return "Unknown error"


@dataclass
class LogFile:
    """A log file saved to disk, ready for analysis."""

    name: str
    path: str
    type: str
    size: int
    modified: str
    file_id: str | None = None
