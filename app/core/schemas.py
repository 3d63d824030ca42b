from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field
from datetime import datetime, timezone

from app.core.logging import request_id_var

T = TypeVar("T")

class ErrorInfo(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

class ApiResponse(BaseModel, Generic[T]):
    """
    Success/error envelope of the privileged account handlers and the public
    password-reset endpoints. `errors` mirrors the global error format so
    clients can read failures the same way everywhere.
    """
    success: bool
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with JSON-serializable values."""
        return self.model_dump(mode="json")

    @staticmethod
    def _metadata(extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        metadata = dict(extra or {})
        request_id = request_id_var.get()
        if request_id:
            metadata.setdefault("request_id", request_id)
        return metadata

    @classmethod
    def ok(cls, data: T, metadata: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        return cls(success=True, data=data, metadata=cls._metadata(metadata))

    @classmethod
    def fail(cls, message: str, code: str = "ERROR", details: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        return cls(
            success=False,
            error=ErrorInfo(code=code, message=message, details=details),
            errors=[{"msg": message, "code": code}],
            metadata=cls._metadata(None),
        )
