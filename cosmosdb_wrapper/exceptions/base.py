from typing import Any, Dict, Optional


class CosmosDBWrapperError(Exception):
    """Base exception for all Cosmos DB wrapper errors.

    When the error wraps an azure-cosmos ``CosmosHttpResponseError`` the HTTP
    status, sub-status and activity id of the failed request are lifted off
    it, so callers can log or branch on them without reaching into the SDK
    exception.

    Attributes:
        message: Human-readable error message
        original_error: The SDK (or other) exception that caused this error
        context: Additional context information about the error
        status_code: HTTP status of the failed Cosmos DB request, if known
        sub_status: Cosmos DB sub-status code, if known
        activity_id: ``x-ms-activity-id`` of the failed request, if known
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.original_error = original_error
        self.context = context or {}
        self.status_code: Optional[int] = getattr(original_error, 'status_code', None)
        self.sub_status: Optional[int] = getattr(original_error, 'sub_status', None)
        headers = getattr(original_error, 'headers', None) or {}
        self.activity_id: Optional[str] = headers.get('x-ms-activity-id') if hasattr(headers, 'get') else None
        super().__init__(message)

    def __str__(self) -> str:
        error_str = self.message
        if self.status_code is not None:
            status = f"HTTP {self.status_code}"
            if self.sub_status:
                status += f".{self.sub_status}"
            error_str = f"[{status}] {error_str}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            error_str += f" (Context: {context_str})"
        return error_str

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(message={self.message!r}, status_code={self.status_code!r}, "
            f"original_error={self.original_error!r}, context={self.context!r})"
        )
