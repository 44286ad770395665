from enum import Enum


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    RETRYING = "RETRYING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @classmethod
    def in_progress(cls) -> tuple:
        return (cls.PENDING.value, cls.RETRYING.value)

    @classmethod
    def terminal(cls) -> tuple:
        return (cls.SUCCESS.value, cls.FAILED.value)


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class AuthType(str, Enum):
    NONE = "NONE"
    TOKEN = "TOKEN"
    BASIC = "BASIC"
    HMAC = "HMAC"


class ErrorCode(str, Enum):
    """Error codes surfaced to API callers and recorded on tasks."""

    # Request errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    IDEMPOTENCY_CONFLICT = "IDEMPOTENCY_CONFLICT"
    VENDOR_DISABLED = "VENDOR_DISABLED"

    # Service errors
    DATABASE_ERROR = "DATABASE_ERROR"
    MQ_ERROR = "MQ_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Outbound call errors
    HTTP_TIMEOUT = "HTTP_TIMEOUT"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    NETWORK_ERROR = "NETWORK_ERROR"
    HTTP_UNEXPECTED_STATUS = "HTTP_UNEXPECTED_STATUS"
