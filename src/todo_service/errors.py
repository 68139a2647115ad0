from __future__ import annotations

from typing import Any, Dict, List, Union

INTERNAL_ERROR_MESSAGE = "500 Internal Server Error"
LOGIN_REQUIRED_MESSAGE = "このページを表示するにはログインが必要です。"
NOT_GROUP_MEMBER_MESSAGE = "指定されたグループに所属していません。"


class APIError(Exception):
    """
    Base class for errors that map directly onto an HTTP response.

    The response body is always:
        {"status": <status_code>, "error": {"message": <message>}}
    """

    status_code: int = 500

    def __init__(self, message: Union[str, List[str]]) -> None:
        super().__init__(message if isinstance(message, str) else "; ".join(message))
        self.message = message

    def to_body(self) -> Dict[str, Any]:
        return {"status": self.status_code, "error": {"message": self.message}}


class BadRequestError(APIError):
    status_code = 400


class ValidationFailedError(BadRequestError):
    """Request body failed validation; carries one message per offending field."""

    def __init__(self, messages: List[str]) -> None:
        super().__init__(list(messages))


class UnauthenticatedError(APIError):
    status_code = 401

    def __init__(self, message: str = LOGIN_REQUIRED_MESSAGE) -> None:
        super().__init__(message)


class NotGroupMemberError(BadRequestError):
    def __init__(self, message: str = NOT_GROUP_MEMBER_MESSAGE) -> None:
        super().__init__(message)


class NotFoundError(APIError):
    status_code = 404


class InternalError(APIError):
    """Always rendered with the generic message; the cause only goes to the log."""

    status_code = 500

    def __init__(self, message: str = INTERNAL_ERROR_MESSAGE) -> None:
        super().__init__(message)

    def to_body(self) -> Dict[str, Any]:
        return {"status": self.status_code, "error": {"message": INTERNAL_ERROR_MESSAGE}}
