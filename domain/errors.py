from __future__ import annotations

from collections.abc import Mapping

DEFAULT_ERROR_MESSAGE = "Unexpected error."


class PartBomError(Exception):
    pass


class ApiError(PartBomError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationFailed(PartBomError):
    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {text}" for field, text in self.errors.items()))


class NoSelectionError(PartBomError):
    pass


def error_message(exc: BaseException) -> str:
    text = str(exc).strip()
    return text or DEFAULT_ERROR_MESSAGE
