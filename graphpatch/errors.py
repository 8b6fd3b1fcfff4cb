from __future__ import annotations

from typing import Any, Optional


class PatchException(Exception):
    """Base error raised while decoding or applying a patch.

    The transport layer maps every subclass to a client error; ``error_code``
    lets it tell them apart without isinstance checks.
    """

    error_code = "PATCH_FAILED"

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        op: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.op = op
        self.index = index

    def with_context(self, *, op: str, path: str, index: int) -> "PatchException":
        if self.op is None:
            self.op = op
        if self.path is None:
            self.path = path
        if self.index is None:
            self.index = index
        return self

    def to_dict(self) -> dict[str, Any]:
        cause = self.__cause__
        return {
            "error_code": self.error_code,
            "message": self.message,
            "op": self.op,
            "path": self.path,
            "index": self.index,
            "cause": None if cause is None else f"{type(cause).__name__}: {cause}",
        }

    def __str__(self) -> str:
        where = []
        if self.index is not None:
            where.append(f"operation {self.index}")
        if self.op is not None:
            where.append(self.op)
        if self.path is not None:
            where.append(repr(self.path))
        if not where:
            return self.message
        return f"{' '.join(where)}: {self.message}"


class InvalidPathError(PatchException):
    error_code = "INVALID_PATH"


class UnknownPropertyError(PatchException):
    error_code = "UNKNOWN_PROPERTY"

    def __init__(self, message: str, *, property_name: str, record_type: type, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.property_name = property_name
        self.record_type = record_type


class PatchConflictError(PatchException):
    error_code = "TEST_FAILED"


class ValueConversionError(PatchException):
    error_code = "VALUE_CONVERSION"


class MalformedPatchError(PatchException):
    error_code = "MALFORMED_PATCH"
