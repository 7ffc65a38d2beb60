"""API errors returned by a cluster and helpers to aggregate and classify them."""

from __future__ import annotations

from typing import ClassVar, Iterable, Iterator, Optional


class ApiError(Exception):
    """An error status returned by the API server."""

    code: ClassVar[int] = 500
    reason: ClassVar[str] = "InternalError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ApiError):
    """The requested object does not exist."""

    code = 404
    reason = "NotFound"


class AlreadyExistsError(ApiError):
    """An object with the same name already exists."""

    code = 409
    reason = "AlreadyExists"


class ConflictError(ApiError):
    """The object was modified concurrently."""

    code = 409
    reason = "Conflict"


class TooManyRequestsError(ApiError):
    """The server is throttling requests."""

    code = 429
    reason = "TooManyRequests"


class AggregateError(Exception):
    """Several errors reported as one."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = tuple(errors)
        super().__init__(self._message())

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def _flatten(self) -> Iterator[BaseException]:
        for err in self.errors:
            if isinstance(err, AggregateError):
                yield from err._flatten()
            else:
                yield err

    def _message(self) -> str:
        if not self.errors:
            return ""
        if len(self.errors) == 1:
            return str(self.errors[0])
        seen: list[str] = []
        for err in self._flatten():
            msg = str(err)
            if msg not in seen:
                seen.append(msg)
        if len(seen) == 1:
            return seen[0]
        return "[" + ", ".join(seen) + "]"

    def __str__(self) -> str:
        return self._message()


def aggregate(errors: Iterable[Optional[BaseException]]) -> Optional[AggregateError]:
    """Combine the given errors, ignoring None; return None when nothing is left."""
    remaining = [err for err in errors if err is not None]
    if not remaining:
        return None
    return AggregateError(remaining)


def _chain(error: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


def is_retryable(error: BaseException) -> bool:
    """Tell whether an error is a refused connection, throttling or a conflict."""
    return any(
        isinstance(err, (ConnectionRefusedError, TooManyRequestsError, ConflictError))
        for err in _chain(error)
    )