"""
Exception chain traversal.

A failed API call usually surfaces wrapped in one or more layers of caller
exceptions. The helpers here walk that chain:

- the primary cause of an exception is ``__cause__`` (``raise ... from``),
  else an explicit ``cause`` attribute (ApiClientError keeps one), else the
  implicit ``__context__`` unless it was suppressed with ``from None``
- the suppressed companions of an exception are the members of an
  ExceptionGroup plus anything recorded with add_suppressed()

Every walk is guarded against cycles and capped at max_depth nodes.
"""

from collections.abc import Callable, Iterator

DEFAULT_MAX_CHAIN_DEPTH = 100

SUPPRESSED_ATTR = "__suppressed__"


def primary_cause(exc: BaseException) -> BaseException | None:
    """Return the exception that caused ``exc``, or None at the end of the chain."""
    if exc.__cause__ is not None:
        return exc.__cause__

    cause = getattr(exc, "cause", None)
    if isinstance(cause, BaseException):
        return cause

    if exc.__suppress_context__:
        return None
    return exc.__context__


def add_suppressed(exc: BaseException, suppressed: BaseException) -> None:
    """
    Record ``suppressed`` as a companion of ``exc``.

    Used when cleanup after a failure raises again (e.g. closing a stream
    after a failed upload) and the secondary error should stay attached to
    the primary one instead of replacing it.
    """
    if suppressed is exc:
        return
    companions = getattr(exc, SUPPRESSED_ATTR, None)
    if companions is None:
        companions = []
        setattr(exc, SUPPRESSED_ATTR, companions)
    companions.append(suppressed)


def get_suppressed(exc: BaseException) -> list[BaseException]:
    """Return the suppressed companions of ``exc`` (group members first)."""
    companions: list[BaseException] = []
    if isinstance(exc, BaseExceptionGroup):
        companions.extend(exc.exceptions)
    companions.extend(getattr(exc, SUPPRESSED_ATTR, ()))
    return companions


def iter_chain(
    exc: BaseException | None,
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
) -> Iterator[BaseException]:
    """
    Yield ``exc`` followed by its primary causes, nearest first.

    Stops at the end of the chain, at the first exception already yielded
    (self-referential or cyclic chains), or after max_depth exceptions.
    """
    seen: set[int] = set()
    current = exc
    while current is not None and id(current) not in seen and len(seen) < max_depth:
        seen.add(id(current))
        yield current
        current = primary_cause(current)


def find_in_chain(
    exc: BaseException | None,
    predicate: Callable[[BaseException], bool],
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
) -> BaseException | None:
    """Return the nearest exception in the chain matching ``predicate``."""
    for node in iter_chain(exc, max_depth):
        if predicate(node):
            return node
    return None


__all__ = [
    "DEFAULT_MAX_CHAIN_DEPTH",
    "add_suppressed",
    "find_in_chain",
    "get_suppressed",
    "iter_chain",
    "primary_cause",
]
