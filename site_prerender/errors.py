# File: site_prerender/errors.py
"""site_prerender.errors: exception hierarchy and the error policies of a prerender run.

Every "expected" failure (unreachable path, disallowed status) goes through a single
:class:`ErrorPolicy`. The policy is chosen once from the ``on_error`` setting:

* ``"continue"`` – log the failure and keep crawling;
* ``"fail"`` – raise :class:`PrerenderError`, which aborts the whole run;
* a callable ``(status, path, referrer, reference_type) -> None`` – user decides,
  anything it raises propagates like ``"fail"``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Optional, Sequence, Union

from site_prerender.logger import logger

__all__: Sequence[str] = (
    "SitePrerenderError",
    "PrerenderError",
    "QueueClosedError",
    "BodyConsumedError",
    "RendererNotConfiguredError",
    "PrerenderFailure",
    "ErrorPolicy",
    "ContinuePolicy",
    "FailPolicy",
    "CallbackPolicy",
    "make_error_policy",
)

ReferenceType = Literal["linked", "fetched"]
ErrorHandler = Callable[[int, str, Optional[str], str], None]
OnError = Union[Literal["continue", "fail"], ErrorHandler]


class SitePrerenderError(Exception):
    """Base class for all errors raised by site_prerender."""


class PrerenderError(SitePrerenderError):
    """A page could not be prerendered and the run is configured to fail."""

    def __init__(self, failure: "PrerenderFailure") -> None:
        super().__init__(str(failure))
        self.failure = failure


class QueueClosedError(SitePrerenderError):
    """Work was added after the queue stopped accepting it."""


class BodyConsumedError(SitePrerenderError):
    """A response body was read a second time."""


class RendererNotConfiguredError(SitePrerenderError):
    """Neither ``renderer`` nor ``app_url`` is set in the configuration."""


@dataclass(frozen=True, slots=True)
class PrerenderFailure:
    """One reported failure: HTTP status, offending path and where it was found."""

    status: int
    path: str
    referrer: Optional[str] = None
    reference_type: ReferenceType = "linked"

    def __str__(self) -> str:
        if self.referrer:
            return f"{self.status} {self.path} ({self.reference_type} from {self.referrer})"
        return f"{self.status} {self.path}"


class ErrorPolicy:
    """Contract shared by all policies."""

    def report(self, failure: PrerenderFailure) -> None:
        raise NotImplementedError


class ContinuePolicy(ErrorPolicy):
    def report(self, failure: PrerenderFailure) -> None:
        logger.error("%s", failure)


class FailPolicy(ErrorPolicy):
    def report(self, failure: PrerenderFailure) -> None:
        raise PrerenderError(failure)


class CallbackPolicy(ErrorPolicy):
    """Delegates to a user supplied handler."""

    def __init__(self, handler: ErrorHandler) -> None:
        self.handler = handler

    def report(self, failure: PrerenderFailure) -> None:
        self.handler(failure.status, failure.path, failure.referrer, failure.reference_type)


def make_error_policy(on_error: OnError) -> ErrorPolicy:
    """Build the policy for an ``on_error`` configuration value."""
    if on_error == "continue":
        return ContinuePolicy()
    if on_error == "fail":
        return FailPolicy()
    if callable(on_error):
        return CallbackPolicy(on_error)
    raise ValueError(f"Unsupported on_error value: {on_error!r}")
