from __future__ import annotations


class PlaybotError(Exception):
    """Base class for errors raised by the play command."""


class PreconditionError(PlaybotError):
    """The invocation cannot be served (e.g. no channel to reply in)."""


class ProviderError(PlaybotError):
    """A suggestion source failed or returned an unusable response."""
