from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol

from .cache import ONE_HOUR_IN_SECONDS, KeyValueCache
from .errors import PreconditionError
from .metrics import autocomplete_requests_total, play_requests_total
from .suggestions import get_youtube_and_spotify_suggestions_for
from .third_party import ThirdParty
from .url_parser import is_absolute_url

log = logging.getLogger(__name__)

SUGGESTION_LIMIT = 10


@dataclass
class PlayInvocation:
    """A /play invocation as received from the chat platform.

    Optional flags are ``None`` when the user left them out.
    """

    query: str
    immediate: Optional[bool] = None
    shuffle: Optional[bool] = None
    split: Optional[bool] = None
    skip: Optional[bool] = None
    channel: Any = None
    interaction: Any = None
    is_simulated: bool = False


@dataclass
class PlayRequest:
    query: str
    add_to_front_of_queue: bool
    shuffle_additions: bool
    should_split_chapters: bool
    skip_current_track: bool
    channel: Any
    is_simulated: bool = False
    interaction: Any = None


class QueueService(Protocol):
    async def add_to_queue(self, request: PlayRequest) -> None: ...


SuggestionProvider = Callable[[str, Any, int], Awaitable[list]]


def query_description(third_party: ThirdParty | None) -> str:
    if third_party is None:
        return "YouTube URL or search query"
    return "YouTube URL, Spotify URL, or search query"


def _flag(value: Optional[bool]) -> bool:
    return value if value is not None else False


class PlayCommand:
    """Validates /play invocations and answers autocomplete for its query."""

    def __init__(
        self,
        queue_service: QueueService,
        cache: KeyValueCache,
        third_party: ThirdParty | None = None,
        suggestion_provider: SuggestionProvider = get_youtube_and_spotify_suggestions_for,
    ) -> None:
        self.queue_service = queue_service
        self.cache = cache
        self.spotify = third_party.spotify if third_party is not None else None
        self.query_description = query_description(third_party)
        self._suggestion_provider = suggestion_provider

    async def execute(self, invocation: PlayInvocation) -> None:
        if invocation.channel is None:
            raise PreconditionError("This command must be used in a text channel.")

        request = PlayRequest(
            query=(invocation.query or "").strip(),
            add_to_front_of_queue=_flag(invocation.immediate),
            shuffle_additions=_flag(invocation.shuffle),
            should_split_chapters=_flag(invocation.split),
            skip_current_track=_flag(invocation.skip),
            channel=invocation.channel,
            is_simulated=invocation.is_simulated,
            interaction=invocation.interaction,
        )
        log.info("Queueing %r (front=%s, shuffle=%s, split=%s, skip=%s)",
                 request.query, request.add_to_front_of_queue,
                 request.shuffle_additions, request.should_split_chapters,
                 request.skip_current_track)
        play_requests_total.inc()
        await self.queue_service.add_to_queue(request)

    async def resolve(self, partial_query: str | None) -> list:
        """Return autocomplete suggestions for a partially typed query."""
        query = (partial_query or "").strip()
        if not query:
            autocomplete_requests_total.labels(outcome="empty").inc()
            return []

        # Don't return suggestions for URLs
        if is_absolute_url(query):
            autocomplete_requests_total.labels(outcome="url").inc()
            return []

        autocomplete_requests_total.labels(outcome="lookup").inc()
        return await self.cache.wrap(
            self._suggestion_provider,
            query,
            self.spotify,
            SUGGESTION_LIMIT,
            expires_in=ONE_HOUR_IN_SECONDS,
            key=f"autocomplete:{query}",
        )
