"""Holds the current result set and keeps stale searches from overwriting it.

Every search takes a new token. Only the search holding the latest token
may commit; starting a new search cancels the previous one, which then
stops at its next network attempt or backoff.

Each search runs on its own orchestrator from ``orchestrator_factory``, so
overlapping searches on executor threads share neither an HTTP session nor
per-search state such as ``last_radius_multiplier``.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple, Union

from .errors import SearchCancelled, SearchFailure
from .models import Coordinate, Place
from .moods import Mood, MoodProfile, get_mood_profile
from .refine import RefineOptions, refine

if TYPE_CHECKING:
    from .pipeline import SearchOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class SearchOutcome:
    token: int
    places: List[Place]
    error: Optional[SearchFailure] = None
    committed: bool = False
    cancelled: bool = False
    radius_multiplier: Optional[float] = None


class SearchSession:
    def __init__(self, orchestrator_factory: Callable[[], SearchOrchestrator]) -> None:
        self.orchestrator_factory = orchestrator_factory
        self._lock = threading.Lock()
        self._token = 0
        self._cancel: Optional[threading.Event] = None
        self.origin: Optional[Coordinate] = None
        self.mood: Optional[MoodProfile] = None
        self.places: List[Place] = []
        self.error: Optional[SearchFailure] = None
        self.radius_multiplier: Optional[float] = None

    @property
    def latest_token(self) -> int:
        with self._lock:
            return self._token

    def _begin(self) -> Tuple[int, threading.Event]:
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
            self._token += 1
            self._cancel = threading.Event()
            return self._token, self._cancel

    def search(self, origin: Coordinate, mood: Union[Mood, str, MoodProfile]) -> SearchOutcome:
        profile = mood if isinstance(mood, MoodProfile) else get_mood_profile(mood)
        token, cancel = self._begin()
        orchestrator = self.orchestrator_factory()
        try:
            places = orchestrator.search(origin, profile, cancel=cancel)
        except SearchCancelled:
            logger.info("Search %s cancelled by a newer search", token)
            return SearchOutcome(token=token, places=[], cancelled=True)
        except SearchFailure as exc:
            outcome = SearchOutcome(token=token, places=[], error=exc)
            self._commit(outcome, origin, profile)
            return outcome

        outcome = SearchOutcome(
            token=token,
            places=places,
            radius_multiplier=getattr(orchestrator, "last_radius_multiplier", None),
        )
        self._commit(outcome, origin, profile)
        return outcome

    def submit(
        self, executor: Executor, origin: Coordinate, mood: Union[Mood, str, MoodProfile]
    ) -> Future[SearchOutcome]:
        return executor.submit(self.search, origin, mood)

    def _commit(self, outcome: SearchOutcome, origin: Coordinate, profile: MoodProfile) -> None:
        with self._lock:
            if outcome.token != self._token:
                logger.info(
                    "Discarding stale result for search %s (latest is %s)", outcome.token, self._token
                )
                return
            # Replaced wholesale, never merged.
            self.places = list(outcome.places)
            self.error = outcome.error
            self.radius_multiplier = outcome.radius_multiplier
            self.origin = origin
            self.mood = profile
            outcome.committed = True

    def displayed(self, options: RefineOptions) -> List[Place]:
        with self._lock:
            places = list(self.places)
        return refine(places, options)
