import threading
from concurrent.futures import ThreadPoolExecutor

from moodmap.errors import SearchCancelled, SearchFailure
from moodmap.models import Coordinate, Place
from moodmap.moods import Mood
from moodmap.refine import RefineOptions, SortOption
from moodmap.session import SearchSession

ORIGIN = Coordinate(52.2297, 21.0122)


def place(place_id, distance):
    return Place(id=place_id, name=f"Place {place_id}", location=ORIGIN, distance_km=distance, rating=4.0)


class FakeOrchestrator:
    def __init__(self, results_by_mood, before_return=None):
        self.results_by_mood = results_by_mood
        self.before_return = before_return
        self.cancel_events = []

    def search(self, origin, mood, radius_multiplier=1, cancel=None):
        self.cancel_events.append(cancel)
        result = self.results_by_mood[mood.id]
        if self.before_return is not None:
            hook, self.before_return = self.before_return, None
            hook()
        if isinstance(result, Exception):
            raise result
        return list(result)


def test_latest_search_commits():
    orchestrator = FakeOrchestrator({Mood.WORK: [place("w1", 0.3)]})
    session = SearchSession(lambda: orchestrator)

    outcome = session.search(ORIGIN, Mood.WORK)

    assert outcome.committed
    assert [p.id for p in session.places] == ["w1"]
    assert session.mood.id == Mood.WORK
    assert session.error is None


def test_stale_search_does_not_overwrite_newer_result():
    orchestrator = FakeOrchestrator(
        {Mood.WORK: [place("w1", 0.3)], Mood.DATE: [place("d1", 1.0), place("d2", 0.5)]}
    )
    session = SearchSession(lambda: orchestrator)
    newer = {}

    # While the WORK search is still in flight, the user picks DATE.
    orchestrator.before_return = lambda: newer.setdefault("outcome", session.search(ORIGIN, Mood.DATE))
    older = session.search(ORIGIN, Mood.WORK)

    assert newer["outcome"].committed
    assert not older.committed
    assert older.token < newer["outcome"].token
    assert sorted(p.id for p in session.places) == ["d1", "d2"]
    assert session.mood.id == Mood.DATE


def test_new_search_cancels_previous():
    orchestrator = FakeOrchestrator({Mood.WORK: [], Mood.DATE: []})
    session = SearchSession(lambda: orchestrator)

    session.search(ORIGIN, Mood.WORK)
    session.search(ORIGIN, Mood.DATE)

    first, second = orchestrator.cancel_events
    assert first.is_set()
    assert not second.is_set()


def test_cancelled_search_leaves_state_untouched():
    orchestrator = FakeOrchestrator({Mood.WORK: [place("w1", 0.3)], Mood.DATE: SearchCancelled("stale")})
    session = SearchSession(lambda: orchestrator)
    session.search(ORIGIN, Mood.WORK)

    outcome = session.search(ORIGIN, Mood.DATE)

    assert outcome.cancelled
    assert not outcome.committed
    assert [p.id for p in session.places] == ["w1"]


def test_failure_is_committed_and_distinct_from_empty():
    failure = SearchFailure("Failed to fetch places", status_code=504)
    orchestrator = FakeOrchestrator({Mood.WORK: failure, Mood.DATE: []})
    session = SearchSession(lambda: orchestrator)

    failed = session.search(ORIGIN, Mood.WORK)
    assert failed.committed
    assert session.error is failure
    assert session.places == []

    empty = session.search(ORIGIN, "date")
    assert empty.committed
    assert empty.error is None
    assert session.error is None
    assert session.places == []


def test_displayed_refines_current_results():
    orchestrator = FakeOrchestrator({Mood.WORK: [place("far", 2.0), place("near", 0.1)]})
    session = SearchSession(lambda: orchestrator)
    session.search(ORIGIN, Mood.WORK)

    shown = session.displayed(RefineOptions(sort_by=SortOption.DISTANCE))
    assert [p.id for p in shown] == ["near", "far"]
    assert [p.id for p in session.places] == ["far", "near"]


def test_submit_runs_on_executor():
    orchestrator = FakeOrchestrator({Mood.BUDGET: [place("b1", 0.2)]})
    session = SearchSession(lambda: orchestrator)
    with ThreadPoolExecutor(max_workers=2) as executor:
        outcome = session.submit(executor, ORIGIN, Mood.BUDGET).result(timeout=5)
    assert outcome.committed
    assert [p.id for p in session.places] == ["b1"]


def test_concurrent_searches_commit_only_latest_token():
    gate = threading.Event()

    class SlowOrchestrator:
        def search(self, origin, mood, radius_multiplier=1, cancel=None):
            if mood.id == Mood.WORK:
                gate.wait(timeout=5)
            return [place(mood.id.value, 0.1)]

    session = SearchSession(SlowOrchestrator)
    with ThreadPoolExecutor(max_workers=2) as executor:
        slow = session.submit(executor, ORIGIN, Mood.WORK)
        while session.latest_token < 1:
            pass
        fast = session.submit(executor, ORIGIN, Mood.DATE).result(timeout=5)
        gate.set()
        stale = slow.result(timeout=5)

    assert fast.committed
    assert not stale.committed
    assert [p.id for p in session.places] == ["date"]


def test_each_search_gets_its_own_orchestrator():
    built = []

    class RecordingOrchestrator:
        def __init__(self):
            self.last_radius_multiplier = None
            built.append(self)

        def search(self, origin, mood, radius_multiplier=1, cancel=None):
            self.last_radius_multiplier = 2 if mood.id == Mood.DATE else 1
            return [place(mood.id.value, 0.1)]

    session = SearchSession(RecordingOrchestrator)
    first = session.search(ORIGIN, Mood.WORK)
    second = session.search(ORIGIN, Mood.DATE)

    assert len(built) == 2
    assert built[0] is not built[1]
    assert first.radius_multiplier == 1
    assert second.radius_multiplier == 2
    assert session.radius_multiplier == 2
