import threading

from roadwatch.services.dedup import DuplicateSuppressor, bus_image_key, event_key


class _Clock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_event_key_uses_hour_bucket():
    assert event_key("s1", "car", "d1", "2024-03-05 10:20:30") == "s1-car-d1-2024-03-05 10"
    assert event_key("s1", "car", "d1", "2024-03-05 10:20:30", precision="minute") == "s1-car-d1-2024-03-05 10:20"
    assert bus_image_key("s1", "d1", "2024-03-05 10:20:30") == "busimg-s1-d1-2024-03-05 10"


def test_repeat_inside_window_is_duplicate():
    clock = _Clock()
    suppressor = DuplicateSuppressor(clock=clock)
    assert suppressor.is_duplicate("k") is False
    clock.advance(9.9)
    assert suppressor.is_duplicate("k") is True


def test_repeat_after_window_is_accepted():
    clock = _Clock()
    suppressor = DuplicateSuppressor(clock=clock)
    assert suppressor.is_duplicate("k") is False
    clock.advance(10.0)
    assert suppressor.is_duplicate("k") is False


def test_fixed_window_is_not_extended_by_repeats():
    clock = _Clock()
    suppressor = DuplicateSuppressor(clock=clock)
    suppressor.is_duplicate("k")
    clock.advance(6)
    assert suppressor.is_duplicate("k") is True
    clock.advance(6)
    assert suppressor.is_duplicate("k") is False


def test_sliding_window_is_extended_by_repeats():
    clock = _Clock()
    suppressor = DuplicateSuppressor(clock=clock, sliding=True)
    suppressor.is_duplicate("k")
    clock.advance(6)
    assert suppressor.is_duplicate("k") is True
    clock.advance(6)
    assert suppressor.is_duplicate("k") is True


def test_stale_entries_swept_only_above_capacity():
    clock = _Clock()
    suppressor = DuplicateSuppressor(clock=clock, capacity=3, ttl_ms=30_000)
    for key in ("a", "b", "c"):
        suppressor.mark_seen(key)
    clock.advance(31)
    assert len(suppressor) == 3
    suppressor.mark_seen("d")
    assert len(suppressor) == 1
    assert "d" in suppressor
    assert "a" not in suppressor


def test_concurrent_first_arrivals_accept_once():
    suppressor = DuplicateSuppressor()
    results = []
    barrier = threading.Barrier(8)

    def _worker():
        barrier.wait()
        results.append(suppressor.is_duplicate("same"))

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert results.count(False) == 1


def test_forget_reopens_the_window():
    clock = _Clock()
    suppressor = DuplicateSuppressor(clock=clock)
    assert suppressor.is_duplicate("k") is False
    suppressor.forget("k")
    suppressor.forget("never-seen")
    assert "k" not in suppressor
    assert suppressor.is_duplicate("k") is False
