"""Tests for subhls.dialogue_queue."""

import random

import pytest

from subhls.dialogue_queue import DialogueQueue, PassthroughQueue, make_queue
from subhls.timestamps import OPEN_END


class TestDialogueQueue:

    def test_finite_cue_emitted_immediately(self, make_record):
        queue = DialogueQueue()
        record = make_record(1000, 2000)
        assert queue.push(record) == [record]
        assert len(queue) == 0

    def test_open_cue_closed_by_next_start(self, make_record):
        queue = DialogueQueue()
        first = make_record(1000, OPEN_END)
        second = make_record(2500, OPEN_END)
        assert queue.push(first) == []
        assert queue.push(second) == [first]
        assert first.end == 2500
        assert queue.pending == [second]

    def test_same_start_stays_buffered(self, make_record):
        queue = DialogueQueue()
        upper = make_record(1000, OPEN_END, text="upper")
        lower = make_record(1000, OPEN_END, text="lower")
        queue.push(upper)
        assert queue.push(lower) == []
        assert queue.pending == [upper, lower]

        later = make_record(3000, OPEN_END)
        assert queue.push(later) == [upper, lower]
        assert upper.end == lower.end == 3000

    def test_empty_cue_closes_but_is_dropped(self, make_record):
        queue = DialogueQueue()
        shown = make_record(1000, OPEN_END)
        clear = make_record(4000, OPEN_END, text="")
        queue.push(shown)
        assert queue.push(clear) == [shown]
        assert shown.end == 4000
        assert len(queue) == 0

    def test_empty_finite_cue_dropped(self, make_record):
        assert DialogueQueue().push(make_record(0, 100, text="")) == []

    def test_finite_cue_follows_closed_ones(self, make_record):
        queue = DialogueQueue()
        first = make_record(1000, OPEN_END)
        second = make_record(2000, 2500)
        queue.push(first)
        assert queue.push(second) == [first, second]

    def test_flush(self, make_record):
        queue = DialogueQueue()
        first = make_record(1000, OPEN_END)
        second = make_record(1000, OPEN_END)
        queue.push(first)
        queue.push(second)
        assert queue.flush(5000) == [first, second]
        assert first.end == second.end == 6000
        assert queue.flush(5000) == []

    def test_never_emits_open_or_duplicate(self, make_record):
        rng = random.Random(1234)
        queue = DialogueQueue()
        emitted = []
        start = 0
        for _ in range(500):
            start += rng.choice([0, 0, 10, 250, 1000])
            end = OPEN_END if rng.random() < 0.6 else start + rng.randint(10, 3000)
            text = "" if rng.random() < 0.15 else "cue"
            emitted.extend(queue.push(make_record(start, end, text=text)))
        emitted.extend(queue.flush(4000))

        assert all(not record.is_open for record in emitted)
        assert all(not record.is_empty for record in emitted)
        assert len({id(record) for record in emitted}) == len(emitted)
        assert len(queue) == 0


class TestPassthroughQueue:

    def test_emits_open_cues_unchanged(self, make_record):
        record = make_record(1000, OPEN_END)
        assert PassthroughQueue().push(record) == [record]
        assert record.end == OPEN_END

    def test_drops_empty(self, make_record):
        assert PassthroughQueue().push(make_record(0, OPEN_END, text="")) == []

    def test_flush_is_empty(self):
        assert PassthroughQueue().flush(1000) == []


def test_make_queue():
    assert isinstance(make_queue("gapfill"), DialogueQueue)
    assert isinstance(make_queue("passthrough"), PassthroughQueue)
    with pytest.raises(ValueError):
        make_queue("bogus")
