from datetime import datetime

import pytest

from models import Interval, PlaybackState, ProgressRecord, SessionStatus, ViewingSession


def test_interval_rejects_degenerate() -> None:
    with pytest.raises(ValueError):
        Interval(5.0, 5.0)
    with pytest.raises(ValueError):
        Interval(6.0, 5.0)


def test_interval_rounded_outward() -> None:
    interval = Interval.rounded(3.7, 9.2)
    assert interval == Interval(3.0, 10.0)
    assert interval.length == 7.0


def test_interval_rounded_rejects_empty_raw_segment() -> None:
    assert Interval.rounded(12.3, 12.3) is None
    assert Interval.rounded(12.5, 12.1) is None


@pytest.mark.parametrize("start, end", [(0.0, float("inf")), (float("-inf"), 5.0), (float("nan"), 5.0), (0.0, float("nan"))])
def test_interval_rejects_non_finite_bounds(start, end) -> None:
    with pytest.raises(ValueError):
        Interval(start, end)
    assert Interval.rounded(start, end) is None


def test_viewing_session_defaults() -> None:
    session = ViewingSession(id="abc123", user_scope="u1", media_id="lecture-101")
    assert session.status is SessionStatus.ACTIVE
    assert isinstance(session.created_at, datetime)
    assert session.closed_at is None
    assert session.progress_key == "u1/lecture-101"


def test_playback_state_values() -> None:
    assert PlaybackState.PLAYING.value == "playing"


def test_progress_record_round_trip_shape() -> None:
    record = ProgressRecord(intervals=[Interval(0, 10)], last_position=7.5, updated_at=1700000000000)
    assert record.to_dict() == {
        "intervals": [{"start": 0.0, "end": 10.0}],
        "lastPosition": 7.5,
        "updatedAt": 1700000000000,
    }
    assert ProgressRecord.from_dict(record.to_dict()) == record


@pytest.mark.parametrize("doc", [None, "garbage", 42, ["not", "a", "dict"]])
def test_progress_record_non_object_is_empty(doc) -> None:
    assert ProgressRecord.from_dict(doc) == ProgressRecord.empty()


def test_progress_record_drops_corrupt_fields() -> None:
    record = ProgressRecord.from_dict(
        {
            "intervals": [
                {"start": 0, "end": 5},
                {"start": 9},
                {"start": "x", "end": 3},
                {"start": 7, "end": 7},
                "nope",
            ],
            "lastPosition": "abc",
            "updatedAt": "later",
        }
    )
    assert record.intervals == [Interval(0, 5)]
    assert record.last_position == 0.0
    assert record.updated_at is None


def test_progress_record_missing_fields() -> None:
    record = ProgressRecord.from_dict({"intervals": "oops", "lastPosition": -3})
    assert record.intervals == []
    assert record.last_position == 0.0


def test_progress_record_drops_infinite_interval() -> None:
    record = ProgressRecord.from_dict(
        {"intervals": [{"start": 0, "end": float("inf")}, {"start": 2, "end": 4}], "lastPosition": float("inf")}
    )
    assert record.intervals == [Interval(2, 4)]
    assert record.last_position == 0.0
    assert record.to_dict()["intervals"] == [{"start": 2.0, "end": 4.0}]
