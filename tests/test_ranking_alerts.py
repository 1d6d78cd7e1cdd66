"""Tests for ranking change notifications."""

import uuid

import pytest

from app.notifications.ranking_alerts import build_ranking_notification, compute_change, notification_priority


@pytest.mark.parametrize(
    "previous,new,expected",
    [(15, 8, 7), (3, 9, -6), (None, 5, 0), (5, None, 0), (None, None, 0), (4, 4, 0)],
)
def test_compute_change(previous, new, expected):
    assert compute_change(previous, new) == expected


@pytest.mark.parametrize(
    "change,expected",
    [(0, None), (4, None), (-4, None), (5, "medium"), (-6, "medium"), (9, "medium"), (10, "high"), (-15, "high")],
)
def test_notification_priority(change, expected):
    assert notification_priority(change) == expected


def test_improvement_notification():
    n = build_ranking_notification(
        user_id=uuid.uuid4(),
        project_id=uuid.uuid4(),
        keyword="running shoes",
        previous_position=20,
        new_position=5,
        change=15,
        data_source="serp_api",
    )
    assert n.type == "ranking_improvement"
    assert n.priority == "high"
    assert n.title == "Ranking improvement: running shoes"
    assert "rose 15 positions (20 -> 5)" in n.message
    assert n.metadata_["change"] == 15
    assert n.is_read is False


def test_drop_notification():
    n = build_ranking_notification(
        user_id=uuid.uuid4(),
        project_id=uuid.uuid4(),
        keyword="shoe store",
        previous_position=3,
        new_position=9,
        change=-6,
    )
    assert n.type == "ranking_drop"
    assert n.priority == "medium"
    assert "fell 6 positions" in n.message


def test_small_move_gives_nothing():
    assert (
        build_ranking_notification(
            user_id=uuid.uuid4(),
            project_id=uuid.uuid4(),
            keyword="x",
            previous_position=10,
            new_position=7,
            change=3,
        )
        is None
    )
