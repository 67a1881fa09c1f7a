from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from gymdesk.models import Challenge, Post
from gymdesk.services import community


@pytest.mark.parametrize(
    ("likes", "user_id", "expected"),
    [
        ([], 7, [7]),
        ([3], 7, [3, 7]),
        ([3, 7], 7, [3]),
        ([7, 7], 7, []),
        (None, 1, [1]),
    ],
)
def test_toggle_like(likes, user_id, expected):
    assert community.toggle_like(likes, user_id) == expected


def test_feed_posts_keep_order_and_drop_orphans():
    users = [
        SimpleNamespace(id=1, name="Ana", avatar_url="a.png"),
        SimpleNamespace(id=2, name="Bruno", avatar_url=None),
    ]
    posts = [
        Post(id=10, user_id=2, caption="b", likes=[1], timestamp=datetime(2024, 1, 2)),
        Post(id=11, user_id=9, caption="gone", likes=[], timestamp=datetime(2024, 1, 1)),
        Post(id=12, user_id=1, caption="a", likes=[], timestamp=datetime(2024, 1, 1)),
    ]

    feed = community.feed_posts(posts=posts, users=users)

    assert [(f.post.id, f.user_name, f.user_avatar) for f in feed] == [
        (10, "Bruno", None),
        (12, "Ana", "a.png"),
    ]
    assert [f.like_count for f in feed] == [1, 0]


@pytest.fixture
def challenge():
    return Challenge(
        title="Corrida",
        target_value=1000.0,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 11),
    )


@pytest.mark.parametrize(
    ("today", "expected"),
    [
        (date(2023, 12, 31), 0),
        (date(2024, 1, 1), 0),
        (date(2024, 1, 6), 500),
        (date(2024, 1, 11), 1000),
        (date(2025, 6, 1), 1000),
    ],
)
def test_challenge_progress_is_linear_between_dates(challenge, today, expected):
    progress = community.challenge_progress(challenge, today=today)
    assert progress.challenge is challenge
    assert progress.total_distance == expected


def test_challenge_progress_without_challenge():
    progress = community.challenge_progress(None, today=date(2024, 1, 1))
    assert progress.challenge is None
    assert progress.total_distance == 0
