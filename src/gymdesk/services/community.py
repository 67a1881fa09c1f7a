"""Social feed and studio challenge helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Optional

from ..models.challenge import Challenge
from ..models.post import Post

# Seeded the first time challenge progress is requested on an empty store.
DEFAULT_CHALLENGE: dict[str, Any] = {
    "title": "Desafio Global de Corrida",
    "description": "Acumular 50.000km corridos somando todos os alunos da academia.",
    "target_value": 50000.0,
    "unit": "km",
    "start_date": date(2024, 1, 1),
    "end_date": date(2024, 12, 31),
}


@dataclass(slots=True)
class FeedPost:
    """A post joined with its author's display fields."""

    post: Post
    user_name: str
    user_avatar: Optional[str] = None

    @property
    def like_count(self) -> int:
        return len(self.post.likes or [])


@dataclass(slots=True)
class ChallengeProgress:
    challenge: Optional[Challenge]
    total_distance: int


def toggle_like(likes: Iterable[Any], user_id: Any) -> list[Any]:
    """Add ``user_id`` to ``likes``, or remove it if already there."""

    current = list(dict.fromkeys(likes or []))
    if user_id in current:
        return [uid for uid in current if uid != user_id]
    return current + [user_id]


def feed_posts(*, posts: Iterable[Post], users: Iterable[Any]) -> list[FeedPost]:
    """Attach author name and avatar to each post, keeping the post order.

    Posts whose author no longer exists are dropped.
    """

    authors = {user.id: user for user in users}
    feed = []
    for post in posts:
        author = authors.get(post.user_id)
        if author is None:
            continue
        feed.append(FeedPost(post=post, user_name=author.name, user_avatar=author.avatar_url))
    return feed


def challenge_progress(challenge: Optional[Challenge], *, today: date) -> ChallengeProgress:
    """Distance credited to the studio on ``today``.

    Progress grows linearly from zero on ``start_date`` to ``target_value``
    on ``end_date``; before the start it is zero and after the end it is the
    full target.
    """

    if challenge is None or today < challenge.start_date:
        return ChallengeProgress(challenge=challenge, total_distance=0)
    target = float(challenge.target_value)
    if today >= challenge.end_date:
        return ChallengeProgress(challenge=challenge, total_distance=round(target))

    total_days = (challenge.end_date - challenge.start_date).days
    elapsed_days = (today - challenge.start_date).days
    distance = min(target, target * elapsed_days / total_days)
    return ChallengeProgress(challenge=challenge, total_distance=round(distance))


__all__ = [
    "ChallengeProgress",
    "DEFAULT_CHALLENGE",
    "FeedPost",
    "challenge_progress",
    "feed_posts",
    "toggle_like",
]
