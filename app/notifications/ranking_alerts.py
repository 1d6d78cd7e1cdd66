"""Ranking change notifications."""

import uuid

from app.core.config import settings
from app.models.notification import Notification

TYPE_IMPROVEMENT = "ranking_improvement"
TYPE_DROP = "ranking_drop"


def compute_change(previous: int | None, new: int | None) -> int:
    """Positions gained since the last check (positive = moved up).

    0 unless both positions are known.
    """
    if previous is None or new is None:
        return 0
    return previous - new


def notification_priority(change: int) -> str | None:
    """'high' / 'medium' for a notifiable move, None below the threshold."""
    magnitude = abs(change)
    if magnitude < settings.notification_change_threshold:
        return None
    return "high" if magnitude >= settings.notification_high_threshold else "medium"


def build_ranking_notification(
    *,
    user_id: uuid.UUID,
    project_id: uuid.UUID,
    keyword: str,
    previous_position: int | None,
    new_position: int | None,
    change: int,
    data_source: str | None = None,
) -> Notification | None:
    """Unsaved Notification for a large enough move, else None."""
    priority = notification_priority(change)
    if priority is None:
        return None

    improved = change > 0
    verb = "rose" if improved else "fell"
    title = f"Ranking improvement: {keyword}" if improved else f"Ranking drop: {keyword}"
    message = (
        f'Keyword "{keyword}" {verb} {abs(change)} positions '
        f"({previous_position if previous_position is not None else 'N/A'} -> {new_position})"
    )

    return Notification(
        id=uuid.uuid4(),
        user_id=user_id,
        project_id=project_id,
        type=TYPE_IMPROVEMENT if improved else TYPE_DROP,
        title=title,
        message=message,
        priority=priority,
        is_read=False,
        action_url="/rankings",
        metadata_={
            "keyword": keyword,
            "previous_position": previous_position,
            "new_position": new_position,
            "change": change,
            "data_source": data_source,
        },
    )
