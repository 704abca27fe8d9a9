"""Plain-text rendering of progress, entries and the leaderboard."""

from __future__ import annotations

from datetime import date

from toilet_tracker.models.entry import (
    GOAL,
    Entry,
    LeaderboardEntry,
    Progress,
    sort_by_visit,
    visit_streak,
)

NO_ENTRIES = "No toilets logged yet - time to start your quest!"
NO_LEADERS = "No users on the board yet - be the first!"


def progress_bar(total: int, goal: int = GOAL, width: int = 40) -> str:
    """Render a fixed-width text progress bar."""
    filled = min(width, int(width * total / goal)) if goal else width
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def format_progress(
    progress: Progress | None,
    entries: list[Entry],
    today: date | None = None,
) -> str:
    """Format the progress block.

    Args:
        progress: Server progress summary (None before the first fetch).
        entries: Entries, for the streak.
        today: Reference date for the streak.

    Returns:
        Multi-line string.
    """
    if progress is None:
        return "No progress data yet."

    lines = [
        "Your Progress",
        "=" * 40,
        f"{progress.total} / {progress.goal} Unique Toilets",
        f"{progress_bar(progress.total, progress.goal)} {progress.percentage:.1f}%",
        f"Remaining: {progress.remaining}",
    ]
    if progress.message:
        lines.append(progress.message)

    streak = visit_streak(entries, today=today)
    lines.append(f"Streak: {streak} day{'s' if streak != 1 else ''}")
    return "\n".join(lines)


def format_entries(entries: list[Entry]) -> str:
    """Format the logged toilets, newest first."""
    if not entries:
        return NO_ENTRIES

    lines = [f"Your Logged Toilets ({len(entries)})", "=" * 40]
    for entry in sort_by_visit(entries):
        golden = " [golden]" if entry.is_golden_bowl else ""
        lines.append(f"{entry.name}{golden}  (id: {entry.id})")
        lines.append(f"  at   {entry.address or 'GPS Location'}")
        lines.append(f"  on   {entry.visited_at.astimezone().strftime('%Y-%m-%d %H:%M')}")
        lines.append(f"  pos  {entry.latitude:.5f}, {entry.longitude:.5f}")
    return "\n".join(lines)


def format_leaderboard(rows: list[LeaderboardEntry], goal: int = GOAL) -> str:
    """Format the leaderboard as a ranked table."""
    if not rows:
        return NO_LEADERS

    name_width = max(4, *(len(row.display_name) for row in rows))
    lines = [
        "Leaderboard",
        f"{'Rank':>4}  {'User':<{name_width}}  Toilets",
    ]
    for rank, row in enumerate(rows, 1):
        lines.append(f"{rank:>4}  {row.display_name:<{name_width}}  {row.total}/{goal}")
    return "\n".join(lines)
