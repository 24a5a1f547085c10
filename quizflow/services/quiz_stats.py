"""
Quiz statistics

Pure folds over quizzes, results and assignment notifications. Callers
fetch the records; nothing here touches the database.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from quizflow.models.quiz import QuizStatus
from quizflow.services.quiz_status import resolve_status


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """part/whole as a whole percentage; 0 when whole is 0."""
    if not whole:
        return 0
    return round_half_up(part / whole * 100)


def average(values: Sequence[float]) -> float:
    if not values:
        return 0
    return sum(values) / len(values)


def engagement_level(rate: int) -> str:
    if rate >= 80:
        return "High"
    if rate >= 60:
        return "Medium"
    return "Low"


# ============================================================
# QUIZ STATUS COUNTS
# ============================================================

def compute_quiz_stats(quizzes: Iterable, now: datetime) -> Dict[str, int]:
    """
    Count quizzes by effective status.

    Scheduled quizzes are bucketed purely by the resolver; unscheduled
    ones by their stored status.
    """
    stats = {"total": 0, "drafts": 0, "scheduled": 0, "active": 0, "closed": 0}
    buckets = {
        QuizStatus.DRAFT: "drafts",
        QuizStatus.SCHEDULED: "scheduled",
        QuizStatus.ACTIVE: "active",
        QuizStatus.CLOSED: "closed",
    }
    for quiz in quizzes:
        stats["total"] += 1
        resolved = resolve_status(quiz, now)
        stats[buckets[resolved.status]] += 1
    return stats


# ============================================================
# TEACHER DASHBOARD
# ============================================================

def _aware(moment: datetime) -> datetime:
    # Naive timestamps come back from backends without zone support; they are stored as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _local_day(moment: datetime, tz) -> date:
    return _aware(moment).astimezone(tz).date()


def _day_bounds(day: date, tz) -> tuple:
    return (
        datetime.combine(day, time.min, tzinfo=tz),
        datetime.combine(day, time.max, tzinfo=tz),
    )


def _within(moment: datetime, start: datetime, end: datetime) -> bool:
    return start <= _aware(moment) <= end


def assigned_student_ids(assignments: Iterable) -> List:
    """Distinct recipients in first-seen order."""
    seen = []
    for notification in assignments:
        if notification.recipient_id not in seen:
            seen.append(notification.recipient_id)
    return seen


def compute_class_progress(
    results: Sequence,
    now: datetime,
    target: int,
    weeks: int = 4,
) -> List[Dict]:
    """Average score per trailing 7-day week, oldest week first."""
    tz = now.tzinfo
    today = now.date()
    progress = []
    for offset in range(weeks - 1, -1, -1):
        week_end_day = today - timedelta(days=offset * 7)
        week_start, _ = _day_bounds(week_end_day - timedelta(days=6), tz)
        _, week_end = _day_bounds(week_end_day, tz)
        scores = [r.score for r in results if _within(r.submitted_at, week_start, week_end)]
        progress.append({
            "label": f"Week {weeks - offset}",
            "completed": round_half_up(average(scores)),
            "target": target,
        })
    return progress


def compute_dashboard_stats(
    assignments: Sequence,
    results: Sequence,
    now: datetime,
    target: int,
) -> Dict:
    """
    Headline numbers for a teacher: students assigned to their quizzes,
    mean score, completion-based engagement and who submitted today.
    """
    tz = now.tzinfo
    total_students = len(assigned_student_ids(assignments))
    average_progress = round_half_up(average([r.score for r in results]))

    engagement_percentage = 0
    if total_students > 0:
        engagement_percentage = percentage(len(results), len(assignments))

    today = now.date()
    present_today = len({
        r.user_id for r in results if _local_day(r.submitted_at, tz) == today
    })

    weekly = compute_class_progress(results, now, target, weeks=2)

    return {
        "total_students": total_students,
        "present_today": present_today,
        "average_progress": average_progress,
        "target_progress": target,
        "engagement_level": engagement_level(engagement_percentage),
        "engagement_percentage": engagement_percentage,
        "weekly_change": weekly[-1]["completed"] - weekly[0]["completed"],
    }


def compute_engagement_trend(
    assignments: Sequence,
    results: Sequence,
    now: datetime,
    days: int = 5,
) -> List[Dict]:
    """Share of assigned students active on each of the last `days` days."""
    tz = now.tzinfo
    total_assigned = len(assigned_student_ids(assignments))
    trend = []
    for offset in range(days - 1, -1, -1):
        day = now.date() - timedelta(days=offset)
        active = {r.user_id for r in results if _local_day(r.submitted_at, tz) == day}
        score = min(max(percentage(len(active), total_assigned), 0), 100)
        trend.append({"day": day.strftime("%a"), "score": score})
    return trend


def compute_student_overview(
    assignments: Sequence,
    results: Sequence,
    students: Dict,
    limit: int,
) -> Dict:
    """
    Per-student progress for the first `limit` assigned students.

    `students` maps user id to the User row; ids without a row are skipped.
    """
    student_ids = assigned_student_ids(assignments)
    rows = []
    for student_id in student_ids[:limit]:
        student = students.get(student_id)
        if student is None:
            continue
        own_results = [r for r in results if r.user_id == student_id]
        assigned = sum(1 for n in assignments if n.recipient_id == student_id)
        rows.append({
            "id": student.id,
            "name": student.name,
            "engagement": engagement_level(percentage(len(own_results), assigned)),
            "progress": round_half_up(average([r.score for r in own_results])),
            "profile_image": student.profile_image,
        })
    return {"students": rows, "total": len(student_ids)}


# ============================================================
# PER-QUIZ ACTIVITY
# ============================================================

def summarize_results(results: Sequence) -> Dict:
    scores = [r.score for r in results]
    completed = [r for r in results if not r.abandoned]
    return {
        "total_attempts": len(results),
        "student_count": len({r.user_id for r in results}),
        "average_score": round(average(scores), 2),
        "highest_score": max(scores) if scores else 0,
        "lowest_score": min(scores) if scores else 0,
        "completion_rate": percentage(len(completed), len(results)),
    }


def completion_crossed(
    completed_before: int,
    completed_after: int,
    total: int,
    threshold: int,
) -> Optional[int]:
    """
    Return the new completion percentage if this step moved it from below
    `threshold` to at or above it, otherwise None.
    """
    before = percentage(completed_before, total)
    after = percentage(completed_after, total)
    if before < threshold <= after:
        return after
    return None
