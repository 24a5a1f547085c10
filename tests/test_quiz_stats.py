import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from quizflow.models.quiz import QuizStatus
from quizflow.services.quiz_stats import (
    completion_crossed,
    compute_class_progress,
    compute_dashboard_stats,
    compute_engagement_trend,
    compute_quiz_stats,
    compute_student_overview,
    engagement_level,
    percentage,
    summarize_results,
)

NOW = datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc)


@dataclass
class FakeQuiz:
    is_scheduled: bool
    status: QuizStatus
    schedule_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    due_date: Optional[date] = None


@dataclass
class FakeAssignment:
    recipient_id: uuid.UUID


@dataclass
class FakeResult:
    user_id: uuid.UUID
    score: int
    submitted_at: datetime
    abandoned: bool = False


@dataclass
class FakeStudent:
    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    profile_image: Optional[str] = None


def test_percentage_guards_zero_denominator():
    assert percentage(3, 0) == 0
    assert percentage(1, 3) == 33
    assert percentage(2, 3) == 67
    assert percentage(1, 8) == 13  # 12.5 rounds up


def test_engagement_levels():
    assert engagement_level(80) == "High"
    assert engagement_level(60) == "Medium"
    assert engagement_level(59) == "Low"


def test_quiz_stats_bucket_by_effective_status():
    today = NOW.date()
    quizzes = [
        FakeQuiz(is_scheduled=False, status=QuizStatus.DRAFT),
        # stored status says draft; resolver says active
        FakeQuiz(True, QuizStatus.DRAFT, today, "09:00", "17:00"),
        FakeQuiz(True, QuizStatus.SCHEDULED, today, "11:00", "12:00"),
        FakeQuiz(True, QuizStatus.ACTIVE, today - timedelta(days=1), "09:00", "10:00"),
        FakeQuiz(is_scheduled=False, status=QuizStatus.CLOSED),
    ]

    stats = compute_quiz_stats(quizzes, NOW)

    assert stats == {"total": 5, "drafts": 1, "scheduled": 1, "active": 1, "closed": 2}


def test_dashboard_stats():
    alice, bob, carol = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    assignments = [FakeAssignment(alice), FakeAssignment(bob), FakeAssignment(carol), FakeAssignment(alice)]
    results = [
        FakeResult(alice, 80, NOW - timedelta(hours=1)),
        FakeResult(bob, 60, NOW - timedelta(days=9)),
        FakeResult(alice, 100, NOW - timedelta(days=1)),
    ]

    stats = compute_dashboard_stats(assignments, results, NOW, target=80)

    assert stats["total_students"] == 3
    assert stats["present_today"] == 1
    assert stats["average_progress"] == 80
    assert stats["target_progress"] == 80
    assert stats["engagement_percentage"] == 75
    assert stats["engagement_level"] == "Medium"
    # this week averages 90, last week 60
    assert stats["weekly_change"] == 30


def test_dashboard_stats_without_students():
    stats = compute_dashboard_stats([], [], NOW, target=80)

    assert stats["total_students"] == 0
    assert stats["engagement_percentage"] == 0
    assert stats["engagement_level"] == "Low"
    assert stats["weekly_change"] == 0


def test_class_progress_weeks_oldest_first():
    student = uuid.uuid4()
    results = [
        FakeResult(student, 40, NOW - timedelta(days=22)),
        FakeResult(student, 90, NOW - timedelta(days=2)),
        FakeResult(student, 70, NOW),
    ]

    progress = compute_class_progress(results, NOW, target=75)

    assert [week["label"] for week in progress] == ["Week 1", "Week 2", "Week 3", "Week 4"]
    assert [week["completed"] for week in progress] == [40, 0, 0, 80]
    assert all(week["target"] == 75 for week in progress)


def test_engagement_trend_caps_and_labels_days():
    a, b = uuid.uuid4(), uuid.uuid4()
    assignments = [FakeAssignment(a), FakeAssignment(b)]
    results = [
        FakeResult(a, 50, NOW),
        FakeResult(b, 50, NOW),
        FakeResult(a, 50, NOW - timedelta(days=1)),
    ]

    trend = compute_engagement_trend(assignments, results, NOW)

    assert len(trend) == 5
    assert trend[-1] == {"day": "Mon", "score": 100}
    assert trend[-2] == {"day": "Sun", "score": 50}
    assert trend[0]["score"] == 0


def test_engagement_trend_without_assignments_is_zero():
    trend = compute_engagement_trend([], [FakeResult(uuid.uuid4(), 90, NOW)], NOW)
    assert all(point["score"] == 0 for point in trend)


def test_student_overview_limits_and_skips_unknown_students():
    known = FakeStudent("Hana")
    missing = uuid.uuid4()
    assignments = [FakeAssignment(known.id), FakeAssignment(missing), FakeAssignment(known.id)]
    results = [FakeResult(known.id, 70, NOW), FakeResult(known.id, 91, NOW)]

    overview = compute_student_overview(assignments, results, {known.id: known}, limit=10)

    assert overview["total"] == 2
    assert overview["students"] == [{
        "id": known.id,
        "name": "Hana",
        "engagement": "High",
        "progress": 81,
        "profile_image": None,
    }]


def test_summarize_results():
    student = uuid.uuid4()
    summary = summarize_results([
        FakeResult(student, 90, NOW),
        FakeResult(student, 0, NOW, abandoned=True),
        FakeResult(uuid.uuid4(), 45, NOW),
    ])

    assert summary["total_attempts"] == 3
    assert summary["student_count"] == 2
    assert summary["average_score"] == 45.0
    assert summary["highest_score"] == 90
    assert summary["lowest_score"] == 0
    assert summary["completion_rate"] == 67


def test_summarize_empty_results():
    summary = summarize_results([])
    assert summary["average_score"] == 0
    assert summary["completion_rate"] == 0


def test_completion_crossed_only_on_the_crossing_step():
    assert completion_crossed(1, 2, 4, 50) == 50
    assert completion_crossed(0, 1, 4, 50) is None
    assert completion_crossed(2, 3, 4, 50) is None
    assert completion_crossed(2, 2, 4, 50) is None
    assert completion_crossed(0, 0, 0, 50) is None
