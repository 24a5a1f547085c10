from quizflow.models import Quiz
from quizflow.services.analytics_service import AnalyticsService
from quizflow.services.quiz_service import QuizService

# More than one default page of quizzes
QUIZ_COUNT = 105


async def add_drafts(db, teacher, count=QUIZ_COUNT):
    db.add_all([
        Quiz(teacher_id=teacher.id, title=f"Worksheet {n}", subject="Math", grade_level=["1-1"])
        for n in range(count)
    ])
    await db.commit()


async def test_stats_cover_every_quiz(db, clock, outbox, teacher):
    await add_drafts(db, teacher)
    service = QuizService(db, clock=clock, email_sender=outbox)

    assert len(await service.list_teacher_quizzes(teacher)) == 100
    assert (await service.get_stats(teacher))["total"] == QUIZ_COUNT
    assert len(await service.list_drafts(teacher)) == QUIZ_COUNT


async def test_activity_views_cover_every_quiz(db, clock, teacher):
    await add_drafts(db, teacher)
    analytics = AnalyticsService(db, clock=clock)

    assert len(await analytics.get_activities(teacher)) == QUIZ_COUNT
    stats = await analytics.get_activity_stats(teacher)
    assert stats["total_quizzes"] == QUIZ_COUNT
    assert stats["draft_quizzes"] == QUIZ_COUNT
