"""
Analytics Schemas

Response models for the teacher dashboard and activity endpoints.
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class DashboardStatsResponse(BaseModel):
    total_students: int
    present_today: int
    average_progress: int
    target_progress: int
    engagement_level: str
    engagement_percentage: int
    weekly_change: int


class ClassProgressPoint(BaseModel):
    label: str
    completed: int
    target: int


class EngagementPoint(BaseModel):
    day: str
    score: int


class StudentOverviewRow(BaseModel):
    id: UUID
    name: str
    engagement: str
    progress: int
    profile_image: Optional[str] = None


class StudentOverviewResponse(BaseModel):
    students: List[StudentOverviewRow]
    total: int


class ActivityResponse(BaseModel):
    id: UUID
    quiz_title: str
    subject: str
    grade_level: str
    status: str
    is_scheduled: bool
    schedule_date: Optional[date] = None
    created_at: Optional[datetime] = None
    last_edited: Optional[datetime] = None
    total_questions: int
    total_attempts: int
    student_count: int
    average_score: float
    completion_rate: int
    progress: int


class ActivityListResponse(BaseModel):
    count: int
    data: List[ActivityResponse]


class ActivityStatsResponse(BaseModel):
    total_quizzes: int
    draft_quizzes: int
    scheduled_quizzes: int
    active_quizzes: int
    closed_quizzes: int
    total_attempts: int
    total_students: int
    average_score: float
    engagement_rate: int


class PerformanceQuiz(BaseModel):
    id: UUID
    title: str
    subject: str
    total_questions: int


class PerformanceStatistics(BaseModel):
    total_attempts: int
    unique_students: int
    average_score: float
    highest_score: int
    lowest_score: int


class PerformanceAttempt(BaseModel):
    attempt_id: UUID
    student_id: UUID
    student_name: str
    student_email: str
    score: int
    correct_answers: int
    total_questions: int
    abandoned: bool
    time_taken: Optional[int] = None
    submitted_at: datetime


class QuizPerformanceResponse(BaseModel):
    quiz: PerformanceQuiz
    statistics: PerformanceStatistics
    attempts: List[PerformanceAttempt]
