from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from types import MappingProxyType

from learnhub.models.progress import ProgressEntry, QuizAttempt
from learnhub.services import milestones
from tests.conftest import build_course

TODAY = date(2026, 6, 15)


def _at(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 18, 30, tzinfo=UTC)


def _entry(
    *,
    course_id: str = "course-1",
    lessons: frozenset[str] = frozenset(),
    quiz_days: tuple[date, ...] = (),
    completed_on: date | None = None,
) -> ProgressEntry:
    attempts = tuple(
        QuizAttempt.new(score=1, total_questions=1, completed_at=_at(d))
        for d in quiz_days
    )
    return ProgressEntry(
        course_id=course_id,
        module_id="m1",
        lesson_id="l1",
        completed_lessons=lessons,
        completed_at=_at(completed_on) if completed_on else None,
        quiz_attempts=MappingProxyType({"l2": attempts} if attempts else {}),
    )


def _days_ago(*offsets: int) -> tuple[date, ...]:
    return tuple(TODAY - timedelta(days=n) for n in offsets)


# ---- streaks ----


def test_no_activity_means_no_streak() -> None:
    streak = milestones.learning_streak([_entry(lessons=frozenset({"l1"}))], TODAY)
    assert streak == milestones.LearningStreak(
        current=0, longest=0, last_active=None, active_days=0
    )


def test_streak_ending_today() -> None:
    streak = milestones.learning_streak([_entry(quiz_days=_days_ago(0, 1, 2))], TODAY)
    assert streak.current == 3
    assert streak.last_active == TODAY


def test_current_streak_is_most_recent_run_in_lookback() -> None:
    # idle for the last two days; the run before that still counts
    entry = _entry(quiz_days=_days_ago(2, 3, 10, 11, 12, 13))
    streak = milestones.learning_streak([entry], TODAY)
    assert streak.current == 2
    assert streak.longest == 4
    assert streak.last_active == TODAY - timedelta(days=2)
    assert streak.active_days == 6


def test_activity_older_than_lookback_is_not_current() -> None:
    entry = _entry(quiz_days=_days_ago(40, 41, 42))
    streak = milestones.learning_streak([entry], TODAY)
    assert streak.current == 0
    assert streak.longest == 3


def test_course_completion_day_is_active() -> None:
    entries = [
        _entry(course_id="course-1", completed_on=TODAY),
        _entry(course_id="course-2", quiz_days=_days_ago(1)),
    ]
    assert milestones.learning_streak(entries, TODAY).current == 2


# ---- stats ----


def test_stats_ignore_orphans_and_unknown_courses() -> None:
    entries = [
        _entry(lessons=frozenset({"l1", "l2", "l3", "gone"})),
        _entry(course_id="retired", lessons=frozenset({"x1", "x2"})),
    ]
    stats = milestones.learner_stats(entries, [build_course()], TODAY)
    assert stats.lessons_completed == 3
    assert stats.courses_started == 1
    assert stats.study_hours == 2


def test_lesson_milestone_threshold() -> None:
    courses = [
        build_course(course_id=f"course-{n}", slug=f"py-{n}") for n in range(1, 5)
    ]
    entries = [
        _entry(course_id=f"course-{n}", lessons=frozenset({"l1", "l2", "l3"}))
        for n in range(1, 4)
    ]
    nine = milestones.milestones(entries, courses, TODAY)
    ten = milestones.milestones(
        [*entries, _entry(course_id="course-4", lessons=frozenset({"l1"}))],
        courses,
        TODAY,
    )

    reached = milestones.new_milestones(nine, ten)
    assert [m.id for m in reached] == ["lessons-10"]


def test_new_milestones_ignores_already_achieved() -> None:
    before = milestones.milestones(
        [_entry(quiz_days=_days_ago(1, 2, 3))], [build_course()], TODAY
    )
    after = milestones.milestones(
        [_entry(quiz_days=_days_ago(0, 1, 2, 3))], [build_course()], TODAY
    )
    assert [s.milestone.id for s in before if s.achieved] == ["streak-3"]
    assert milestones.new_milestones(before, after) == ()
