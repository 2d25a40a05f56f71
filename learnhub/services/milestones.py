"""Learner milestones derived from progress records.

Pure functions over a learner's entries and the published catalog.
Four families, each with fixed thresholds:

  streak      consecutive active days (3, 7, 14, 30)
  lessons     lessons completed across courses (10, 25, 50, 100)
  courses     courses started (3, 5)
  study_time  hours studied, at half an hour per lesson (5, 10, 25, 50)

Lesson completions are not timestamped, so an active day is a day with
a quiz attempt or a course completion.  Orphan lesson ids and entries
for unpublished courses count toward nothing, as in the aggregator.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Literal

from learnhub.models.catalog import Course
from learnhub.models.progress import ProgressEntry

MilestoneKind = Literal["streak", "lessons", "courses", "study_time"]

# The current streak is the most recent run of active days found while
# walking back this many days from today.
STREAK_LOOKBACK_DAYS = 30


@dataclass(frozen=True, slots=True)
class Milestone:
    id: str
    kind: MilestoneKind
    title: str
    description: str
    threshold: int


MILESTONES: tuple[Milestone, ...] = (
    Milestone("streak-3", "streak", "3-Day Streak", "Learn for 3 days in a row", 3),
    Milestone("streak-7", "streak", "Week Warrior", "Learn for 7 days in a row", 7),
    Milestone(
        "streak-14", "streak", "Fortnight Fighter", "Learn for 14 days in a row", 14
    ),
    Milestone(
        "streak-30", "streak", "Monthly Master", "Learn for 30 days in a row", 30
    ),
    Milestone("lessons-10", "lessons", "Lesson Learner", "Complete 10 lessons", 10),
    Milestone("lessons-25", "lessons", "Lesson Lover", "Complete 25 lessons", 25),
    Milestone("lessons-50", "lessons", "Lesson Legend", "Complete 50 lessons", 50),
    Milestone(
        "lessons-100", "lessons", "Century Scholar", "Complete 100 lessons", 100
    ),
    Milestone(
        "courses-3", "courses", "Course Explorer", "Start 3 different courses", 3
    ),
    Milestone(
        "courses-5", "courses", "Course Collector", "Start 5 different courses", 5
    ),
    Milestone("study-5", "study_time", "5-Hour Learner", "Study for 5 hours total", 5),
    Milestone(
        "study-10", "study_time", "10-Hour Scholar", "Study for 10 hours total", 10
    ),
    Milestone(
        "study-25", "study_time", "25-Hour Expert", "Study for 25 hours total", 25
    ),
    Milestone(
        "study-50", "study_time", "50-Hour Master", "Study for 50 hours total", 50
    ),
)


@dataclass(frozen=True, slots=True)
class LearningStreak:
    current: int
    longest: int
    last_active: date | None
    active_days: int


@dataclass(frozen=True, slots=True)
class LearnerStats:
    lessons_completed: int
    courses_started: int
    study_hours: int
    streak: LearningStreak

    def value_for(self, kind: MilestoneKind) -> int:
        if kind == "streak":
            return self.streak.current
        if kind == "lessons":
            return self.lessons_completed
        if kind == "courses":
            return self.courses_started
        return self.study_hours


@dataclass(frozen=True, slots=True)
class MilestoneState:
    milestone: Milestone
    achieved: bool


def _day(ts: datetime) -> date:
    return ts.astimezone(UTC).date()


def activity_days(entries: Iterable[ProgressEntry]) -> frozenset[date]:
    days: set[date] = set()
    for entry in entries:
        if entry.completed_at is not None:
            days.add(_day(entry.completed_at))
        for attempts in entry.quiz_attempts.values():
            days.update(_day(a.completed_at) for a in attempts)
    return frozenset(days)


def learning_streak(entries: Sequence[ProgressEntry], today: date) -> LearningStreak:
    days = activity_days(entries)
    if not days:
        return LearningStreak(current=0, longest=0, last_active=None, active_days=0)

    current = 0
    last_active: date | None = None
    for offset in range(STREAK_LOOKBACK_DAYS):
        day = today - timedelta(days=offset)
        if day in days:
            current += 1
            if last_active is None:
                last_active = day
        elif current:
            break

    longest = run = 0
    previous: date | None = None
    for day in sorted(days):
        consecutive = previous is not None and day - previous == timedelta(days=1)
        run = run + 1 if consecutive else 1
        longest = max(longest, run)
        previous = day

    return LearningStreak(
        current=current,
        longest=longest,
        last_active=last_active,
        active_days=len(days),
    )


def learner_stats(
    entries: Sequence[ProgressEntry], courses: Iterable[Course], today: date
) -> LearnerStats:
    lesson_ids = {course.id: course.lesson_ids() for course in courses}
    known = [e for e in entries if e.course_id in lesson_ids]
    lessons = sum(len(e.completed_lessons & lesson_ids[e.course_id]) for e in known)
    return LearnerStats(
        lessons_completed=lessons,
        courses_started=len(known),
        study_hours=(lessons + 1) // 2,  # 30 minutes per lesson, halves round up
        streak=learning_streak(entries, today),
    )


def milestones(
    entries: Sequence[ProgressEntry], courses: Iterable[Course], today: date
) -> tuple[MilestoneState, ...]:
    stats = learner_stats(entries, courses, today)
    return tuple(
        MilestoneState(milestone=m, achieved=stats.value_for(m.kind) >= m.threshold)
        for m in MILESTONES
    )


def new_milestones(
    before: Iterable[MilestoneState], after: Iterable[MilestoneState]
) -> tuple[Milestone, ...]:
    """Milestones achieved in ``after`` that were not achieved in ``before``."""
    already = {s.milestone.id for s in before if s.achieved}
    return tuple(
        s.milestone for s in after if s.achieved and s.milestone.id not in already
    )
