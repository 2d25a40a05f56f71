"""JSON log lines for progress events.

Progress lines are searched by learner, course and lesson, so those
ids must land as top-level keys and absent ones must not appear as null.
"""

from __future__ import annotations

import json
import logging
import re

import pytest

from learnhub.core.logging import _ContainerFormatter, _JsonFormatter

SERVICE_LOGGER = "learnhub.services.progress_service"


def _record(msg: str, *args: object, level: int = logging.INFO, **extra: object):
    logger = logging.getLogger(SERVICE_LOGGER)
    return logger.makeRecord(
        logger.name, level, "progress_service.py", 1, msg, args, None, extra=extra
    )


def test_lesson_completion_line() -> None:
    record = _record(
        "Lesson completed user=%s course=%s lesson=%s progress=%d",
        "u-1",
        "course-1",
        "l1",
        33,
        user_id="u-1",
        course_id="course-1",
        lesson_id="l1",
        request_id="req-9",
    )
    line = json.loads(_JsonFormatter().format(record))
    assert line["message"] == (
        "Lesson completed user=u-1 course=course-1 lesson=l1 progress=33"
    )
    assert line["logger"] == SERVICE_LOGGER
    context = ("user_id", "course_id", "lesson_id", "request_id")
    assert [line[k] for k in context] == ["u-1", "course-1", "l1", "req-9"]


@pytest.mark.parametrize(
    "absent", ["course_id", "lesson_id", "status_code", "duration_ms"]
)
def test_milestone_line_omits_unset_context(absent: str) -> None:
    record = _record(
        "Milestone reached user=%s milestone=%s", "u-1", "lessons-10", user_id="u-1"
    )
    line = json.loads(_JsonFormatter().format(record))
    assert line["user_id"] == "u-1"
    assert absent not in line


def test_fields_outside_the_context_set_are_dropped() -> None:
    record = _record("Course completed", user_id="u-1", course_id="c", milestone="x")
    line = json.loads(_JsonFormatter().format(record))
    assert "milestone" not in line


def test_failed_upsert_keeps_traceback() -> None:
    logger = logging.getLogger(SERVICE_LOGGER)
    try:
        raise RuntimeError("attempt_no collision")
    except RuntimeError as exc:
        record = logger.makeRecord(
            logger.name,
            logging.ERROR,
            "pg_progress_repo.py",
            1,
            "Quiz attempt insert failed",
            (),
            (type(exc), exc, exc.__traceback__),
            extra={"user_id": "u-1", "lesson_id": "l2"},
        )
    line = json.loads(_JsonFormatter().format(record))
    assert line["level"] == "ERROR"
    assert line["exception"].endswith("RuntimeError: attempt_no collision")
    assert line["lesson_id"] == "l2"


def test_container_line_is_plain_text_with_millis() -> None:
    record = _record("Course completed user=%s course=%s", "u-1", "course-1")
    out = _ContainerFormatter().format(record)
    assert re.match(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}[+-]\d{4} INFO ", out)
    assert out.endswith(f"{SERVICE_LOGGER}  Course completed user=u-1 course=course-1")
