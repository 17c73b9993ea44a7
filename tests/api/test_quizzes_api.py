from __future__ import annotations

import pytest

from tests.conftest import auth, seed_course, seed_user, token_for

_QUESTIONS = [
    {
        "question": "Which keyword defines a function?",
        "options": ["func", "def", "lambda"],
        "correct_answers": [1],
        "weight": 2,
        "hint": "Three letters.",
    },
    {"question": "Capital of France?", "correct_text_answer": "Paris"},
]


@pytest.fixture
def quiz_setup(client, admin_token):
    teacher, student = seed_user("teacher"), seed_user()
    course, structure = seed_course()
    lesson = structure[0][1][0]
    client.post(
        "/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(admin_token),
    )
    resp = client.post(
        "/quizzes",
        json={
            "lesson_id": str(lesson.id),
            "title": "Basics",
            "questions": _QUESTIONS,
            "time_limit": 10,
        },
        headers=auth(token_for(teacher)),
    )
    assert resp.status_code == 201
    return resp.json(), teacher, student


def test_student_view_hides_answers(client, quiz_setup) -> None:
    quiz, _, student = quiz_setup
    resp = client.get(f"/quizzes/{quiz['id']}", headers=auth(token_for(student)))
    assert resp.status_code == 200
    first = resp.json()["questions"][0]
    assert first == {
        "question": "Which keyword defines a function?",
        "options": ["func", "def", "lambda"],
        "weight": 2,
        "has_hint": True,
    }
    assert "correct_text_answer" not in resp.text


def test_full_view_is_staff_only(client, quiz_setup) -> None:
    quiz, teacher, student = quiz_setup
    url = f"/quizzes/{quiz['id']}/full"
    assert client.get(url, headers=auth(token_for(student))).status_code == 403
    resp = client.get(url, headers=auth(token_for(teacher)))
    assert resp.json()["questions"][1]["correct_text_answer"] == "Paris"


def test_start_then_submit_scores_by_weight(client, quiz_setup) -> None:
    quiz, _, student = quiz_setup
    headers = auth(token_for(student))

    started = client.post(f"/quizzes/{quiz['id']}/start", headers=headers)
    assert started.status_code == 200
    assert started.json()["time_limit"] == 10

    resp = client.post(
        f"/quizzes/{quiz['id']}/submit",
        json={"answers": [[1], " paris "]},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["score"] == 100.0

    again = client.post(
        f"/quizzes/{quiz['id']}/submit", json={"answers": [[0]]}, headers=headers
    )
    assert again.status_code == 409


def test_partial_answers_score(client, quiz_setup) -> None:
    quiz, _, student = quiz_setup
    headers = auth(token_for(student))
    client.post(f"/quizzes/{quiz['id']}/start", headers=headers)
    resp = client.post(
        f"/quizzes/{quiz['id']}/submit", json={"answers": [[1]]}, headers=headers
    )
    assert resp.json()["score"] == 66.67


def test_submit_without_start_is_rejected(client, quiz_setup) -> None:
    quiz, _, student = quiz_setup
    resp = client.post(
        f"/quizzes/{quiz['id']}/submit",
        json={"answers": [[1], "Paris"]},
        headers=auth(token_for(student)),
    )
    assert resp.status_code == 400


def test_hint(client, quiz_setup) -> None:
    quiz, _, student = quiz_setup
    headers = auth(token_for(student))
    resp = client.get(f"/quizzes/{quiz['id']}/hints/0", headers=headers)
    assert resp.json() == {"index": 0, "hint": "Three letters."}
    missing = client.get(f"/quizzes/{quiz['id']}/hints/5", headers=headers)
    assert missing.status_code == 400
