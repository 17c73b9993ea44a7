from __future__ import annotations

import pytest

from tests.conftest import auth, seed_course, seed_user, token_for


@pytest.fixture
def homework_setup(client, admin_token):
    teacher, student = seed_user("teacher"), seed_user()
    course, structure = seed_course()
    client.post(
        "/enrollments",
        json={"student_id": str(student.id), "course_id": str(course.id)},
        headers=auth(admin_token),
    )
    resp = client.post(
        "/homeworks",
        json={
            "lesson_id": str(structure[0][1][0].id),
            "description": "Implement binary search",
            "category": "practice",
            "points": 15,
        },
        headers=auth(token_for(teacher)),
    )
    assert resp.status_code == 201
    return resp.json(), teacher, student


def test_submit_and_grade(client, homework_setup) -> None:
    homework, teacher, student = homework_setup
    resp = client.post(
        f"/homeworks/{homework['id']}/submissions",
        json={"content": "def search(xs, x): ..."},
        headers=auth(token_for(student)),
    )
    assert resp.status_code == 201
    submission = resp.json()
    assert submission["is_reviewed"] is False

    resp = client.put(
        f"/homeworks/submissions/{submission['id']}/grade",
        json={"grade": 88, "comment": "Mind the off-by-one"},
        headers=auth(token_for(teacher)),
    )
    assert resp.status_code == 200
    assert resp.json()["grade"] == 88
    assert resp.json()["teacher_comment"] == "Mind the off-by-one"
    assert resp.json()["is_reviewed"] is True

    mine = client.get(
        f"/homeworks/submissions/student/{student.id}",
        headers=auth(token_for(student)),
    )
    assert [s["id"] for s in mine.json()] == [submission["id"]]


def test_second_submission_conflicts(client, homework_setup) -> None:
    homework, _, student = homework_setup
    url = f"/homeworks/{homework['id']}/submissions"
    headers = auth(token_for(student))
    assert client.post(url, json={"content": "v1"}, headers=headers).status_code == 201
    assert client.post(url, json={"content": "v2"}, headers=headers).status_code == 409


def test_grade_out_of_range_is_400(client, homework_setup) -> None:
    homework, teacher, student = homework_setup
    submission = client.post(
        f"/homeworks/{homework['id']}/submissions",
        json={"content": "answer"},
        headers=auth(token_for(student)),
    ).json()
    resp = client.put(
        f"/homeworks/submissions/{submission['id']}/grade",
        json={"grade": 120},
        headers=auth(token_for(teacher)),
    )
    assert resp.status_code == 400


def test_unknown_category_is_400(client, homework_setup) -> None:
    homework, teacher, _ = homework_setup
    resp = client.patch(
        f"/homeworks/{homework['id']}",
        json={"category": "essay"},
        headers=auth(token_for(teacher)),
    )
    assert resp.status_code == 400


def test_student_cannot_create_homework(client, homework_setup) -> None:
    homework, _, student = homework_setup
    resp = client.post(
        "/homeworks",
        json={"lesson_id": homework["lesson_id"], "description": "sneaky"},
        headers=auth(token_for(student)),
    )
    assert resp.status_code == 403
