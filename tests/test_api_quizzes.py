"""
End-to-end tests through the HTTP API.
"""

from tests.conftest import auth_headers, correct_option_ids, short, wrong_option_ids

API = "/api/v1"


def quiz_payload(**overrides):
    payload = {
        "title": "Cell biology",
        "description": "Chapter 3 check",
        "timeLimit": 30,
        "passingScore": 60,
        "maxAttempts": 1,
        "questions": [
            {
                "text": "Powerhouse of the cell?",
                "type": "multiple_choice",
                "points": 1,
                "options": [
                    {"text": "Mitochondria", "isCorrect": True},
                    {"text": "Ribosome", "isCorrect": False},
                ],
            }
        ],
    }
    payload.update(overrides)
    return payload


async def create_quiz(client, users, course, lesson, **overrides):
    response = await client.post(
        f"{API}/courses/{course.id}/lessons/{lesson.id}/quizzes",
        json=quiz_payload(**overrides),
        headers=auth_headers(users.instructor),
    )
    assert response.status_code == 201, response.text
    return response.json()


def correct_id(quiz_json, index=0):
    return next(o["id"] for o in quiz_json["questions"][index]["options"] if o["isCorrect"])


# ============================================================
# Full scenario
# ============================================================

async def test_single_attempt_quiz_flow(client, users, course, lesson):
    created = await create_quiz(client, users, course, lesson)
    quiz_id = created["id"]
    question_id = created["questions"][0]["id"]
    student = auth_headers(users.student)

    detail = await client.get(f"{API}/quizzes/{quiz_id}", headers=student)
    assert detail.status_code == 200
    body = detail.json()
    assert body["attemptInfo"]["canAttempt"] is True
    assert body["attemptInfo"]["remainingAttempts"] == 1
    assert "isCorrect" not in body["questions"][0]["options"][0]

    start = await client.post(f"{API}/quizzes/{quiz_id}/attempts", headers=student)
    assert start.status_code == 201
    attempt = start.json()
    assert attempt["attemptNumber"] == 1
    assert attempt["status"] == "in_progress"
    assert attempt["timeLimit"] == 30
    assert attempt["expiresAt"] is not None

    submit = await client.post(
        f"{API}/quizzes/{quiz_id}/submit",
        json={
            "attemptId": attempt["id"],
            "startTime": attempt["startedAt"],
            "answers": [{"kind": "choice", "questionId": question_id, "selectedOptionIds": [correct_id(created)]}],
        },
        headers=student,
    )
    assert submit.status_code == 200
    result = submit.json()
    assert result["score"] == 1
    assert result["totalScore"] == 1
    assert result["percentage"] == 100.0
    assert result["passed"] is True
    assert result["status"] == "completed"
    assert result["alreadySubmitted"] is False

    again = await client.post(f"{API}/quizzes/{quiz_id}/attempts", headers=student)
    assert again.status_code == 409
    assert again.json()["code"] == "ATTEMPT_LIMIT_EXCEEDED"
    assert again.json()["remainingAttempts"] == 0

    replay = await client.post(
        f"{API}/quizzes/{quiz_id}/submit",
        json={"attemptId": attempt["id"], "answers": []},
        headers=student,
    )
    assert replay.status_code == 200
    assert replay.json()["alreadySubmitted"] is True
    assert replay.json()["score"] == 1

    info = (await client.get(f"{API}/quizzes/{quiz_id}", headers=student)).json()["attemptInfo"]
    assert info == {
        "canAttempt": False,
        "remainingAttempts": 0,
        "maxAttempts": 1,
        "attemptsUsed": 1,
        "activeAttemptId": None,
    }


async def test_legacy_answer_payload(client, users, make_quiz):
    quiz = await make_quiz(max_attempts=2)
    first, second = quiz.questions

    response = await client.post(
        f"{API}/quizzes/{quiz.id}/submit",
        json={
            "startTime": "2024-01-01T00:00:00Z",
            "answers": [
                {"questionId": str(first.id), "selectedOptions": [str(i) for i in correct_option_ids(first)]},
                {"questionId": str(second.id), "selectedOptions": [str(i) for i in wrong_option_ids(second)]},
            ],
        },
        headers=auth_headers(users.student),
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["attemptNumber"] == 1
    assert body["percentage"] == 50.0
    assert body["passed"] is False
    assert body["timeTaken"] < 60


async def test_retried_submit_without_attempt_id_returns_stored_result(client, users, make_quiz):
    quiz = await make_quiz(max_attempts=1)
    payload = {
        "startTime": "2024-01-01T00:00:00Z",
        "answers": [
            {"questionId": str(q.id), "selectedOptions": [str(i) for i in correct_option_ids(q)]}
            for q in quiz.questions
        ],
    }
    student = auth_headers(users.student)

    first = await client.post(f"{API}/quizzes/{quiz.id}/submit", json=payload, headers=student)
    retry = await client.post(f"{API}/quizzes/{quiz.id}/submit", json=payload, headers=student)

    assert first.status_code == 200
    assert first.json()["alreadySubmitted"] is False
    assert retry.status_code == 200, retry.text
    assert retry.json()["alreadySubmitted"] is True
    assert retry.json()["id"] == first.json()["id"]
    assert retry.json()["score"] == 2
    history = (await client.get(f"{API}/quizzes/{quiz.id}/attempts", headers=student)).json()
    assert history["total"] == 1


async def test_explicit_null_max_attempts_is_stored_as_unlimited(client, users, course, lesson):
    created = await create_quiz(client, users, course, lesson, maxAttempts=None)

    manage = await client.get(f"{API}/quizzes/{created['id']}/manage", headers=auth_headers(users.instructor))

    assert manage.status_code == 200
    assert manage.json()["maxAttempts"] is None
    student = auth_headers(users.student)
    for _ in range(2):
        started = await client.post(f"{API}/quizzes/{created['id']}/attempts", headers=student)
        assert started.status_code == 201, started.text
        submit = await client.post(
            f"{API}/quizzes/{created['id']}/submit",
            json={"attemptId": started.json()["id"], "answers": []},
            headers=student,
        )
        assert submit.status_code == 200


async def test_results_endpoints(client, users, make_quiz):
    quiz = await make_quiz(max_attempts=3)
    student = auth_headers(users.student)

    assert (await client.get(f"{API}/quizzes/{quiz.id}/results", headers=student)).json() is None
    assert (await client.get(f"{API}/quizzes/{quiz.id}/results/best", headers=student)).json() is None

    first, second = quiz.questions
    for selected in (correct_option_ids, wrong_option_ids):
        started = await client.post(f"{API}/quizzes/{quiz.id}/attempts", headers=student)
        assert started.status_code == 201
        response = await client.post(
            f"{API}/quizzes/{quiz.id}/submit",
            json={"answers": [
                {"kind": "choice", "questionId": str(q.id), "selectedOptionIds": [str(i) for i in selected(q)]}
                for q in (first, second)
            ]},
            headers=student,
        )
        assert response.status_code == 200

    latest = (await client.get(f"{API}/quizzes/{quiz.id}/results", headers=student)).json()
    best = (await client.get(f"{API}/quizzes/{quiz.id}/results/best", headers=student)).json()
    history = (await client.get(f"{API}/quizzes/{quiz.id}/attempts", headers=student)).json()

    assert (latest["attemptNumber"], latest["score"]) == (2, 0)
    assert (best["attemptNumber"], best["score"]) == (1, 2)
    assert history["total"] == 2
    assert [a["attemptNumber"] for a in history["attempts"]] == [1, 2]

    detail = await client.get(f"{API}/quizzes/attempts/{best['id']}", headers=student)
    assert detail.status_code == 200
    assert [a["isCorrect"] for a in detail.json()["answers"]] == [True, True]

    submissions = await client.get(f"{API}/quizzes/{quiz.id}/submissions", headers=auth_headers(users.instructor))
    assert submissions.json()["total"] == 2

    board = await client.get(f"{API}/quizzes/leaderboard", headers=student)
    assert board.json()["entries"][0]["fullName"] == "Sam Student"
    assert board.json()["entries"][0]["totalScore"] == 100.0


async def test_manual_review_over_http(client, users, make_quiz):
    quiz = await make_quiz([short(points=4)], max_attempts=1)
    question = quiz.questions[0]

    submit = await client.post(
        f"{API}/quizzes/{quiz.id}/submit",
        json={"answers": [{"kind": "text", "questionId": str(question.id), "text": "Osmosis"}]},
        headers=auth_headers(users.student),
    )
    assert submit.json()["pendingReview"] is True

    review = await client.post(
        f"{API}/quizzes/attempts/{submit.json()['id']}/review",
        json={"grades": [{"questionId": str(question.id), "pointsAwarded": 3}]},
        headers=auth_headers(users.instructor),
    )

    assert review.status_code == 200, review.text
    body = review.json()
    assert body["score"] == 3
    assert body["percentage"] == 75.0
    assert body["pendingReview"] is False
    assert body["answers"][0]["manuallyGraded"] is True


# ============================================================
# Authoring over HTTP
# ============================================================

async def test_author_views_and_edits(client, users, course, lesson):
    created = await create_quiz(client, users, course, lesson, maxAttempts=None)
    instructor = auth_headers(users.instructor)
    assert created["maxAttempts"] is None
    assert created["questionCount"] == 1

    manage = await client.get(f"{API}/quizzes/{created['id']}/manage", headers=instructor)
    assert manage.status_code == 200
    assert manage.json()["questions"][0]["options"][0]["isCorrect"] is True

    updated = await client.put(
        f"{API}/quizzes/{created['id']}",
        json={"title": "Cell biology (v2)", "isActive": False},
        headers=instructor,
    )
    assert updated.status_code == 200
    assert updated.json()["title"] == "Cell biology (v2)"

    hidden = await client.get(f"{API}/quizzes/{created['id']}", headers=auth_headers(users.student))
    assert hidden.status_code == 404
    assert hidden.json()["code"] == "QUIZ_NOT_FOUND"

    listing = await client.get(f"{API}/lessons/{lesson.id}/quizzes", headers=instructor)
    assert listing.json()["total"] == 1

    deleted = await client.delete(f"{API}/quizzes/{created['id']}", headers=instructor)
    assert deleted.status_code == 204


async def test_delete_with_attempts_conflicts(client, users, make_quiz):
    quiz = await make_quiz()
    await client.post(f"{API}/quizzes/{quiz.id}/attempts", headers=auth_headers(users.student))

    response = await client.delete(f"{API}/quizzes/{quiz.id}", headers=auth_headers(users.instructor))

    assert response.status_code == 409
    assert response.json()["code"] == "QUIZ_HAS_ATTEMPTS"


async def test_invalid_definition_is_422_with_field_errors(client, users, course, lesson):
    response = await client.post(
        f"{API}/courses/{course.id}/lessons/{lesson.id}/quizzes",
        json=quiz_payload(questions=[{"text": "No answer", "options": [{"text": "A"}, {"text": "B"}]}]),
        headers=auth_headers(users.instructor),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert response.json()["errors"][0]["field"] == "questions[0].options"


async def test_malformed_body_is_422(client, users, course, lesson):
    response = await client.post(
        f"{API}/courses/{course.id}/lessons/{lesson.id}/quizzes",
        json=quiz_payload(passingScore=150),
        headers=auth_headers(users.instructor),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert any(e["field"].endswith("passingScore") for e in response.json()["errors"])


# ============================================================
# Access control
# ============================================================

async def test_missing_token_is_401(client, make_quiz):
    quiz = await make_quiz()

    response = await client.get(f"{API}/quizzes/{quiz.id}")

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHENTICATED"
    assert response.headers["www-authenticate"] == "Bearer"


async def test_garbage_token_is_401(client, make_quiz):
    quiz = await make_quiz()

    response = await client.get(f"{API}/quizzes/{quiz.id}", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


async def test_student_cannot_author(client, users, course, lesson):
    response = await client.post(
        f"{API}/courses/{course.id}/lessons/{lesson.id}/quizzes",
        json=quiz_payload(),
        headers=auth_headers(users.student),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


async def test_instructor_cannot_take_quiz(client, users, make_quiz):
    quiz = await make_quiz()

    response = await client.post(f"{API}/quizzes/{quiz.id}/attempts", headers=auth_headers(users.instructor))

    assert response.status_code == 403


async def test_unenrolled_student_is_rejected(client, users, make_quiz):
    quiz = await make_quiz()

    response = await client.post(f"{API}/quizzes/{quiz.id}/attempts", headers=auth_headers(users.outsider))

    assert response.status_code == 403
    assert response.json()["code"] == "NOT_ENROLLED"


async def test_unknown_quiz_is_404(client, users):
    response = await client.get(
        f"{API}/quizzes/00000000-0000-0000-0000-000000000000", headers=auth_headers(users.student)
    )

    assert response.status_code == 404
    assert response.json()["code"] == "QUIZ_NOT_FOUND"
