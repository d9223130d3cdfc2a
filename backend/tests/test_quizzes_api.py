import uuid

from app.models.quiz import Difficulty


def _submit_body(answers: dict[str, list[str]]) -> dict:
    return {"answers": [{"question_id": qid, "selected_option_ids": opts} for qid, opts in answers.items()]}


def test_requires_authentication(client):
    r = client.get(f"/quizzes/{uuid.uuid4()}/access")
    assert r.status_code == 401
    assert r.json()["error_code"] == "unauthorized"


def test_rejects_token_for_unknown_user(client, factory, headers_for):
    ghost = factory.user()
    headers = headers_for(ghost)
    factory.db.delete(ghost)
    factory.db.commit()

    r = client.get("/quizzes/with-status", headers=headers)
    assert r.status_code == 401


def test_submit_and_status_roundtrip(client, factory, headers_for):
    user = factory.user()
    quiz = factory.quiz(questions=2, difficulty=Difficulty.HARD)
    headers = headers_for(user)

    r = client.post(f"/quizzes/{quiz.id}/submit", headers=headers, json=_submit_body(quiz.all_correct()))
    assert r.status_code == 200
    body = r.json()
    assert body["score"] == 100
    assert body["stars_earned"] == 16
    assert body["total_stars"] == 16
    assert body["has_passed"] is True
    assert "X-Request-ID" in r.headers

    r = client.get(f"/quizzes/{quiz.id}/attempts", headers=headers)
    assert r.status_code == 200
    status = r.json()
    assert status["has_passed"] is True
    assert status["total_attempts"] == 1
    assert status["attempts"][0]["stars_earned"] == 16


def test_invalid_quiz_id(client, factory, headers_for):
    user = factory.user()
    r = client.get("/quizzes/not-a-uuid/attempts", headers=headers_for(user))
    assert r.status_code == 400
    assert r.json()["ok"] is False


def test_locked_quiz_returns_forbidden_with_context(client, factory, headers_for):
    user = factory.user(stars=1)
    quiz = factory.quiz(required_stars=6)

    r = client.post(f"/quizzes/{quiz.id}/submit", headers=headers_for(user), json=_submit_body(quiz.all_correct()))
    assert r.status_code == 403
    body = r.json()
    assert body["error_code"] == "forbidden"
    assert body["context"]["stars_needed"] == 5
    assert body["request_id"]


def test_no_attempts_left_returns_invalid_state(client, factory, headers_for):
    user = factory.user()
    quiz = factory.quiz()
    for _ in range(3):
        factory.attempt(user, quiz, score=0)

    r = client.post(f"/quizzes/{quiz.id}/submit", headers=headers_for(user), json=_submit_body(quiz.all_correct()))
    assert r.status_code == 409
    body = r.json()
    assert body["error_code"] == "invalid_state"
    assert body["context"]["remaining_attempts"] == 0
    assert body["context"]["extra_attempt_cost"] == 10


def test_duplicate_question_in_payload_is_rejected(client, factory, headers_for):
    user = factory.user()
    quiz = factory.quiz()
    qid = next(iter(quiz.correct))
    body = {"answers": [{"question_id": qid, "selected_option_ids": []}] * 2}

    r = client.post(f"/quizzes/{quiz.id}/submit", headers=headers_for(user), json=body)
    assert r.status_code == 422
    assert r.json()["error_code"] == "validation_error"


def test_purchase_flow_over_http(client, factory, headers_for):
    user = factory.user(stars=3)
    quiz = factory.quiz()
    for _ in range(3):
        factory.attempt(user, quiz, score=0)
    headers = headers_for(user)

    r = client.post(f"/quizzes/{quiz.id}/purchase-attempt", headers=headers)
    assert r.status_code == 402
    assert r.json()["error_code"] == "insufficient_funds"
    assert r.json()["context"]["cost"] == 10

    rich = factory.user(stars=12)
    for _ in range(3):
        factory.attempt(rich, quiz, score=0)
    r = client.post(f"/quizzes/{quiz.id}/purchase-attempt", headers=headers_for(rich))
    assert r.status_code == 200
    assert r.json()["remaining_stars"] == 2
    assert r.json()["remaining_attempts"] == 1


def test_access_and_correction_routes(client, factory, headers_for):
    user = factory.user(stars=2)
    quiz = factory.quiz(required_stars=2)
    headers = headers_for(user)

    r = client.get(f"/quizzes/{quiz.id}/access", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"is_unlocked": True, "required_stars": 2, "user_stars": 2, "stars_needed": 0}

    r = client.get(f"/quizzes/{quiz.id}/correction", headers=headers)
    assert r.status_code == 403

    factory.attempt(user, quiz, score=100)
    r = client.get(f"/quizzes/{quiz.id}/correction", headers=headers)
    assert r.status_code == 200
    assert r.json()["questions"][0]["options"]


def test_listing_routes(client, factory, headers_for):
    user = factory.user()
    quiz = factory.quiz()
    factory.attempt(user, quiz, score=40)
    headers = headers_for(user)

    r = client.get("/quizzes/with-status", headers=headers)
    assert r.status_code == 200
    row = next(q for q in r.json() if q["id"] == str(quiz.id))
    assert row["user_status"]["failed_attempts"] == 1
    assert row["user_status"]["remaining_attempts"] == 2

    r = client.get("/quizzes/attempts/me", headers=headers)
    assert r.status_code == 200
    assert [a["score"] for a in r.json()] == [40]


def test_revision_routes(client, factory, headers_for):
    user = factory.user()
    seeded = factory.quiz(questions=10)
    headers = headers_for(user)

    r = client.get("/quizzes/revision/random", headers=headers)
    assert r.status_code == 200
    assert len(r.json()["questions"]) == 10

    r = client.post("/quizzes/revision/submit", headers=headers, json={"answers": seeded.all_correct()})
    assert r.status_code == 200
    assert r.json()["score"] == 100
    assert r.json()["total_questions"] == 10


def test_theme_completion_route(client, factory, headers_for):
    user = factory.user()
    theme = factory.theme(title="Geometry")
    quiz = factory.quiz(theme)
    headers = headers_for(user)

    r = client.get(f"/themes/{theme.id}/completion", headers=headers)
    assert r.status_code == 200
    assert r.json()["completed"] is False
    assert r.json()["total_quizzes"] == 1

    factory.attempt(user, quiz, score=95)
    r = client.get(f"/themes/{theme.id}/completion", headers=headers)
    assert r.json()["completed"] is True
    assert r.json()["passed_quiz_ids"] == [str(quiz.id)]

    r = client.get(f"/themes/{uuid.uuid4()}/completion", headers=headers)
    assert r.status_code == 404
    assert r.json()["error_code"] == "not_found"
