import io
from datetime import datetime, timedelta

import pytest

from kmmedia.models import db, QuizAttempt, Notification


QUIZ = {
    'title': 'Lighting Quiz',
    'time_limit': 30,
    'max_attempts': 2,
    'passing_score': 60,
    'questions': [
        {
            'question': 'Which light is the main source?',
            'question_type': 'multiple_choice',
            'options': ['Key light', 'Fill light', 'Back light'],
            'correct_answer': 'Key light',
            'points': 2
        },
        {
            'question': 'A softbox diffuses light.',
            'question_type': 'true_false',
            'correct_answer': 'True'
        },
        {
            'question': 'Name the ratio between key and fill light.',
            'question_type': 'short_answer',
            'correct_answer': 'Lighting ratio'
        }
    ]
}


@pytest.fixture
def enrolled(make_course, make_registration, student, trainer):
    course_id = make_course(instructor_id=trainer.id)
    make_registration(student.id, course_id, 'approved')
    return course_id


def _create_assignment(client, trainer, course_id, **fields):
    payload = {'title': 'Shoot a short scene', 'description': 'Two minutes, one location.', 'max_score': 50}
    payload.update(fields)
    resp = client.post(f"/api/courses/{course_id}/assignments", headers=trainer.headers, json=payload)
    assert resp.status_code == 201
    return resp.get_json()['data']


def _create_quiz(client, trainer, course_id, **fields):
    resp = client.post(f"/api/courses/{course_id}/quizzes", headers=trainer.headers, json=dict(QUIZ, **fields))
    assert resp.status_code == 201
    return resp.get_json()['data']


def _answer_key(quiz):
    by_type = {q['question_type']: q['id'] for q in quiz['questions']}
    return by_type


def test_submit_and_grade_assignment(app, client, student, trainer, enrolled):
    assignment = _create_assignment(client, trainer, enrolled)

    resp = client.post(f"/api/assignments/{assignment['id']}/submit", headers=student.headers,
                       json={'submission_text': 'Here is my scene'})
    assert resp.status_code == 201
    submission = resp.get_json()['data']
    assert submission['status'] == 'submitted'

    listed = client.get(f"/api/courses/{enrolled}/assignments", headers=student.headers).get_json()['data']
    assert listed[0]['submission']['id'] == submission['id']

    too_high = client.post(f"/api/submissions/{submission['id']}/grade", headers=trainer.headers,
                           json={'score': 60})
    assert too_high.status_code == 400

    graded = client.post(f"/api/submissions/{submission['id']}/grade", headers=trainer.headers,
                         json={'score': 42, 'feedback': 'Nice framing'})
    assert graded.status_code == 200
    assert graded.get_json()['data']['status'] == 'graded'

    with app.app_context():
        notice = Notification.query.filter_by(user_id=student.id, category='assignment').one()
        assert '42/50' in notice.message

    again = client.post(f"/api/assignments/{assignment['id']}/submit", headers=student.headers,
                        json={'submission_text': 'Second try'})
    assert again.status_code == 409


def test_resubmission_before_grading_updates(client, student, trainer, enrolled):
    assignment = _create_assignment(client, trainer, enrolled)
    first = client.post(f"/api/assignments/{assignment['id']}/submit", headers=student.headers,
                        json={'submission_text': 'Draft'}).get_json()['data']
    second = client.post(f"/api/assignments/{assignment['id']}/submit", headers=student.headers,
                         json={'submission_text': 'Final'}).get_json()['data']
    assert first['id'] == second['id']
    assert second['submission_text'] == 'Final'

    submissions = client.get(f"/api/assignments/{assignment['id']}/submissions",
                             headers=trainer.headers).get_json()['data']
    assert len(submissions) == 1


def test_late_submission_with_file(client, student, trainer, enrolled):
    assignment = _create_assignment(client, trainer, enrolled, due_date='2000-01-01T00:00:00Z')
    resp = client.post(
        f"/api/assignments/{assignment['id']}/submit",
        headers=student.headers,
        data={'file': (io.BytesIO(b'scene notes'), 'scene.txt')},
        content_type='multipart/form-data'
    )
    assert resp.status_code == 201
    data = resp.get_json()['data']
    assert data['status'] == 'late'
    assert data['file_name'] == 'scene.txt'


def test_empty_submission_rejected(client, student, trainer, enrolled):
    assignment = _create_assignment(client, trainer, enrolled)
    resp = client.post(f"/api/assignments/{assignment['id']}/submit", headers=student.headers, json={})
    assert resp.status_code == 400


def test_unenrolled_student_cannot_submit(client, make_user, trainer, enrolled):
    outsider = make_user()
    assignment = _create_assignment(client, trainer, enrolled)
    resp = client.post(f"/api/assignments/{assignment['id']}/submit", headers=outsider.headers,
                       json={'submission_text': 'Let me in'})
    assert resp.status_code == 403


def test_quiz_answers_hidden_from_students(client, student, trainer, enrolled):
    quiz = _create_quiz(client, trainer, enrolled)
    assert quiz['total_points'] == 4

    as_student = client.get(f"/api/quizzes/{quiz['id']}", headers=student.headers).get_json()['data']
    assert all('correct_answer' not in q for q in as_student['questions'])

    as_trainer = client.get(f"/api/quizzes/{quiz['id']}", headers=trainer.headers).get_json()['data']
    assert [q['correct_answer'] for q in as_trainer['questions']] == ['Key light', 'true', 'Lighting ratio']


def test_quiz_validation(client, trainer, enrolled):
    no_questions = dict(QUIZ, questions=[])
    resp = client.post(f"/api/courses/{enrolled}/quizzes", headers=trainer.headers, json=no_questions)
    assert resp.status_code == 400

    bad_choice = dict(QUIZ, questions=[{
        'question': 'Pick one', 'question_type': 'multiple_choice',
        'options': ['A', 'B'], 'correct_answer': 'C'
    }])
    resp = client.post(f"/api/courses/{enrolled}/quizzes", headers=trainer.headers, json=bad_choice)
    assert resp.status_code == 400


def test_quiz_attempt_scoring(client, student, trainer, enrolled):
    quiz = _create_quiz(client, trainer, enrolled)
    quiz = client.get(f"/api/quizzes/{quiz['id']}", headers=trainer.headers).get_json()['data']
    ids = _answer_key(quiz)

    attempt = client.post(f"/api/quizzes/{quiz['id']}/attempts", headers=student.headers)
    assert attempt.status_code == 201
    attempt_id = attempt.get_json()['data']['id']

    resumed = client.post(f"/api/quizzes/{quiz['id']}/attempts", headers=student.headers)
    assert resumed.get_json()['data']['id'] == attempt_id

    resp = client.post(f"/api/attempts/{attempt_id}/submit", headers=student.headers, json={'answers': {
        str(ids['multiple_choice']): 'Key light',
        str(ids['true_false']): 'TRUE',
        str(ids['short_answer']): 'wrong'
    }})
    assert resp.status_code == 200
    result = resp.get_json()['data']
    assert result['status'] == 'completed'
    assert result['points_earned'] == 3
    assert result['score'] == 75
    assert result['passed'] is True

    again = client.post(f"/api/attempts/{attempt_id}/submit", headers=student.headers, json={'answers': {}})
    assert again.status_code == 400


def test_quiz_attempt_limit(client, student, trainer, enrolled):
    quiz = _create_quiz(client, trainer, enrolled, max_attempts=1)
    attempt_id = client.post(f"/api/quizzes/{quiz['id']}/attempts", headers=student.headers).get_json()['data']['id']
    client.post(f"/api/attempts/{attempt_id}/submit", headers=student.headers, json={'answers': {}})

    resp = client.post(f"/api/quizzes/{quiz['id']}/attempts", headers=student.headers)
    assert resp.status_code == 400


def test_late_quiz_submission_is_abandoned(app, client, student, trainer, enrolled):
    quiz = _create_quiz(client, trainer, enrolled)
    attempt_id = client.post(f"/api/quizzes/{quiz['id']}/attempts", headers=student.headers).get_json()['data']['id']

    with app.app_context():
        attempt = db.session.get(QuizAttempt, attempt_id)
        attempt.started_at = datetime.utcnow() - timedelta(minutes=45)
        db.session.commit()

    resp = client.post(f"/api/attempts/{attempt_id}/submit", headers=student.headers, json={'answers': {}})
    assert resp.status_code == 200
    assert resp.get_json()['data']['status'] == 'abandoned'
    assert resp.get_json()['data']['score'] is None

    attempts = client.get(f"/api/quizzes/{quiz['id']}/attempts", headers=student.headers).get_json()['data']
    assert [a['status'] for a in attempts] == ['abandoned']


def test_trainer_cannot_take_quiz(client, trainer, enrolled):
    quiz = _create_quiz(client, trainer, enrolled)
    assert client.post(f"/api/quizzes/{quiz['id']}/attempts", headers=trainer.headers).status_code == 403


def test_pass_mark_uses_unrounded_percentage(client, student, trainer, enrolled):
    statements = [
        {'question': f"Statement {n} is true.", 'question_type': 'true_false', 'correct_answer': 'True'}
        for n in range(3)
    ]
    quiz = _create_quiz(client, trainer, enrolled, passing_score=67, questions=statements)
    question_ids = [q['id'] for q in quiz['questions']]

    attempt_id = client.post(f"/api/quizzes/{quiz['id']}/attempts", headers=student.headers).get_json()['data']['id']
    result = client.post(f"/api/attempts/{attempt_id}/submit", headers=student.headers, json={'answers': {
        str(question_ids[0]): 'true', str(question_ids[1]): 'true', str(question_ids[2]): 'false'
    }}).get_json()['data']
    assert result['score'] == 67
    assert result['passed'] is False


def test_pass_result_survives_quiz_edit(client, student, trainer, enrolled):
    quiz = _create_quiz(client, trainer, enrolled)
    quiz = client.get(f"/api/quizzes/{quiz['id']}", headers=trainer.headers).get_json()['data']
    ids = _answer_key(quiz)

    attempt_id = client.post(f"/api/quizzes/{quiz['id']}/attempts", headers=student.headers).get_json()['data']['id']
    client.post(f"/api/attempts/{attempt_id}/submit", headers=student.headers, json={'answers': {
        str(ids['multiple_choice']): 'Key light', str(ids['true_false']): 'true'
    }})

    updated = client.put(f"/api/quizzes/{quiz['id']}", headers=trainer.headers, json={'passing_score': 90})
    assert updated.status_code == 200

    attempts = client.get(f"/api/quizzes/{quiz['id']}/attempts", headers=student.headers).get_json()['data']
    assert attempts[0]['score'] == 75
    assert attempts[0]['passed'] is True
