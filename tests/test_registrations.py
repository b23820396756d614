from kmmedia.models import db, Notification, Registration, User
from kmmedia.services import NotificationService
from kmmedia.services.email_service import EmailService


APPLICATION = {
    'date_of_birth': '2001-04-12',
    'residential_address': 'East Legon, Accra',
    'nationality': 'Ghanaian',
    'level_of_education': 'SHS',
    'name_of_school': 'Accra Academy',
    'year_attended_from': 2015,
    'year_attended_to': 2018,
    'parent_guardian_name': 'Esi Mensah',
    'parent_guardian_telephone': '0244000000',
    'declaration': 'I declare the information above is true'
}


def test_apply_creates_pending_registration(client, student, course_id):
    resp = client.post('/api/registrations', headers=student.headers,
                       json=dict(APPLICATION, course_id=course_id))
    assert resp.status_code == 201
    data = resp.get_json()['data']
    assert data['status'] == 'pending'
    assert data['date_of_birth'] == '2001-04-12'
    assert data['email'] == student.email
    assert data['preferred_course'] == 'Video Production'


def test_apply_requires_declaration(client, student, course_id):
    payload = {k: v for k, v in APPLICATION.items() if k != 'declaration'}
    resp = client.post('/api/registrations', headers=student.headers, json=dict(payload, course_id=course_id))
    assert resp.status_code == 400


def test_duplicate_application_conflicts(client, student, course_id):
    client.post('/api/registrations', headers=student.headers, json=dict(APPLICATION, course_id=course_id))
    again = client.post('/api/registrations', headers=student.headers, json=dict(APPLICATION, course_id=course_id))
    assert again.status_code == 409


def test_inactive_course_rejected(client, student, make_course):
    course_id = make_course(is_active=False)
    resp = client.post('/api/registrations', headers=student.headers, json=dict(APPLICATION, course_id=course_id))
    assert resp.status_code == 404


def test_capacity_counts_pending_and_approved(client, make_user, make_course, make_registration):
    course_id = make_course(max_students=2)
    make_registration(make_user().id, course_id, 'pending')
    make_registration(make_user().id, course_id, 'approved')
    make_registration(make_user().id, course_id, 'rejected')

    latecomer = make_user()
    resp = client.post('/api/registrations', headers=latecomer.headers, json=dict(APPLICATION, course_id=course_id))
    assert resp.status_code == 400
    assert 'full' in resp.get_json()['message']


def test_check_and_list_own(client, student, course_id, make_registration):
    assert client.get(f"/api/registrations/check/{course_id}", headers=student.headers).get_json()['data']['registered'] is False
    make_registration(student.id, course_id)
    check = client.get(f"/api/registrations/check/{course_id}", headers=student.headers).get_json()['data']
    assert check['registered'] is True
    mine = client.get('/api/registrations/my', headers=student.headers).get_json()['data']
    assert len(mine) == 1


def test_cancel_only_pending(app, client, student, make_course, make_registration):
    pending_id = make_registration(student.id, make_course())
    approved_id = make_registration(student.id, make_course(name='Other'), 'approved')

    assert client.delete(f"/api/registrations/{pending_id}", headers=student.headers).status_code == 200
    assert client.delete(f"/api/registrations/{approved_id}", headers=student.headers).status_code == 400
    with app.app_context():
        assert db.session.get(Registration, pending_id) is None


def test_cannot_cancel_someone_elses(client, make_user, course_id, make_registration):
    owner = make_user()
    other = make_user()
    registration_id = make_registration(owner.id, course_id)
    assert client.delete(f"/api/registrations/{registration_id}", headers=other.headers).status_code == 403


def test_admin_status_change_notifies_student(app, client, admin, student, course_id, make_registration):
    registration_id = make_registration(student.id, course_id)
    resp = client.patch(f"/api/registrations/{registration_id}/status", headers=admin.headers,
                        json={'status': 'approved'})
    assert resp.status_code == 200
    assert resp.get_json()['data']['status'] == 'approved'

    with app.app_context():
        notifications = Notification.query.filter_by(user_id=student.id).all()
        assert len(notifications) == 1
        assert notifications[0].category == 'registration'
        assert 'approved' in notifications[0].message


def test_status_email_waits_for_commit(monkeypatch, app, client, admin, student, course_id, make_registration):
    app.config['MAIL_ENABLED'] = True
    sent = []
    monkeypatch.setattr(EmailService, '_send_email_html',
                        lambda to_email, subject, html_content: sent.append((to_email, subject)) or True)

    registration_id = make_registration(student.id, course_id)
    client.patch(f"/api/registrations/{registration_id}/status", headers=admin.headers,
                 json={'status': 'approved'})
    assert sent == [(student.email, 'Registration approved')]

    with app.app_context():
        user = db.session.get(User, student.id)
        NotificationService.notify(user, 'general', 'Never delivered', 'Rolled back')
        db.session.rollback()
        db.session.commit()
        assert Notification.query.filter_by(title='Never delivered').count() == 0
    assert sent == [(student.email, 'Registration approved')]


def test_admin_status_must_be_valid(client, admin, student, course_id, make_registration):
    registration_id = make_registration(student.id, course_id)
    resp = client.patch(f"/api/registrations/{registration_id}/status", headers=admin.headers,
                        json={'status': 'enrolled'})
    assert resp.status_code == 400


def test_admin_lists_by_status(client, admin, make_user, course_id, make_registration):
    make_registration(make_user().id, course_id, 'pending')
    make_registration(make_user().id, course_id, 'approved')

    pending = client.get('/api/registrations?status=pending', headers=admin.headers).get_json()['data']
    assert [r['status'] for r in pending] == ['pending']
    everything = client.get('/api/registrations', headers=admin.headers).get_json()['data']
    assert len(everything) == 2


def test_student_cannot_list_all(client, student):
    assert client.get('/api/registrations', headers=student.headers).status_code == 403
