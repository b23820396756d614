from kmmedia.models import db, Payment


COURSE_PAYLOAD = {
    'name': 'Photography Basics',
    'description': 'Learn exposure, lighting and composition.',
    'duration': '8 weeks',
    'price': 950,
    'max_students': 20,
    'category': 'Photography',
    'level': 'beginner'
}


def test_public_list_hides_inactive(client, make_course):
    make_course(name='Active Course')
    make_course(name='Hidden Course', is_active=False)

    resp = client.get('/api/courses')
    assert resp.status_code == 200
    names = [c['name'] for c in resp.get_json()['data']]
    assert names == ['Active Course']


def test_public_list_filters(client, make_course):
    make_course(name='Editing', category='Media', level='advanced')
    make_course(name='Sound Design', category='Audio', level='beginner')

    by_category = client.get('/api/courses?category=Audio').get_json()['data']
    assert [c['name'] for c in by_category] == ['Sound Design']

    by_search = client.get('/api/courses?search=sound').get_json()['data']
    assert [c['name'] for c in by_search] == ['Sound Design']

    by_level = client.get('/api/courses?level=advanced').get_json()['data']
    assert [c['name'] for c in by_level] == ['Editing']


def test_inactive_course_not_found_publicly(client, make_course):
    course_id = make_course(is_active=False)
    assert client.get(f"/api/courses/{course_id}").status_code == 404


def test_admin_creates_course(client, admin):
    resp = client.post('/api/courses', headers=admin.headers, json=COURSE_PAYLOAD)
    assert resp.status_code == 201
    data = resp.get_json()['data']
    assert data['price'] == 950.0
    assert data['is_active'] is True


def test_course_validation(client, admin):
    payload = dict(COURSE_PAYLOAD, description='too short')
    assert client.post('/api/courses', headers=admin.headers, json=payload).status_code == 400

    payload = dict(COURSE_PAYLOAD, price=-5)
    assert client.post('/api/courses', headers=admin.headers, json=payload).status_code == 400

    payload = dict(COURSE_PAYLOAD, max_students=0)
    assert client.post('/api/courses', headers=admin.headers, json=payload).status_code == 400

    payload = {k: v for k, v in COURSE_PAYLOAD.items() if k != 'category'}
    assert client.post('/api/courses', headers=admin.headers, json=payload).status_code == 400


def test_student_cannot_create_course(client, student):
    assert client.post('/api/courses', headers=student.headers, json=COURSE_PAYLOAD).status_code == 403


def test_update_and_toggle(client, admin, course_id):
    resp = client.put(f"/api/courses/{course_id}", headers=admin.headers, json={'price': '1500.50'})
    assert resp.get_json()['data']['price'] == 1500.5

    toggled = client.patch(f"/api/courses/{course_id}/toggle", headers=admin.headers)
    assert toggled.get_json()['data']['is_active'] is False
    assert client.get(f"/api/courses/{course_id}").status_code == 404


def test_delete_blocked_by_registrations(client, admin, student, course_id, make_registration):
    make_registration(student.id, course_id)
    resp = client.delete(f"/api/courses/{course_id}", headers=admin.headers)
    assert resp.status_code == 409


def test_delete_blocked_by_payments(app, client, admin, student, course_id):
    with app.app_context():
        db.session.add(Payment(user_id=student.id, course_id=course_id, reference='KM_MEDIA_TEST0001',
                               amount=100, status='failed', payment_type='application_fee'))
        db.session.commit()
    assert client.delete(f"/api/courses/{course_id}", headers=admin.headers).status_code == 409


def test_delete_unused_course(client, admin, course_id):
    assert client.delete(f"/api/courses/{course_id}", headers=admin.headers).status_code == 200
    assert client.get(f"/api/courses/{course_id}").status_code == 404


def test_assign_trainer_requires_trainer_role(client, admin, student, trainer, course_id):
    bad = client.put(f"/api/courses/{course_id}/trainer", headers=admin.headers, json={'trainer_id': student.id})
    assert bad.status_code == 400

    good = client.put(f"/api/courses/{course_id}/trainer", headers=admin.headers, json={'trainer_id': trainer.id})
    assert good.status_code == 200
    assert good.get_json()['data']['instructor_id'] == trainer.id


def test_course_stats(app, client, admin, student, make_course, make_registration):
    first = make_course()
    make_course(is_active=False)
    make_registration(student.id, first)
    with app.app_context():
        db.session.add(Payment(user_id=student.id, course_id=first, reference='KM_MEDIA_TEST0002',
                               amount=100, status='success', payment_type='application_fee'))
        db.session.add(Payment(user_id=student.id, course_id=first, reference='KM_MEDIA_TEST0003',
                               amount=300, status='pending', payment_type='installment'))
        db.session.commit()

    stats = client.get('/api/courses/admin/stats', headers=admin.headers).get_json()['data']
    assert stats == {
        'total_courses': 2,
        'active_courses': 1,
        'total_registrations': 1,
        'total_revenue': 100.0
    }
