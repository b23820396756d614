from kmmedia.models import db, User


def test_register_returns_token_and_student(client):
    resp = client.post('/api/auth/register', json={
        'email': 'Yaw@Example.com',
        'password': 'secret123',
        'first_name': 'Yaw',
        'last_name': 'Boateng'
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['ok'] is True
    assert body['data']['user']['email'] == 'yaw@example.com'
    assert body['data']['user']['role'] == 'student'
    assert body['data']['token']


def test_register_duplicate_email_conflicts(client, student):
    resp = client.post('/api/auth/register', json={
        'email': student.email,
        'password': 'secret123',
        'first_name': 'Dup',
        'last_name': 'User'
    })
    assert resp.status_code == 409
    assert resp.get_json()['ok'] is False


def test_register_rejects_short_password(client):
    resp = client.post('/api/auth/register', json={
        'email': 'short@example.com',
        'password': '123',
        'first_name': 'S',
        'last_name': 'P'
    })
    assert resp.status_code == 400


def test_login_and_me(client, student):
    resp = client.post('/api/auth/login', json={'email': student.email, 'password': student.password})
    assert resp.status_code == 200
    token = resp.get_json()['data']['token']

    me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {token}"})
    assert me.status_code == 200
    assert me.get_json()['data']['id'] == student.id


def test_login_wrong_password(client, student):
    resp = client.post('/api/auth/login', json={'email': student.email, 'password': 'wrong-pass'})
    assert resp.status_code == 401


def test_inactive_account_cannot_login(client, make_user):
    user = make_user('student', is_active=False)
    resp = client.post('/api/auth/login', json={'email': user.email, 'password': user.password})
    assert resp.status_code == 403


def test_me_requires_token(client):
    assert client.get('/api/auth/me').status_code == 401
    bad = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-token'})
    assert bad.status_code == 401


def test_change_password(client, student):
    resp = client.post('/api/auth/change-password', headers=student.headers, json={
        'current_password': student.password,
        'new_password': 'newsecret1'
    })
    assert resp.status_code == 200

    login = client.post('/api/auth/login', json={'email': student.email, 'password': 'newsecret1'})
    assert login.status_code == 200


def test_update_profile(client, student):
    resp = client.put('/api/auth/profile', headers=student.headers, json={
        'first_name': 'Akosua', 'phone': '+233 20 000 0000', 'bio': 'Aspiring editor'
    })
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['first_name'] == 'Akosua'
    assert data['bio'] == 'Aspiring editor'


def test_admin_creates_trainer(client, admin):
    resp = client.post('/api/admin/users', headers=admin.headers, json={
        'email': 'trainer@example.com',
        'password': 'secret123',
        'first_name': 'Kwame',
        'last_name': 'Asante',
        'role': 'trainer'
    })
    assert resp.status_code == 201
    assert resp.get_json()['data']['role'] == 'trainer'

    listed = client.get('/api/admin/users?role=trainer', headers=admin.headers)
    assert [u['email'] for u in listed.get_json()['data']] == ['trainer@example.com']


def test_student_cannot_manage_users(client, student):
    assert client.get('/api/admin/users', headers=student.headers).status_code == 403


def test_deactivated_user_token_stops_working(app, client, admin, student):
    resp = client.patch(f"/api/admin/users/{student.id}/status", headers=admin.headers,
                        json={'is_active': False})
    assert resp.status_code == 200
    with app.app_context():
        assert db.session.get(User, student.id).is_active is False

    assert client.get('/api/auth/me', headers=student.headers).status_code == 401


def test_admin_cannot_deactivate_self(client, admin):
    resp = client.patch(f"/api/admin/users/{admin.id}/status", headers=admin.headers,
                        json={'is_active': False})
    assert resp.status_code == 400
