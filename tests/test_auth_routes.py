#!/usr/bin/env python3
"""
Tests for sign-in, registration and the route guard as seen over HTTP.

Run with: python -m pytest tests/test_auth_routes.py -v
"""

from unittest.mock import patch

from conftest import PASSWORD


def test_health(client):
    assert client.get('/health').get_json() == {'ok': True}


def test_landing_is_public(client):
    data = client.get('/').get_json()
    assert data['ok'] is True
    assert data['user'] is None


def test_login_returns_role_home(client, admin):
    resp = client.post('/login', json={'email': 'ADMIN@school.edu', 'password': PASSWORD})
    data = resp.get_json()
    assert resp.status_code == 200
    assert data['redirect'] == '/admin'
    assert data['user']['email'] == 'admin@school.edu'
    print("✓ Login is case-insensitive on email and returns role home")


def test_login_updates_last_active(client, student):
    assert student.last_active is None
    client.post('/login', json={'email': student.email, 'password': PASSWORD})
    assert student.last_active is not None


def test_login_rejects_bad_credentials(client, student):
    resp = client.post('/login', json={'email': student.email, 'password': 'nope-nope'})
    assert resp.status_code == 401
    assert resp.get_json()['ok'] is False

    resp = client.post('/login', json={'email': '', 'password': ''})
    assert resp.status_code == 400


def test_suspended_account_cannot_sign_in(client, make_user):
    user = make_user('gone@school.edu', status='suspended')
    resp = client.post('/login', json={'email': user.email, 'password': PASSWORD})
    assert resp.status_code == 403
    assert 'suspended' in resp.get_json()['error']


def test_pending_account_can_sign_in(client, make_user):
    user = make_user('new@school.edu', status='pending')
    resp = client.post('/login', json={'email': user.email, 'password': PASSWORD})
    assert resp.status_code == 200


def test_login_honours_safe_next(client, student):
    resp = client.post('/login?next=/api/vms', json={'email': student.email, 'password': PASSWORD})
    assert resp.get_json()['redirect'] == '/api/vms'

    client.get('/logout')
    resp = client.post('/login?next=//evil.example.com', json={'email': student.email, 'password': PASSWORD})
    assert resp.get_json()['redirect'] == '/student'

    # Browsers treat '/\host' like '//host'
    client.get('/logout')
    resp = client.post('/login?next=/%5Cevil.example.com', json={'email': student.email, 'password': PASSWORD})
    assert resp.get_json()['redirect'] == '/student'

    client.get('/logout')
    resp = client.post('/login', json={'email': student.email, 'password': PASSWORD, 'next': '/\\evil.example.com'})
    assert resp.get_json()['redirect'] == '/student'


def test_safe_next_path():
    from vmguardian.utils.auth_helpers import safe_next_path

    assert safe_next_path('/api/vms?state=running') == '/api/vms?state=running'
    assert safe_next_path('//evil.example.com') is None
    assert safe_next_path('/\\evil.example.com') is None
    assert safe_next_path('/ok\\path') is None
    assert safe_next_path('https://evil.example.com/') is None
    assert safe_next_path('') is None
    assert safe_next_path(None) is None


def test_login_rejects_non_string_fields(client, student):
    resp = client.post('/login', json={'email': 5, 'password': PASSWORD})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['ok'] is False
    assert body['type'] == 'ValidationError'
    assert 'email' in body['error']

    resp = client.post('/login', json={'email': student.email, 'password': ['secret123']})
    assert resp.status_code == 400


def test_register_rejects_non_string_fields(client):
    resp = client.post('/register', json={
        'email': 'fresh@school.edu', 'name': 42, 'password': 'abcdef', 'role': 'student',
    })
    assert resp.status_code == 400
    assert resp.get_json()['type'] == 'ValidationError'


def test_form_login_redirects(client, student):
    resp = client.post('/login', data={'email': student.email, 'password': PASSWORD})
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/student')


def test_register_creates_pending_account(client):
    resp = client.post('/register', json={
        'email': 'Fresh@School.edu', 'name': 'Fresh Student', 'password': 'abcdef', 'role': 'student',
    })
    assert resp.status_code == 201
    user = resp.get_json()['user']
    assert user['email'] == 'fresh@school.edu'
    assert user['status'] == 'pending'


def test_register_validation(client, student):
    base = {'email': 'x@school.edu', 'name': 'Xavier', 'password': 'abcdef', 'role': 'student'}

    assert client.post('/register', json={**base, 'email': 'not-an-email'}).status_code == 400
    assert client.post('/register', json={**base, 'name': 'X'}).status_code == 400
    assert client.post('/register', json={**base, 'password': '123'}).status_code == 400
    assert client.post('/register', json={**base, 'role': 'admin'}).status_code == 400
    assert client.post('/register', json={**base, 'email': student.email}).status_code == 409


def test_guarded_page_redirects_to_login_with_next(client):
    resp = client.get('/admin')
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/login?next=%2Fadmin')


def test_student_sent_home_from_admin_dashboard(client, student, login):
    login(student)
    resp = client.get('/admin')
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/student')


def test_admin_sent_home_from_student_dashboard(client, admin, login):
    login(admin)
    resp = client.get('/student')
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/admin')


def test_instructor_has_no_dashboard_and_goes_to_landing(client, make_user, login):
    login(make_user('teach@school.edu', role='instructor'))
    resp = client.get('/student')
    assert resp.status_code == 302
    assert resp.headers['Location'].endswith('/')


def test_dashboards_render_for_their_roles(client, admin, student, login):
    login(student)
    data = client.get('/student').get_json()
    assert data['page'] == 'student'
    assert set(data['vm_states']) == {'running', 'stopped', 'suspended', 'creating', 'error'}

    client.get('/logout')
    login(admin)
    data = client.get('/admin').get_json()
    assert data['page'] == 'admin'
    assert data['users']['by_role'] == {'admin': 1, 'student': 1}


def test_api_guard_uses_status_codes(client, student, login):
    resp = client.get('/api/auth/me')
    assert resp.status_code == 401
    assert resp.get_json()['redirect'] == '/login?next=%2Fapi%2Fauth%2Fme'

    login(student)
    assert client.get('/api/auth/me').get_json()['home'] == '/student'

    resp = client.get('/api/vm-requests')
    assert resp.status_code == 403
    assert resp.get_json()['redirect'] == '/student'


def test_pending_session_answers_503(client):
    from vmguardian.services.access_guard import SessionState

    with patch('vmguardian.utils.decorators.resolve_session_state', return_value=SessionState.loading()):
        resp = client.get('/api/auth/me')
    assert resp.status_code == 503
    assert resp.headers['Retry-After'] == '1'


def test_session_of_suspended_user_is_dropped(client, admin, student, login):
    from vmguardian.models import db

    login(student)
    student.status = 'suspended'
    db.session.commit()

    assert client.get('/api/auth/me').status_code == 401
    print("✓ Suspending a user ends their session")


def test_logout_clears_session(client, student, login):
    login(student)
    resp = client.get('/logout')
    assert resp.status_code == 302
    assert client.get('/api/auth/me').status_code == 401
