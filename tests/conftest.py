#!/usr/bin/env python3
"""
Shared fixtures: an app on an in-memory SQLite database with the
database-only hypervisor backend, plus helpers for users and sign-in.
"""

import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

PASSWORD = 'secret123'


@pytest.fixture
def app():
    from vmguardian import create_app
    from vmguardian.models import db

    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'VM_BACKEND': 'database',
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Factory: make_user('a@x.io', role='admin', status='active')."""
    from vmguardian.services.user_service import create_user

    def _make(email, role='student', status='active', name=None, password=PASSWORD):
        return create_user(email, name or email.split('@')[0].title(), password, role=role, status=status)
    return _make


@pytest.fixture
def login(client):
    def _login(user, password=PASSWORD):
        resp = client.post('/login', json={'email': user.email, 'password': password})
        assert resp.status_code == 200, resp.get_json()
        return resp
    return _login


@pytest.fixture
def admin(make_user):
    return make_user('admin@school.edu', role='admin')


@pytest.fixture
def student(make_user):
    return make_user('student@school.edu', role='student')


@pytest.fixture
def make_vm(app):
    """Factory for VM records owned by a user."""
    from vmguardian.models import db, VirtualMachine

    def _make(owner, name='lab-vm', status='running', os='linux', ip_address=None):
        vm = VirtualMachine(name=name, user_id=owner.id, os=os, cpu=2, memory=2048, storage=20)
        vm.apply_status(status, ip_address)
        db.session.add(vm)
        db.session.commit()
        return vm
    return _make
