#!/usr/bin/env python3
"""
Tests for database models.

Run with: python -m pytest tests/test_models.py -v
"""


def test_database_models_exist():
    """Test that database models can be imported."""
    from vmguardian.models import (
        Assignment, Document, Notification, ResourceUsage, User, VirtualMachine, VMRequest, VMStatusHistory, VMType,
    )

    for model in (Assignment, Document, Notification, ResourceUsage, User,
                  VirtualMachine, VMRequest, VMStatusHistory, VMType):
        assert model is not None
    print("✓ Database models exist")


def test_user_password_hashing():
    """Test that user password hashing works correctly."""
    from vmguardian.models import User

    user = User(email='testuser@school.edu', name='Test', role='student')
    user.set_password('testpassword123')

    assert user.password_hash is not None
    assert user.password_hash != 'testpassword123'
    assert user.check_password('testpassword123')
    assert not user.check_password('wrongpassword')

    print("✓ User password hashing works")


def test_user_roles():
    """Test that user role properties work correctly."""
    from vmguardian.models import User

    admin = User(email='a@x.io', name='A', role='admin')
    instructor = User(email='i@x.io', name='I', role='instructor')
    student = User(email='s@x.io', name='S', role='student')

    assert admin.is_admin and not admin.is_instructor and not admin.is_student
    assert instructor.is_instructor and not instructor.is_admin
    assert student.is_student and not student.is_admin

    print("✓ User role properties work")


def test_account_status_controls_sign_in():
    from vmguardian.models import User

    assert User(status='active').can_sign_in
    assert User(status='pending').can_sign_in
    assert not User(status='suspended').can_sign_in
    assert not User(status='inactive').can_sign_in


def test_user_defaults_after_insert(app):
    from vmguardian.models import db, User

    user = User(email='new@school.edu', name='New')
    user.set_password('whatever1')
    db.session.add(user)
    db.session.commit()

    assert user.role == 'student'
    assert user.status == 'pending'
    assert user.created_at is not None
    assert 'password_hash' not in user.to_dict()


def test_vm_address_only_kept_while_running(app, student, make_vm):
    vm = make_vm(student, status='running', ip_address='10.0.0.5')
    assert vm.ip_address == '10.0.0.5'
    assert vm.to_dict()['ip'] == '10.0.0.5'

    vm.apply_status('shut off')
    assert vm.ip_address is None
    assert vm.to_dict()['ip'] is None

    # An address reported for a VM that is not running is ignored
    vm.apply_status('paused', '10.0.0.9')
    assert vm.ip_address is None
    print("✓ Address dropped when VM leaves running")


def test_vm_to_dict_uses_canonical_state(app, student, make_vm):
    vm = make_vm(student, status='Domain is running')
    data = vm.to_dict()
    assert data['raw_status'] == 'Domain is running'
    assert data['status'] == 'running'
    assert data['status_label'] == 'Running'
    assert 'delete' not in data['actions']
    assert 'delete' in vm.to_dict(is_admin=True)['actions']


def test_new_vm_defaults_to_creating(app, student):
    from vmguardian.models import db, VirtualMachine
    from vmguardian.services.vm_state import VMState

    vm = VirtualMachine(name='fresh', user_id=student.id)
    db.session.add(vm)
    db.session.commit()
    assert vm.status == 'creating'
    assert vm.state is VMState.CREATING
