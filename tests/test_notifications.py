#!/usr/bin/env python3
"""
Tests for notifications.

Run with: python -m pytest tests/test_notifications.py -v
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError


def test_admin_sends_and_user_reads(client, admin, student, login):
    login(admin)
    resp = client.post('/api/notifications', json={'user_id': student.id, 'message': 'Lab closes Friday',
                                                   'type': 'warning'})
    assert resp.status_code == 201
    assert client.post('/api/notifications', json={'user_id': 999, 'message': 'x'}).status_code == 404
    assert client.post('/api/notifications', json={'user_id': student.id, 'message': ''}).status_code == 400
    assert client.post('/api/notifications', json={'user_id': student.id, 'message': 'x',
                                                   'type': 'shout'}).status_code == 400
    client.get('/logout')

    login(student)
    data = client.get('/api/notifications').get_json()
    assert data['unread'] == 1
    note_id = data['notifications'][0]['id']
    assert data['notifications'][0]['type'] == 'warning'

    assert client.post(f'/api/notifications/{note_id}/read').get_json()['notification']['read'] is True
    assert client.get('/api/notifications?unread=1').get_json()['notifications'] == []


def test_cannot_read_someone_elses_notification(client, admin, student, login):
    from vmguardian.services.notification_service import send

    note = send(admin.id, 'for admins only')
    login(student)
    assert client.post(f'/api/notifications/{note.id}/read').status_code == 404


def test_mark_all_read(client, student, login):
    from vmguardian.services.notification_service import send

    for i in range(3):
        send(student.id, f'message {i}')
    login(student)
    assert client.post('/api/notifications/read-all').get_json()['updated'] == 3
    assert client.get('/api/notifications').get_json()['unread'] == 0


def test_students_cannot_send(client, student, login):
    login(student)
    assert client.post('/api/notifications', json={'user_id': student.id, 'message': 'hi'}).status_code == 403


def test_failed_commit_rolls_back(app, student):
    from vmguardian.models import db, Notification
    from vmguardian.services.notification_service import mark_all_read, mark_read, send

    note = send(student.id, 'Lab opens Monday')
    failure = OperationalError('UPDATE notifications', {}, Exception('database is locked'))

    with patch('sqlalchemy.orm.Session.commit', side_effect=failure):
        with pytest.raises(OperationalError):
            mark_read(student, note.id)
        with pytest.raises(OperationalError):
            mark_all_read(student)
    # Both pending changes were discarded
    assert db.session.get(Notification, note.id).read is False


def test_non_string_message_is_rejected(client, admin, student, login):
    login(admin)
    resp = client.post('/api/notifications', json={'user_id': student.id, 'message': 12})
    assert resp.status_code == 400
    assert resp.get_json()['type'] == 'ValidationError'
