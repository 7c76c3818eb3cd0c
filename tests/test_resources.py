#!/usr/bin/env python3
"""
Tests for resource usage samples.

Run with: python -m pytest tests/test_resources.py -v
"""

from datetime import datetime, timedelta


def test_record_and_summarise(client, student, login):
    login(student)
    for cpu, ram in ((10, 40), (30, 60), (50, 20)):
        resp = client.post('/api/resources', json={'cpu_usage': cpu, 'ram_usage': ram, 'storage_usage': 15})
        assert resp.status_code == 201

    summary = client.get('/api/resources/summary').get_json()['summary']
    assert summary['samples'] == 3
    assert summary['cpu_usage'] == {'avg': 30.0, 'max': 50.0}
    assert summary['ram_usage'] == {'avg': 40.0, 'max': 60.0}
    assert summary['storage_usage'] == {'avg': 15.0, 'max': 15.0}


def test_timeline_window(client, student, login):
    from vmguardian.models import db, ResourceUsage

    db.session.add(ResourceUsage(user_id=student.id, cpu_usage=99, timestamp=datetime.utcnow() - timedelta(hours=48)))
    db.session.add(ResourceUsage(user_id=student.id, cpu_usage=5, timestamp=datetime.utcnow() - timedelta(hours=1)))
    db.session.commit()

    login(student)
    assert [s['cpu_usage'] for s in client.get('/api/resources').get_json()['samples']] == [5]
    assert [s['cpu_usage'] for s in client.get('/api/resources?hours=72').get_json()['samples']] == [99, 5]
    assert client.get('/api/resources?hours=0').status_code == 400


def test_validation(client, student, login):
    login(student)
    assert client.post('/api/resources', json={'cpu_usage': 140}).status_code == 400
    assert client.post('/api/resources', json={'cpu_usage': 'hot'}).status_code == 400


def test_only_admins_view_other_users(client, admin, student, login):
    from vmguardian.services.resource_service import record_usage

    record_usage(student.id, {'cpu_usage': 42})

    login(admin)
    samples = client.get(f'/api/resources?user_id={student.id}').get_json()['samples']
    assert [s['cpu_usage'] for s in samples] == [42]
    client.get('/logout')

    login(student)
    # user_id is ignored for non-admins
    assert client.get(f'/api/resources?user_id={admin.id}').get_json()['samples'][0]['cpu_usage'] == 42
