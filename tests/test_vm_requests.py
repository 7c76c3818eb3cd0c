#!/usr/bin/env python3
"""
Tests for the VM request workflow.

Run with: python -m pytest tests/test_vm_requests.py -v
"""

import pytest


@pytest.fixture
def submitted(client, student, login):
    login(student)
    resp = client.post('/api/vm-requests', json={'purpose': 'Networking lab', 'course': 'NET101'})
    assert resp.status_code == 201
    client.get('/logout')
    return resp.get_json()['request']


def test_request_defaults(submitted):
    assert submitted['status'] == 'pending'
    assert submitted['vcpus'] == 2
    assert submitted['memory'] == 2048
    assert submitted['storage'] == 20
    assert submitted['duration'] == '1 month'
    assert submitted['os_type'] == 'linux'
    assert submitted['requester_email'] == 'student@school.edu'


def test_request_validation(client, student, login):
    login(student)
    assert client.post('/api/vm-requests', json={}).status_code == 400
    assert client.post('/api/vm-requests', json={'purpose': 'x', 'memory': 512}).status_code == 400
    assert client.post('/api/vm-requests', json={'purpose': 'x', 'vcpus': 0}).status_code == 400
    assert client.post('/api/vm-requests', json={'purpose': 'x', 'storage': 'lots'}).status_code == 400
    assert client.post('/api/vm-requests', json={'purpose': 'x', 'duration': 'forever'}).status_code == 400
    assert client.post('/api/vm-requests', json={'purpose': 'x', 'os_type': 'beos'}).status_code == 400
    assert client.post('/api/vm-requests', json={'purpose': 'x', 'vm_type_id': 99}).status_code == 400


def test_admins_do_not_submit_requests(client, admin, login):
    login(admin)
    assert client.post('/api/vm-requests', json={'purpose': 'x'}).status_code == 403


def test_mine_lists_only_own(client, submitted, make_user, login):
    login(make_user('other@school.edu'))
    assert client.get('/api/vm-requests/mine').get_json()['requests'] == []


def test_approve_provisions_creating_vm(client, admin, student, submitted, login):
    from vmguardian.models import Notification, VirtualMachine

    login(admin)
    resp = client.post(f"/api/vm-requests/{submitted['id']}/approve", json={})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['request']['status'] == 'approved'
    assert data['request']['response_message'] == 'Your VM request has been approved.'
    assert data['vm']['status'] == 'creating'
    assert data['vm']['name'] == f"vm-{submitted['id']}"
    assert data['vm']['user_id'] == student.id
    assert data['vm']['course'] == 'NET101'

    vm = VirtualMachine.query.filter_by(name=data['vm']['name']).one()
    assert vm.history.count() == 1

    note = Notification.query.filter_by(user_id=student.id).one()
    assert note.type == 'success'
    print("✓ Approval creates VM and notifies requester")


def test_approve_with_name_and_message(client, admin, submitted, login):
    login(admin)
    resp = client.post(f"/api/vm-requests/{submitted['id']}/approve",
                       json={'name': 'net-lab-01', 'response_message': 'Enjoy'})
    data = resp.get_json()
    assert data['vm']['name'] == 'net-lab-01'
    assert data['request']['response_message'] == 'Enjoy'


def test_decided_request_cannot_be_decided_again(client, admin, submitted, login):
    login(admin)
    rid = submitted['id']
    assert client.post(f'/api/vm-requests/{rid}/reject', json={}).status_code == 200
    assert client.post(f'/api/vm-requests/{rid}/approve', json={}).status_code == 409
    assert client.post(f'/api/vm-requests/{rid}/reject', json={}).status_code == 409


def test_reject_default_message_and_notification(client, admin, student, submitted, login):
    from vmguardian.models import Notification, VirtualMachine

    login(admin)
    data = client.post(f"/api/vm-requests/{submitted['id']}/reject", json={}).get_json()
    assert data['request']['status'] == 'rejected'
    assert data['request']['response_message'] == 'Your VM request has been rejected.'
    assert VirtualMachine.query.count() == 0
    assert Notification.query.filter_by(user_id=student.id).count() == 1


def test_response_message_only_editable_after_decision(client, admin, submitted, login):
    login(admin)
    rid = submitted['id']
    assert client.put(f'/api/vm-requests/{rid}/message', json={'response_message': 'x'}).status_code == 409

    client.post(f'/api/vm-requests/{rid}/reject', json={'reason': 'Lab is full'})
    resp = client.put(f'/api/vm-requests/{rid}/message', json={'response_message': 'Try next term'})
    assert resp.status_code == 200
    assert resp.get_json()['request']['response_message'] == 'Try next term'
    assert resp.get_json()['request']['status'] == 'rejected'


def test_admin_list_filters_by_status(client, admin, submitted, login):
    login(admin)
    assert len(client.get('/api/vm-requests?status=pending').get_json()['requests']) == 1
    assert client.get('/api/vm-requests?status=approved').get_json()['requests'] == []
    assert client.get('/api/vm-requests?status=bogus').status_code == 400


def test_unknown_request_is_404(client, admin, login):
    login(admin)
    assert client.post('/api/vm-requests/404/approve', json={}).status_code == 404


def test_non_string_fields_are_rejected(client, admin, student, submitted, login):
    login(student)
    resp = client.post('/api/vm-requests', json={'purpose': 123})
    assert resp.status_code == 400
    assert resp.get_json()['type'] == 'ValidationError'
    assert 'purpose' in resp.get_json()['error']
    assert client.post('/api/vm-requests', json={'purpose': 'x', 'os_type': 7}).status_code == 400
    assert client.post('/api/vm-requests', json={'purpose': 'x', 'course': ['NET101']}).status_code == 400

    client.get('/logout')
    login(admin)
    rid = submitted['id']
    assert client.post(f'/api/vm-requests/{rid}/approve', json={'name': 99}).status_code == 400
    assert client.post(f'/api/vm-requests/{rid}/reject', json={'reason': {'text': 'no'}}).status_code == 400
    # Nothing was decided by the rejected payloads
    assert client.get('/api/vm-requests?status=pending').get_json()['requests'][0]['id'] == rid
