#!/usr/bin/env python3
"""
Tests for VM type management.

Run with: python -m pytest tests/test_vm_types.py -v
"""


def test_crud(client, admin, login):
    login(admin)
    resp = client.post('/api/vm-types', json={'name': 'Ubuntu 24.04', 'os_type': 'linux',
                                              'iso_path': '/var/lib/libvirt/images/ubuntu.iso'})
    assert resp.status_code == 201
    type_id = resp.get_json()['vm_type']['id']

    resp = client.put(f'/api/vm-types/{type_id}', json={'description': 'Desktop image'})
    data = resp.get_json()['vm_type']
    assert data['description'] == 'Desktop image'
    assert data['name'] == 'Ubuntu 24.04'

    assert client.get(f'/api/vm-types/{type_id}').status_code == 200
    assert client.delete(f'/api/vm-types/{type_id}').status_code == 200
    assert client.get(f'/api/vm-types/{type_id}').status_code == 404


def test_validation_and_unique_names(client, admin, login):
    login(admin)
    assert client.post('/api/vm-types', json={'name': 'ab', 'os_type': 'linux'}).status_code == 400
    assert client.post('/api/vm-types', json={'name': 'Windows 11'}).status_code == 400
    assert client.post('/api/vm-types', json={'name': 'Windows 11', 'os_type': 'windows'}).status_code == 201
    assert client.post('/api/vm-types', json={'name': 'Windows 11', 'os_type': 'windows'}).status_code == 409


def test_type_in_use_cannot_be_deleted(client, admin, student, login):
    login(admin)
    type_id = client.post('/api/vm-types', json={'name': 'Kali', 'os_type': 'linux'}).get_json()['vm_type']['id']
    client.get('/logout')

    login(student)
    resp = client.post('/api/vm-requests', json={'purpose': 'Pentest lab', 'vm_type_id': type_id})
    assert resp.status_code == 201
    assert resp.get_json()['request']['os_type'] == 'linux'
    client.get('/logout')

    login(admin)
    resp = client.delete(f'/api/vm-types/{type_id}')
    assert resp.status_code == 409
    assert 'in use' in resp.get_json()['error']


def test_everyone_reads_only_admins_write(client, student, login):
    login(student)
    assert client.get('/api/vm-types').get_json() == {'ok': True, 'vm_types': []}
    assert client.post('/api/vm-types', json={'name': 'Mine', 'os_type': 'linux'}).status_code == 403


def test_non_string_fields_are_rejected(client, admin, login):
    login(admin)
    resp = client.post('/api/vm-types', json={'name': 2404, 'os_type': 'linux'})
    assert resp.status_code == 400
    assert resp.get_json()['type'] == 'ValidationError'
    assert client.post('/api/vm-types', json={'name': 'Debian 12', 'os_type': ['linux']}).status_code == 400
