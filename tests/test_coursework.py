#!/usr/bin/env python3
"""
Tests for assignments and documents.

Run with: python -m pytest tests/test_coursework.py -v
"""


def test_instructor_manages_assignments(client, make_user, student, login):
    login(make_user('teach@school.edu', role='instructor'))
    resp = client.post('/api/assignments', json={'title': 'Firewall rules', 'course': 'NET101',
                                                 'due_date': '2026-11-01T17:00:00Z'})
    assert resp.status_code == 201
    assignment = resp.get_json()['assignment']
    assert assignment['due_date'] == '2026-11-01T17:00:00'

    resp = client.put(f"/api/assignments/{assignment['id']}", json={'description': 'Use nftables'})
    assert resp.get_json()['assignment']['description'] == 'Use nftables'

    assert client.post('/api/assignments', json={'title': ''}).status_code == 400
    assert client.post('/api/assignments', json={'title': 'x', 'due_date': 'next week'}).status_code == 400
    client.get('/logout')

    login(student)
    items = client.get('/api/assignments?course=NET101').get_json()['assignments']
    assert [a['title'] for a in items] == ['Firewall rules']
    assert client.delete(f"/api/assignments/{assignment['id']}").status_code == 403


def test_assignments_sorted_by_due_date(client, admin, login):
    login(admin)
    client.post('/api/assignments', json={'title': 'No date'})
    client.post('/api/assignments', json={'title': 'Later', 'due_date': '2026-12-01'})
    client.post('/api/assignments', json={'title': 'Sooner', 'due_date': '2026-11-01'})
    titles = [a['title'] for a in client.get('/api/assignments').get_json()['assignments']]
    assert titles == ['Sooner', 'Later', 'No date']


def test_documents(client, admin, student, login):
    login(admin)
    resp = client.post('/api/documents', json={'title': 'Connecting with RDP', 'category': 'guides',
                                               'content': 'Download the .rdp file...'})
    doc_id = resp.get_json()['document']['id']
    client.get('/logout')

    login(student)
    assert client.get(f'/api/documents/{doc_id}').get_json()['document']['category'] == 'guides'
    assert len(client.get('/api/documents?category=guides').get_json()['documents']) == 1
    assert client.post('/api/documents', json={'title': 'Mine'}).status_code == 403
    assert client.get('/api/documents/999').status_code == 404


def test_non_string_fields_are_rejected(client, admin, login):
    login(admin)
    resp = client.post('/api/assignments', json={'title': 101})
    assert resp.status_code == 400
    assert resp.get_json()['type'] == 'ValidationError'
    assert client.post('/api/documents', json={'title': 'Guide', 'content': {'body': 'x'}}).status_code == 400
