"""
Integration tests for public endpoints, metrics and JSON error handling.
"""
from prometheus_client import REGISTRY


def test_health(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok'}


def test_csrf_token(client):
    response = client.get('/api/csrf-token')
    assert response.status_code == 200
    assert response.get_json()['csrf_token']


def test_metrics_counts_logins(client, admin1):
    labels = {'role': 'admin', 'result': 'failure'}
    before = REGISTRY.get_sample_value('roster_logins_total', labels) or 0.0

    client.post('/tenant/acme/api/admin/login', json={'username': 'alice', 'password': 'wrong'})

    assert REGISTRY.get_sample_value('roster_logins_total', labels) == before + 1
    body = client.get('/metrics').get_data(as_text=True)
    assert 'roster_logins_total' in body
    assert 'http_requests_total' in body


def test_unknown_route_is_json_404(client):
    response = client.get('/api/nothing-here')
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'error': 'Not Found'}


def test_wrong_method_is_json_405(client):
    response = client.get('/api/public/signup')
    assert response.status_code == 405
    assert response.get_json()['success'] is False
