from tests.test_utils_seed import seed_reference_data
from tests.test_lifecycle_helpers import MAINT, OPS, jwt_headers, assert_error


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    # Flask default 404 should be wrapped by error handler
    assert resp.status_code == 404
    body = resp.get_json()
    assert 'error' in body
    assert body['error']['status'] == 404
    assert body['error']['code'] == 'NotFound'
    assert 'detail' in body['error']


def test_workflow_error_shape(client, session):
    seed_reference_data()
    resp = client.post('/tickets', json={'vehicle_id': 'HD-105', 'issue': '', 'section': 'Mechanical'}, headers=jwt_headers(OPS))
    err = assert_error(resp, 400, 'ValidationError')
    assert err['title'] == 'Bad Request'
    assert err['detail'] == 'issue required'


def test_permission_denied_shape(client, session):
    seed_reference_data()
    resp = client.post('/tickets', json={'vehicle_id': 'HD-105', 'issue': 'x', 'section': 'Mechanical'}, headers=jwt_headers(MAINT))
    assert_error(resp, 403, 'PermissionDenied')


def test_entity_not_found_shape(client, session):
    seed_reference_data()
    resp = client.get('/tickets/does-not-exist', headers=jwt_headers(OPS))
    err = assert_error(resp, 404, 'EntityNotFound')
    assert 'does-not-exist' in err['detail']


def test_internal_error_shape(client, session, monkeypatch):
    seed_reference_data()
    import fleetdesk.routes.reports as rpt_mod

    def boom(_session):
        raise RuntimeError('explode')
    monkeypatch.setattr(rpt_mod.R, 'analytics', boom)
    resp = client.get('/reports/analytics', headers=jwt_headers(OPS))
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error']['status'] == 500
    assert body['error']['title'] == 'Internal Server Error'
    assert 'explode' not in body['error']['detail']
