from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from alumni_network.auth import create_access_token, decode_token
from alumni_network.config import Settings
from alumni_network.main import create_app


def test_missing_token_is_rejected(client):
    r = client.get('/users')
    assert r.status_code == 401
    assert r.headers['WWW-Authenticate'] == 'Bearer'


def test_garbage_token_is_rejected(client):
    r = client.get('/topics', headers={'Authorization': 'Bearer not-a-jwt'})
    assert r.status_code == 401
    assert r.json()['detail'] == 'invalid token'


def test_expired_token_is_rejected(client, settings):
    token = create_access_token('alice', settings, expires_hours=-1)
    r = client.get('/users', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 401
    assert r.json()['detail'] == 'token expired'


def test_token_signed_with_other_secret_is_rejected(client):
    exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
    token = jwt.encode({'sub': 'alice', 'exp': exp}, 'someone-elses-secret', algorithm='HS256')
    r = client.get('/users', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 401


def test_token_without_subject_is_rejected(client, settings):
    exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
    token = jwt.encode({'exp': exp}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    r = client.get('/users', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 401


def test_decode_token_returns_claims(settings):
    token = create_access_token('alice', settings, role='alumnus')
    payload = decode_token(token, settings)
    assert payload['sub'] == 'alice'
    assert payload['role'] == 'alumnus'


def test_listings_require_token_by_default(client):
    assert client.get('/topics').status_code == 401
    assert client.get('/groups').status_code == 401


def test_public_listings_setting_opens_list_endpoints(settings, monkeypatch):
    monkeypatch.setenv('PUBLIC_LISTINGS', 'true')
    public = Settings()
    with TestClient(create_app(public)) as c:
        assert c.get('/topics').status_code == 200
        assert c.get('/groups').status_code == 200
        # single-entity reads stay protected
        assert c.get('/topics/1').status_code == 401


def test_health_is_public_and_echoes_request_id(client):
    r = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r.status_code == 200
    assert r.json() == {'status': 'ok'}
    assert r.headers['X-Request-ID'] == 'abc123'


def test_settings_reject_default_secret_outside_dev(monkeypatch):
    monkeypatch.setenv('ENV', 'prod')
    monkeypatch.delenv('JWT_SECRET', raising=False)
    monkeypatch.delenv('ALLOW_INSECURE_JWT', raising=False)
    with pytest.raises(RuntimeError, match="JWT_SECRET"):
        Settings()
