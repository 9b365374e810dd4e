def test_create_then_get_round_trip(client, auth):
    body = {
        'name': 'Alice',
        'username': 'alice_a',
        'picture': 'https://img.example/a.png',
        'status': 'Looking for work',
        'bio': 'Class of 2019',
        'funFact': 'Keeps bees',
    }
    r = client.post('/users', json=body, headers=auth('alice'))
    assert r.status_code == 201
    assert r.headers['Location'] == '/users/alice'
    created = r.json()
    assert created['id'] == 'alice'

    r2 = client.get('/users/alice', headers=auth('bob'))
    assert r2.status_code == 200
    fetched = r2.json()
    for key, value in body.items():
        assert fetched[key] == value


def test_get_current_user(client, auth, make_user):
    make_user('alice', name='Alice')
    r = client.get('/users', headers=auth('alice'))
    assert r.status_code == 200
    assert r.json()['id'] == 'alice'
    assert r.json()['name'] == 'Alice'


def test_current_user_without_record_is_not_found(client, auth):
    r = client.get('/users', headers=auth('ghost'))
    assert r.status_code == 404


def test_unknown_user_is_not_found(client, auth, make_user):
    make_user('alice')
    r = client.get('/users/nobody', headers=auth('alice'))
    assert r.status_code == 404


def test_explicit_id_overrides_subject(client, auth):
    r = client.post('/users', json={'id': 'imported-7', 'username': 'seven'}, headers=auth('admin'))
    assert r.status_code == 201
    assert r.json()['id'] == 'imported-7'


def test_partial_update_changes_only_given_fields(client, auth, make_user):
    make_user('alice', name='Alice', bio='old bio')
    r = client.put('/users/alice', json={'bio': 'new bio'}, headers=auth('alice'))
    assert r.status_code == 200
    data = r.json()
    assert data['bio'] == 'new bio'
    assert data['name'] == 'Alice'
    assert data['username'] == 'alice'


def test_update_of_another_user_is_unauthorized(client, auth, make_user):
    make_user('alice')
    make_user('bob')
    r = client.put('/users/alice', json={'bio': 'hacked'}, headers=auth('bob'))
    assert r.status_code == 401
    assert client.get('/users/alice', headers=auth('alice')).json()['bio'] is None


def test_update_without_record_is_not_found(client, auth):
    r = client.put('/users/ghost', json={'bio': 'x'}, headers=auth('ghost'))
    assert r.status_code == 404


def test_duplicate_id_or_username_conflicts(client, auth, make_user):
    make_user('alice')
    r = client.post('/users', json={'username': 'other'}, headers=auth('alice'))
    assert r.status_code == 409
    r2 = client.post('/users', json={'username': 'alice'}, headers=auth('bob'))
    assert r2.status_code == 409


def test_field_length_limits_are_validated(client, auth):
    r = client.post('/users', json={'username': 'x', 'name': 'n' * 21}, headers=auth('x'))
    assert r.status_code == 422


def test_null_username_in_update_is_invalid(client, auth, make_user):
    make_user('alice')
    r = client.put('/users/alice', json={'username': None}, headers=auth('alice'))
    assert r.status_code == 422
    assert client.get('/users', headers=auth('alice')).json()['username'] == 'alice'
