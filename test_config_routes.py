from models import db, Log, ScoringConfig


def test_get_active_config(client):
    response = client.get('/config/scoring')

    assert response.status_code == 200
    config = response.get_json()['config']
    assert config['version'] == 1
    assert config['po_target_level'] == 2.5
    assert config['level3_threshold'] == 60.0


def test_get_config_when_absent(client):
    ScoringConfig.query.delete()
    db.session.commit()

    response = client.get('/config/scoring')

    assert response.status_code == 409
    assert response.get_json()['success'] is False


def test_publish_new_version(client):
    response = client.post('/config/scoring', json={'po_target_level': 2.0, 'changed_by': 'principal'})

    assert response.status_code == 200
    config = response.get_json()['config']
    assert config['version'] == 2
    assert config['po_target_level'] == 2.0

    log = Log.query.filter_by(action='UPDATE_SCORING_CONFIG').one()
    assert 'v2' in log.description
    assert 'principal' in log.description


def test_publish_invalid_config_is_rejected(client):
    response = client.post('/config/scoring', json={'direct_weightage': 0.9})

    assert response.status_code == 400
    data = response.get_json()
    assert data['message'] == 'Invalid scoring configuration'
    assert any('direct_weightage + indirect_weightage' in e for e in data['errors'])
    assert ScoringConfig.query.count() == 1
    assert Log.query.filter_by(action='UPDATE_SCORING_CONFIG').count() == 0


def test_publish_without_body(client):
    response = client.post('/config/scoring')
    assert response.status_code == 400


def test_history_lists_versions_newest_first(client):
    client.post('/config/scoring', json={'level1_threshold': 35})
    client.post('/config/scoring', json={'level1_threshold': 30})

    response = client.get('/config/scoring/history?limit=2')

    history = response.get_json()['history']
    assert [entry['version'] for entry in history] == [3, 2]
    assert [entry['is_active'] for entry in history] == [True, False]
    assert history[1]['level1_threshold'] == 35.0
