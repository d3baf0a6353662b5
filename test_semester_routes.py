from models import db, Log, Semester


def _semester(factory, locked=False):
    semester = factory.semester(locked=locked)
    db.session.commit()
    return semester.id


def test_lock_semester(client, factory):
    semester_id = _semester(factory)

    response = client.post(f'/semester/{semester_id}/lock')

    assert response.status_code == 200
    assert response.get_json()['semester']['is_locked'] is True
    assert db.session.get(Semester, semester_id).is_locked is True
    assert Log.query.filter_by(action='LOCK_SEMESTER').count() == 1


def test_lock_already_locked_semester(client, factory):
    semester_id = _semester(factory, locked=True)

    response = client.post(f'/semester/{semester_id}/lock')

    assert response.status_code == 400


def test_unlock_requires_reason(client, factory):
    semester_id = _semester(factory, locked=True)

    response = client.post(f'/semester/{semester_id}/unlock', json={'reason': '   '})
    assert response.status_code == 400

    response = client.post(f'/semester/{semester_id}/unlock', json={'reason': 'Re-evaluation of End-Sem'})
    assert response.status_code == 200
    assert response.get_json()['semester']['is_locked'] is False

    log = Log.query.filter_by(action='UNLOCK_SEMESTER').one()
    assert 'Re-evaluation of End-Sem' in log.description


def test_lock_unknown_semester(client):
    response = client.post('/semester/999/lock')
    assert response.status_code == 404
