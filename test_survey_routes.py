from decimal import Decimal

from models import db, Log, COSurveyAggregate, POSurveyAggregate


def _course(factory, locked=False):
    program = factory.program()
    course = factory.course(program, factory.semester(locked=locked))
    co1 = factory.course_outcome(course, 'CO1')
    co2 = factory.course_outcome(course, 'CO2')
    po1 = factory.program_outcome(program, 'PO1')
    db.session.commit()
    return program.id, course.id, co1.id, co2.id, po1.id


def test_course_survey_is_aggregated_per_co(client, factory):
    _, course_id, co1_id, co2_id, _ = _course(factory)

    response = client.post(f'/survey/course/{course_id}', json={'responses': {
        'CO1': ['STRONGLY_AGREE', 'AGREE', 'NEUTRAL', 'DISAGREE', 'STRONGLY_AGREE'],
        'CO2': ['AGREE', 'AGREE'],
    }})

    assert response.status_code == 200
    assert response.get_json()['aggregates'] == [
        {'code': 'CO1', 'responses': 5, 'average_score': 1.8},
        {'code': 'CO2', 'responses': 2, 'average_score': 2.0},
    ]
    survey = COSurveyAggregate.query.filter_by(course_outcome_id=co1_id).one()
    assert survey.responses == 5
    assert survey.average_score == Decimal('1.8')
    assert Log.query.filter_by(action='UPLOAD_COURSE_SURVEY').count() == 1


def test_course_survey_replaces_previous_aggregate(client, factory):
    _, course_id, co1_id, _, _ = _course(factory)

    client.post(f'/survey/course/{course_id}', json={'responses': {'CO1': ['DISAGREE']}})
    client.post(f'/survey/course/{course_id}', json={'responses': {'CO1': ['STRONGLY_AGREE', 'AGREE']}})

    survey = COSurveyAggregate.query.filter_by(course_outcome_id=co1_id).one()
    assert survey.responses == 2
    assert survey.average_score == Decimal('2.5')


def test_course_survey_feeds_attainment(client, factory):
    _, course_id, _, _, _ = _course(factory)
    client.post(f'/survey/course/{course_id}', json={'responses': {'CO1': ['STRONGLY_AGREE', 'AGREE']}})

    data = client.post(f'/attainment/course/{course_id}/recalculate').get_json()

    assert data['results'][0]['code'] == 'CO1'
    assert data['results'][0]['indirect_score'] == 2.5
    assert data['results'][0]['final_score'] == 2.5
    assert [f['code'] for f in data['failures']] == ['CO2']


def test_invalid_survey_answer_stores_nothing(client, factory):
    _, course_id, _, _, _ = _course(factory)

    response = client.post(f'/survey/course/{course_id}', json={'responses': {
        'CO1': ['AGREE'],
        'CO2': ['AGREE', 'MAYBE'],
        'CO9': ['AGREE'],
    }})

    assert response.status_code == 400
    errors = response.get_json()['errors']
    assert any('MAYBE' in e for e in errors)
    assert any("CO9" in e for e in errors)
    assert COSurveyAggregate.query.count() == 0


def test_course_survey_refused_on_locked_semester(client, factory):
    _, course_id, _, _, _ = _course(factory, locked=True)

    response = client.post(f'/survey/course/{course_id}', json={'responses': {'CO1': ['AGREE']}})

    assert response.status_code == 423
    assert COSurveyAggregate.query.count() == 0


def test_program_survey_is_aggregated_per_po(client, factory):
    program_id, _, _, _, po1_id = _course(factory)

    response = client.post(f'/survey/program/{program_id}', json={'responses': {'PO1': ['AGREE', 'NEUTRAL']}})

    assert response.status_code == 200
    survey = POSurveyAggregate.query.filter_by(program_outcome_id=po1_id).one()
    assert survey.responses == 2
    assert survey.average_score == Decimal('1.5')
    assert Log.query.filter_by(action='UPLOAD_PROGRAM_SURVEY').count() == 1


def test_survey_without_responses(client, factory):
    program_id, _, _, _, _ = _course(factory)

    response = client.post(f'/survey/program/{program_id}', json={})

    assert response.status_code == 400
