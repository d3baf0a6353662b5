from flask import Blueprint, jsonify, request
from app import db
from models import Course, CourseOutcome, Program, ProgramOutcome, COSurveyAggregate, POSurveyAggregate, Log
import logging
import traceback
from attainment.scoring import aggregate_likert_responses
from attainment.weighting import quantize_score

survey_bp = Blueprint('survey', __name__, url_prefix='/survey')

def _aggregate_answers(answers_by_code, outcomes_by_code):
    """
    Turn {outcome code: [Likert answers]} into {outcome: (responses, average)}.
    Returns (aggregates, errors); nothing is stored when errors is not empty.
    """
    aggregates = {}
    errors = []

    if not isinstance(answers_by_code, dict) or not answers_by_code:
        return aggregates, ['responses must map outcome codes to lists of answers']

    for code, answers in answers_by_code.items():
        outcome = outcomes_by_code.get(code)
        if outcome is None:
            errors.append(f"Unknown outcome code '{code}'")
            continue
        if not isinstance(answers, list):
            errors.append(f"{code}: answers must be a list")
            continue
        try:
            responses, average = aggregate_likert_responses(answers)
        except ValueError as e:
            errors.append(f"{code}: {str(e)}")
            continue
        aggregates[outcome] = (responses, average)

    return aggregates, errors

def _store_aggregate(model, key, outcome_id, responses, average):
    aggregate = model.query.filter_by(**{key: outcome_id}).first()
    if aggregate is None:
        aggregate = model(**{key: outcome_id})
        db.session.add(aggregate)
    aggregate.responses = responses
    aggregate.average_score = quantize_score(average) if average is not None else 0
    return aggregate

@survey_bp.route('/course/<int:course_id>', methods=['POST'])
def upload_course_survey(course_id):
    """Store course exit survey answers, aggregated per CO (replaces earlier aggregates)"""
    course = db.get_or_404(Course, course_id)

    if course.semester is not None and course.semester.is_locked:
        return jsonify({'success': False, 'error': f'Semester {course.semester.name} is locked'}), 423

    data = request.get_json(silent=True) or {}
    outcomes = {co.code: co for co in CourseOutcome.query.filter_by(course_id=course.id).all()}
    aggregates, errors = _aggregate_answers(data.get('responses'), outcomes)
    if errors:
        return jsonify({'success': False, 'message': 'Invalid survey responses', 'errors': errors}), 400

    try:
        for co, (responses, average) in aggregates.items():
            _store_aggregate(COSurveyAggregate, 'course_outcome_id', co.id, responses, average)

        # Log action
        log = Log(action="UPLOAD_COURSE_SURVEY",
                  description=f"Uploaded course survey for course {course.code} "
                              f"({', '.join(sorted(co.code for co in aggregates))})")
        db.session.add(log)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logging.error(f"Error storing course survey for course {course_id}: {str(e)}\n{traceback.format_exc()}")
        return jsonify({'success': False, 'error': f'Server error: {str(e)}'}), 500

    return jsonify({
        'success': True,
        'aggregates': [
            {'code': co.code, 'responses': responses, 'average_score': float(average) if average is not None else None}
            for co, (responses, average) in sorted(aggregates.items(), key=lambda item: item[0].code)
        ]
    })

@survey_bp.route('/program/<int:program_id>', methods=['POST'])
def upload_program_survey(program_id):
    """Store program exit survey answers, aggregated per PO (replaces earlier aggregates)"""
    program = db.get_or_404(Program, program_id)

    data = request.get_json(silent=True) or {}
    outcomes = {po.code: po for po in ProgramOutcome.query.filter_by(program_id=program.id).all()}
    aggregates, errors = _aggregate_answers(data.get('responses'), outcomes)
    if errors:
        return jsonify({'success': False, 'message': 'Invalid survey responses', 'errors': errors}), 400

    try:
        for po, (responses, average) in aggregates.items():
            _store_aggregate(POSurveyAggregate, 'program_outcome_id', po.id, responses, average)

        log = Log(action="UPLOAD_PROGRAM_SURVEY",
                  description=f"Uploaded program exit survey for program {program.code} "
                              f"({', '.join(sorted(po.code for po in aggregates))})")
        db.session.add(log)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logging.error(f"Error storing program survey for program {program_id}: {str(e)}\n{traceback.format_exc()}")
        return jsonify({'success': False, 'error': f'Server error: {str(e)}'}), 500

    return jsonify({
        'success': True,
        'aggregates': [
            {'code': po.code, 'responses': responses, 'average_score': float(average) if average is not None else None}
            for po, (responses, average) in sorted(aggregates.items(), key=lambda item: item[0].code)
        ]
    })
