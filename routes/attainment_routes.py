from flask import Blueprint, jsonify, request
from app import db
from models import Course, CourseOutcome, Program, ProgramOutcome, Semester, Log
import logging
import traceback
from attainment.config_resolver import get_active_scoring_policy
from attainment.engine import (
    compute_course_outcome_attainment, compute_program_outcome_attainment, compute_course_level_po
)
from attainment.errors import AttainmentError, ConfigurationAbsentError, InconsistentMappingError
from attainment.scoring import is_achieved

attainment_bp = Blueprint('attainment', __name__, url_prefix='/attainment')

def attainment_error_response(e):
    """JSON response for an engine error, with the status its type maps to"""
    payload = {'success': False, 'error': str(e), 'error_type': type(e).__name__}
    if isinstance(e, InconsistentMappingError):
        payload['problems'] = e.problems
    return jsonify(payload), e.http_status

def _as_float(value):
    return float(value) if value is not None else None

def _triggered_by():
    data = request.get_json(silent=True) or {}
    return data.get('triggered_by') or request.headers.get('X-User', 'unknown')

@attainment_bp.route('/course/<int:course_id>/recalculate', methods=['POST'])
def recalculate_course_attainment(course_id):
    """Recalculate CO attainment for every CO of a course"""
    course = db.get_or_404(Course, course_id)
    triggered_by = _triggered_by()

    try:
        run = compute_course_outcome_attainment(course.id)
    except AttainmentError as e:
        logging.warning(f"CO attainment recalculation refused for course {course.code}: {str(e)}")
        return attainment_error_response(e)

    try:
        # Log action
        log = Log(action="RECALCULATE_CO_ATTAINMENT",
                  description=f"{triggered_by} recalculated CO attainment for course {course.code} "
                              f"(config v{run.config_version}, {len(run.results)} computed, {len(run.failures)} failed)")
        db.session.add(log)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logging.error(f"Error logging CO attainment recalculation: {str(e)}\n{traceback.format_exc()}")

    response = run.to_dict()
    response['success'] = True
    return jsonify(response)

@attainment_bp.route('/course/<int:course_id>', methods=['GET'])
def course_attainment(course_id):
    """Stored CO attainment of a course with target and achieved flags"""
    course = db.get_or_404(Course, course_id)

    try:
        policy = get_active_scoring_policy()
    except ConfigurationAbsentError as e:
        return attainment_error_response(e)

    outcomes = CourseOutcome.query.filter_by(course_id=course.id).order_by(CourseOutcome.code).all()
    results = []
    for co in outcomes:
        attainment = co.attainment
        survey = co.survey
        results.append({
            'id': co.id,
            'code': co.code,
            'description': co.description,
            'attainment': {
                'ia1_level': attainment.ia1_level,
                'ia2_level': attainment.ia2_level,
                'end_sem_level': attainment.end_sem_level,
                'direct_score': _as_float(attainment.direct_score),
                'indirect_score': _as_float(attainment.indirect_score),
                'final_score': _as_float(attainment.final_score),
                'level': attainment.level,
                'config_version': attainment.config_version,
                'calculated_at': attainment.calculated_at.isoformat(),
            } if attainment else None,
            'survey': {
                'responses': survey.responses,
                'average_score': _as_float(survey.average_score),
            } if survey else None,
            'target': float(policy.co_target_percent),
            'target_level': float(policy.po_target_level),
            'achieved': is_achieved(attainment.final_score, policy) if attainment else None,
        })

    return jsonify({
        'success': True,
        'course': {'id': course.id, 'code': course.code, 'name': course.name},
        'results': results,
        'config': policy.to_dict(),
    })

@attainment_bp.route('/program/<int:program_id>/recalculate', methods=['POST'])
def recalculate_program_attainment(program_id):
    """Recalculate PO attainment of a program for one semester"""
    program = db.get_or_404(Program, program_id)
    data = request.get_json(silent=True) or {}
    semester_id = data.get('semester_id')

    if not semester_id:
        return jsonify({'success': False, 'error': 'semester_id is required'}), 400
    try:
        semester_id = int(semester_id)
    except (TypeError, ValueError):
        return jsonify({'success': False, 'error': 'semester_id must be an integer'}), 400

    try:
        run = compute_program_outcome_attainment(program.id, semester_id)
    except AttainmentError as e:
        logging.warning(f"PO attainment recalculation refused for program {program.code}: {str(e)}")
        return attainment_error_response(e)

    try:
        log = Log(action="RECALCULATE_PO_ATTAINMENT",
                  description=f"{_triggered_by()} recalculated PO attainment for program {program.code} "
                              f"semester {semester_id} (config v{run.config_version}, "
                              f"{len(run.results)} computed, {len(run.failures)} failed)")
        db.session.add(log)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logging.error(f"Error logging PO attainment recalculation: {str(e)}\n{traceback.format_exc()}")

    response = run.to_dict()
    response['success'] = True
    return jsonify(response)

@attainment_bp.route('/program/<int:program_id>', methods=['GET'])
def program_attainment(program_id):
    """Stored PO attainment of a program with the course-level breakdown"""
    program = db.get_or_404(Program, program_id)
    semester_id = request.args.get('semester_id', type=int)

    course_query = Course.query.filter_by(program_id=program.id)
    if semester_id:
        db.get_or_404(Semester, semester_id)
        course_query = course_query.filter_by(semester_id=semester_id)
    courses = course_query.order_by(Course.code).all()

    outcomes = []
    for po in ProgramOutcome.query.filter_by(program_id=program.id).order_by(ProgramOutcome.code).all():
        attainment = po.attainment
        breakdown = []
        for course in courses:
            projection = compute_course_level_po(po.id, course.id)
            if projection.value is None and not projection.excluded_outcome_ids:
                continue
            entry = projection.to_dict()
            entry['course_code'] = course.code
            entry['course_name'] = course.name
            breakdown.append(entry)

        outcomes.append({
            'id': po.id,
            'code': po.code,
            'description': po.description,
            'attainment': {
                'direct_score': _as_float(attainment.direct_score),
                'indirect_score': _as_float(attainment.indirect_score),
                'final_score': _as_float(attainment.final_score),
                'level': attainment.level,
                'semester_id': attainment.semester_id,
                'config_version': attainment.config_version,
                'calculated_at': attainment.calculated_at.isoformat(),
            } if attainment else None,
            'courses': breakdown,
        })

    return jsonify({
        'success': True,
        'program': {'id': program.id, 'code': program.code, 'name': program.name},
        'outcomes': outcomes,
    })

@attainment_bp.route('/program-outcome/<int:program_outcome_id>/course/<int:course_id>', methods=['GET'])
def course_level_po(program_outcome_id, course_id):
    """Course-level PO value for reporting, including COs left out for missing attainment"""
    program_outcome = db.get_or_404(ProgramOutcome, program_outcome_id)
    course = db.get_or_404(Course, course_id)

    projection = compute_course_level_po(program_outcome.id, course.id)
    response = projection.to_dict()
    response['success'] = True
    response['complete'] = projection.is_complete
    return jsonify(response)
