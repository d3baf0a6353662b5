"""Mark rollup: per-question marks -> per-student achieved percentage for one CO."""

import logging
from collections import OrderedDict
from decimal import Decimal

from models import AssessmentQuestion, MarksUpload, StudentMark
from attainment.weighting import to_decimal


def student_achieved_percentages(questions, marks):
    """Achieved percentage of every student on one CO's questions in one assessment.

    ``questions`` are the assessment's questions tagged with the CO (objects with
    ``id`` and ``max_marks``); ``marks`` are the active upload's rows (objects
    with ``question_id``, ``roll_no`` and ``marks``).

    Returns None when the CO has no questions in the assessment (not
    applicable). A student's percentage is taken over the questions they have a
    mark row for; a question without a row is missing data, not a zero.
    Students without a single mark on those questions are left out of the
    result.
    """
    if not questions:
        return None

    max_by_question = {q.id: to_decimal(q.max_marks) for q in questions}
    total_max = sum(max_by_question.values(), Decimal('0'))
    if total_max <= Decimal('0'):
        logging.warning(f"CO questions {sorted(max_by_question)} have zero total max marks")
        return None

    # roll_no -> [obtained, max of the questions with a mark row]
    totals = OrderedDict()
    for mark in marks:
        if mark.question_id not in max_by_question:
            continue
        student = totals.setdefault(mark.roll_no, [Decimal('0'), Decimal('0')])
        student[0] += to_decimal(mark.marks)
        student[1] += max_by_question[mark.question_id]

    percentages = OrderedDict()
    for roll_no, (obtained, maximum) in totals.items():
        if maximum <= Decimal('0'):
            continue
        percentages[roll_no] = (obtained / maximum) * Decimal('100')
    return percentages


def get_active_upload(assessment_id):
    """The newest marks upload of an assessment; older uploads are superseded"""
    return (MarksUpload.query
            .filter_by(assessment_id=assessment_id)
            .order_by(MarksUpload.uploaded_at.desc(), MarksUpload.id.desc())
            .first())


def load_assessment_co_percentages(assessment_id, course_outcome_id):
    """Load questions and active marks from the database and roll them up"""
    questions = AssessmentQuestion.query.filter_by(
        assessment_id=assessment_id,
        course_outcome_id=course_outcome_id
    ).order_by(AssessmentQuestion.number).all()

    if not questions:
        return None

    upload = get_active_upload(assessment_id)
    if upload is None:
        # Assessment exists but nothing uploaded yet: empty cohort
        return OrderedDict()

    question_ids = [q.id for q in questions]
    marks = StudentMark.query.filter(
        StudentMark.marks_upload_id == upload.id,
        StudentMark.question_id.in_(question_ids)
    ).order_by(StudentMark.id).all()

    return student_achieved_percentages(questions, marks)
