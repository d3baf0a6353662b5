"""Course-level PO projection and program-level PO aggregation."""

import logging
from decimal import Decimal

from models import CoPoMapping, COAttainment, CourseOutcome, POSurveyAggregate
from attainment.errors import InsufficientEvidenceError
from attainment.results import COContribution, CourseLevelPO
from attainment.scoring import finalize_score, map_indirect_score
from attainment.weighting import to_decimal


def compute_course_level_po(program_outcome_id, course_id):
    """Mapping-strength weighted average of the finalized CO scores of one course for one PO.

    COs mapped to the PO without a finalized attainment are excluded (and listed
    in ``excluded_outcome_ids``), never treated as a score of 0. ``value`` is
    None when no mapped CO has an attainment yet.
    """
    rows = (CoPoMapping.query
            .join(CourseOutcome, CourseOutcome.id == CoPoMapping.course_outcome_id)
            .filter(CoPoMapping.program_outcome_id == program_outcome_id,
                    CoPoMapping.course_id == course_id,
                    CoPoMapping.value > 0)
            .order_by(CourseOutcome.code)
            .all())

    if not rows:
        return CourseLevelPO(program_outcome_id=program_outcome_id, course_id=course_id, value=None)

    co_ids = [m.course_outcome_id for m in rows]
    attainments = {
        a.course_outcome_id: a
        for a in COAttainment.query.filter(COAttainment.course_outcome_id.in_(co_ids)).all()
    }

    contributions = []
    excluded = []
    numerator = Decimal('0')
    denominator = Decimal('0')
    for mapping in rows:
        attainment = attainments.get(mapping.course_outcome_id)
        if attainment is None:
            excluded.append(mapping.course_outcome_id)
            continue
        final_score = to_decimal(attainment.final_score)
        weight = Decimal(mapping.value)
        numerator += final_score * weight
        denominator += weight
        contributions.append(COContribution(
            course_outcome_id=mapping.course_outcome_id,
            code=mapping.course_outcome.code,
            mapping_value=mapping.value,
            final_score=final_score,
        ))

    if excluded:
        logging.warning(f"Course {course_id} / PO {program_outcome_id}: CO attainment missing for COs {excluded}")

    value = numerator / denominator if denominator > Decimal('0') else None
    return CourseLevelPO(
        program_outcome_id=program_outcome_id,
        course_id=course_id,
        value=value,
        contributions=contributions,
        excluded_outcome_ids=excluded,
    )


def aggregate_course_contributions(course_values):
    """Program-level direct score from course-level PO values.

    Unweighted mean across contributing courses (no credit-load or
    enrollment weighting).
    """
    values = [to_decimal(v) for v in course_values if v is not None]
    if not values:
        return None
    return sum(values, Decimal('0')) / Decimal(len(values))


def project_program_outcome(program_outcome, course_ids, policy):
    """Direct, indirect and final score of one PO over the given courses.

    Returns ``(direct_score, indirect_score, final_score, course_level_pos)``
    where ``course_level_pos`` only holds courses that map the PO at all.
    Raises InsufficientEvidenceError when no course contributes and there is no
    program survey data.
    """
    course_level_pos = []
    for course_id in course_ids:
        projection = compute_course_level_po(program_outcome.id, course_id)
        if projection.value is None and not projection.excluded_outcome_ids:
            continue
        course_level_pos.append(projection)

    direct_score = aggregate_course_contributions(p.value for p in course_level_pos)
    indirect_score = map_indirect_score(
        POSurveyAggregate.query.filter_by(program_outcome_id=program_outcome.id).first()
    )

    if direct_score is None and indirect_score is None:
        raise InsufficientEvidenceError("No contributing course attainment and no program survey data")

    final_score = finalize_score(direct_score, indirect_score, policy)
    return direct_score, indirect_score, final_score, course_level_pos
