"""Attainment engine entry points.

compute_course_outcome_attainment and compute_program_outcome_attainment are
synchronous, explicitly triggered recomputes. Each run:

1. serializes on its scope (one in-flight run per course / program),
2. refuses to run against a locked semester before touching any row,
3. resolves the scoring policy once and passes that snapshot to every stage,
4. rejects inconsistent CO-PO mappings before calculating,
5. computes every outcome independently, collecting failures per outcome,
6. overwrites the single attainment row of each outcome it could compute.

Provenance (who triggered the run) is recorded by the caller.
"""

import logging
from datetime import datetime

from models import (
    db, Course, CourseOutcome, Program, ProgramOutcome, Semester, AssessmentQuestion,
    CoPoMapping, COAttainment, POAttainment, COSurveyAggregate, ASSESSMENT_TYPES
)
from attainment.config_resolver import get_active_scoring_policy
from attainment.errors import (
    AttainmentError, Failure, InconsistentMappingError, LockedScopeError, ScopeNotFoundError
)
from attainment.level_classifier import assessment_type_level
from attainment.locks import scope_locks
from attainment.po_projection import compute_course_level_po, project_program_outcome
from attainment.results import (
    COAttainmentResult, CourseAttainmentRun, POAttainmentResult, ProgramAttainmentRun
)
from attainment.scoring import (
    combine_direct_score, finalize_score, level_from_final_score, map_indirect_score
)
from attainment.weighting import quantize_score

VALID_MAPPING_VALUES = (0, 1, 2, 3)

__all__ = [
    'compute_course_outcome_attainment',
    'compute_program_outcome_attainment',
    'compute_course_level_po',
    'validate_co_po_mappings',
]


def _ensure_unlocked(semester, what):
    if semester is not None and semester.is_locked:
        raise LockedScopeError(f"Semester {semester.name} is locked. Cannot recalculate {what}.")


def validate_co_po_mappings(courses):
    """Reject mappings outside {0..3} or pointing at another program's PO"""
    course_by_id = {c.id: c for c in courses}
    if not course_by_id:
        return

    problems = []
    mappings = (CoPoMapping.query
                .filter(CoPoMapping.course_id.in_(list(course_by_id)))
                .order_by(CoPoMapping.id)
                .all())
    for mapping in mappings:
        course = course_by_id[mapping.course_id]
        label = f"mapping {mapping.id}"
        if mapping.value not in VALID_MAPPING_VALUES:
            problems.append(f"{label} has value {mapping.value} outside 0-3")
        if mapping.program_outcome is None or mapping.program_outcome.program_id != course.program_id:
            problems.append(f"{label} references PO {mapping.program_outcome_id} outside program {course.program_id}")
        if mapping.course_outcome is None or mapping.course_outcome.course_id != course.id:
            problems.append(f"{label} references CO {mapping.course_outcome_id} outside course {course.code}")

    if problems:
        raise InconsistentMappingError(problems)


def _co_levels(course_id, course_outcome_id, policy):
    return tuple(
        assessment_type_level(course_id, course_outcome_id, assessment_type, policy)
        for assessment_type in ASSESSMENT_TYPES
    )


def _missing_evidence_reason(course_outcome):
    parts = []
    if AssessmentQuestion.query.filter_by(course_outcome_id=course_outcome.id).count() == 0:
        parts.append("no questions mapped")
    else:
        parts.append("no assessment marks yet")
    parts.append("no survey data")
    return f"{course_outcome.code}: could not compute - " + ", ".join(parts)


def _store_co_attainment(course_outcome, levels, direct_score, indirect_score, final_score, level, policy, calculated_at):
    attainment = COAttainment.query.filter_by(course_outcome_id=course_outcome.id).first()
    if attainment is None:
        attainment = COAttainment(course_outcome_id=course_outcome.id)
        db.session.add(attainment)

    attainment.ia1_level, attainment.ia2_level, attainment.end_sem_level = levels
    attainment.direct_score = direct_score
    attainment.indirect_score = indirect_score
    attainment.final_score = final_score
    attainment.level = level
    attainment.config_version = policy.version
    attainment.calculated_at = calculated_at
    return attainment


def compute_course_outcome_attainment(course_id, policy=None):
    """Recompute and store the attainment of every CO of a course.

    Returns a CourseAttainmentRun holding one result per computed CO and one
    Failure per CO that could not be computed. Raises LockedScopeError,
    ConfigurationAbsentError, InconsistentMappingError or ScopeNotFoundError
    before any row is written.
    """
    course = db.session.get(Course, course_id)
    if course is None:
        raise ScopeNotFoundError(f"Course {course_id} not found")

    with scope_locks.hold(('course', course.id)):
        _ensure_unlocked(course.semester, f"attainment for course {course.code}")
        if policy is None:
            policy = get_active_scoring_policy()
        validate_co_po_mappings([course])

        run = CourseAttainmentRun(course_id=course.id, config_version=policy.version)
        calculated_at = datetime.now()

        outcomes = CourseOutcome.query.filter_by(course_id=course.id).order_by(CourseOutcome.code).all()
        for co in outcomes:
            try:
                levels = _co_levels(course.id, co.id, policy)
                direct_score = combine_direct_score(*levels, policy)
                indirect_score = map_indirect_score(
                    COSurveyAggregate.query.filter_by(course_outcome_id=co.id).first()
                )
                if direct_score is None and indirect_score is None:
                    run.failures.append(Failure(co.id, co.code, _missing_evidence_reason(co)))
                    continue

                final_score = quantize_score(finalize_score(direct_score, indirect_score, policy))
                level = level_from_final_score(final_score, policy)
            except (AttainmentError, ArithmeticError) as e:
                logging.warning(f"CO attainment failed for {co.code} (course {course.code}): {str(e)}")
                run.failures.append(Failure(co.id, co.code, f"{co.code}: {str(e)}"))
                continue

            direct_score = quantize_score(direct_score)
            indirect_score = quantize_score(indirect_score)
            _store_co_attainment(co, levels, direct_score, indirect_score, final_score, level, policy, calculated_at)
            run.results.append(COAttainmentResult(
                course_outcome_id=co.id,
                code=co.code,
                ia1_level=levels[0],
                ia2_level=levels[1],
                end_sem_level=levels[2],
                direct_score=direct_score,
                indirect_score=indirect_score,
                final_score=final_score,
                level=level,
                config_version=policy.version,
                calculated_at=calculated_at,
            ))

        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    logging.info(f"CO attainment for course {course.code}: {len(run.results)} computed, "
                 f"{len(run.failures)} failed (config v{policy.version})")
    return run


def _store_po_attainment(program_outcome, semester_id, direct_score, indirect_score, final_score, level, policy, calculated_at):
    attainment = POAttainment.query.filter_by(program_outcome_id=program_outcome.id).first()
    if attainment is None:
        attainment = POAttainment(program_outcome_id=program_outcome.id)
        db.session.add(attainment)

    attainment.semester_id = semester_id
    attainment.direct_score = direct_score
    attainment.indirect_score = indirect_score
    attainment.final_score = final_score
    attainment.level = level
    attainment.config_version = policy.version
    attainment.calculated_at = calculated_at
    return attainment


def compute_program_outcome_attainment(program_id, semester_id, policy=None):
    """Recompute and store the attainment of every PO of a program for one semester.

    Course-level PO values are taken from the program's courses in that
    semester; their CO attainment must already be computed. COs without
    attainment are excluded from their course's value and reported through
    ``POAttainmentResult.incomplete_courses``.
    """
    program = db.session.get(Program, program_id)
    if program is None:
        raise ScopeNotFoundError(f"Program {program_id} not found")
    semester = db.session.get(Semester, semester_id)
    if semester is None:
        raise ScopeNotFoundError(f"Semester {semester_id} not found")

    with scope_locks.hold(('program', program.id)):
        _ensure_unlocked(semester, f"PO attainment for program {program.code}")
        if policy is None:
            policy = get_active_scoring_policy()

        courses = (Course.query
                   .filter_by(program_id=program.id, semester_id=semester.id)
                   .order_by(Course.code)
                   .all())
        validate_co_po_mappings(courses)
        course_ids = [c.id for c in courses]

        run = ProgramAttainmentRun(program_id=program.id, semester_id=semester.id, config_version=policy.version)
        calculated_at = datetime.now()

        outcomes = ProgramOutcome.query.filter_by(program_id=program.id).order_by(ProgramOutcome.code).all()
        for po in outcomes:
            try:
                direct_score, indirect_score, final_score, course_level_pos = project_program_outcome(po, course_ids, policy)
                final_score = quantize_score(final_score)
                level = level_from_final_score(final_score, policy)
            except (AttainmentError, ArithmeticError) as e:
                logging.warning(f"PO attainment failed for {po.code} (program {program.code}): {str(e)}")
                run.failures.append(Failure(po.id, po.code, f"{po.code}: {str(e)}"))
                continue

            direct_score = quantize_score(direct_score)
            indirect_score = quantize_score(indirect_score)
            _store_po_attainment(po, semester.id, direct_score, indirect_score, final_score, level, policy, calculated_at)
            run.results.append(POAttainmentResult(
                program_outcome_id=po.id,
                code=po.code,
                direct_score=direct_score,
                indirect_score=indirect_score,
                final_score=final_score,
                level=level,
                courses=course_level_pos,
                config_version=policy.version,
                calculated_at=calculated_at,
            ))

        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    logging.info(f"PO attainment for program {program.code} / semester {semester.name}: "
                 f"{len(run.results)} computed, {len(run.failures)} failed (config v{policy.version})")
    return run
