"""Level classifier: cohort pass rate -> discrete attainment level (0-3)."""

from decimal import Decimal

from models import Assessment, ATTAINMENT_LEVELS
from attainment.mark_rollup import load_assessment_co_percentages
from attainment.weighting import to_decimal


def level_name(level):
    """0..3 -> 'LEVEL_0'..'LEVEL_3'"""
    return ATTAINMENT_LEVELS[int(level)]


def cohort_pass_rate(percentages, target_marks_percent):
    """Share (0-100) of students whose achieved percentage reaches the target marks.

    Returns None for a not-applicable CO (``percentages`` is None) or a cohort
    without any student data.
    """
    if not percentages:
        return None

    target = to_decimal(target_marks_percent)
    values = percentages.values() if hasattr(percentages, 'values') else percentages
    values = list(values)
    passed = sum(1 for achieved in values if to_decimal(achieved) >= target)
    return Decimal(passed) / Decimal(len(values)) * Decimal('100')


def classify_pass_rate(pass_rate, policy):
    """Map a pass rate onto levels with inclusive lower bounds"""
    if pass_rate is None:
        return None
    pass_rate = to_decimal(pass_rate)
    if pass_rate >= policy.level3_threshold:
        return 3
    if pass_rate >= policy.level2_threshold:
        return 2
    if pass_rate >= policy.level1_threshold:
        return 1
    return 0


def assessment_type_pass_rate(course_id, course_outcome_id, assessment_type, policy):
    """Mean pass rate over every assessment of one type that is applicable to the CO.

    A course may run several papers of the same type; papers without questions
    for the CO or without any student marks do not take part.
    """
    assessments = Assessment.query.filter_by(course_id=course_id, type=assessment_type).order_by(Assessment.id).all()

    rates = []
    for assessment in assessments:
        percentages = load_assessment_co_percentages(assessment.id, course_outcome_id)
        rate = cohort_pass_rate(percentages, policy.co_target_marks_percent)
        if rate is not None:
            rates.append(rate)

    if not rates:
        return None
    return sum(rates, Decimal('0')) / Decimal(len(rates))


def assessment_type_level(course_id, course_outcome_id, assessment_type, policy):
    """Level of one CO for one assessment type, or None when not applicable"""
    return classify_pass_rate(
        assessment_type_pass_rate(course_id, course_outcome_id, assessment_type, policy),
        policy
    )
