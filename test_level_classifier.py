from decimal import Decimal

import pytest

from conftest import make_policy
from attainment.level_classifier import (
    assessment_type_level, assessment_type_pass_rate, classify_pass_rate, cohort_pass_rate, level_name
)


def test_pass_rate_counts_students_reaching_target_marks():
    percentages = {'R1': Decimal('60'), 'R2': Decimal('59.99'), 'R3': Decimal('100'), 'R4': Decimal('0')}
    assert cohort_pass_rate(percentages, Decimal('60')) == Decimal('50')


def test_empty_cohort_is_not_applicable():
    assert cohort_pass_rate({}, 60) is None
    assert cohort_pass_rate(None, 60) is None


@pytest.mark.parametrize('pass_rate, expected', [
    ('60', 3),
    ('59.99', 2),
    ('50', 2),
    ('49.99', 1),
    ('40', 1),
    ('39.99', 0),
    ('0', 0),
    ('100', 3),
])
def test_threshold_boundaries_are_inclusive(pass_rate, expected):
    policy = make_policy(level3_threshold=60, level2_threshold=50, level1_threshold=40)
    assert classify_pass_rate(Decimal(pass_rate), policy) == expected


def test_not_applicable_stays_not_applicable():
    assert classify_pass_rate(None, make_policy()) is None


def test_level_name():
    assert level_name(0) == 'LEVEL_0'
    assert level_name(3) == 'LEVEL_3'


def test_absent_students_do_not_dilute_pass_rate(factory):
    program = factory.program()
    course = factory.course(program, factory.semester())
    co1 = factory.course_outcome(course, 'CO1')
    co2 = factory.course_outcome(course, 'CO2')
    ia1 = factory.assessment(course, 'IA1')
    q1 = factory.question(ia1, co1, 1, 10)
    q2 = factory.question(ia1, co2, 2, 10)

    # R3 only answered the CO2 question: no data for CO1
    factory.upload(ia1, {
        'R1': {q1: 10, q2: 0},
        'R2': {q1: 0, q2: 0},
        'R3': {q2: 10},
    })

    rate = assessment_type_pass_rate(course.id, co1.id, 'IA1', make_policy())
    assert rate == Decimal('50')


def test_several_papers_of_one_type_are_averaged(factory):
    program = factory.program()
    course = factory.course(program, factory.semester())
    co = factory.course_outcome(course, 'CO1')
    paper_a = factory.assessment(course, 'IA1', 'IA1 Paper A')
    paper_b = factory.assessment(course, 'IA1', 'IA1 Paper B')
    factory.cohort_with_pass_rate(paper_a, co, passed=8, failed=2)   # 80%
    factory.cohort_with_pass_rate(paper_b, co, passed=4, failed=6)   # 40%

    policy = make_policy()
    assert assessment_type_pass_rate(course.id, co.id, 'IA1', policy) == Decimal('60')
    assert assessment_type_level(course.id, co.id, 'IA1', policy) == 3


def test_assessment_type_not_given_is_null_level(factory):
    program = factory.program()
    course = factory.course(program, factory.semester())
    co = factory.course_outcome(course, 'CO1')
    factory.cohort_with_pass_rate(factory.assessment(course, 'IA1'), co, passed=1, failed=1)

    assert assessment_type_level(course.id, co.id, 'ENDSEM', make_policy()) is None
