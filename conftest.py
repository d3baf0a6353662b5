import os
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

# Keep test runs quiet and out of the application log
os.environ.setdefault('LOG_LEVEL', 'ERROR')
os.environ.setdefault('LOG_FILE', os.devnull)

from app import create_app
from models import (
    db, Program, Semester, Course, CourseOutcome, ProgramOutcome, CoPoMapping,
    Assessment, AssessmentQuestion, MarksUpload, StudentMark,
    COSurveyAggregate, POSurveyAggregate, COAttainment
)
from attainment.config_resolver import DEFAULT_SCORING_CONFIG, ScoringPolicy


def make_policy(**overrides):
    """In-memory scoring policy snapshot for tests that do not need the database"""
    values = dict(DEFAULT_SCORING_CONFIG)
    values.update({key: Decimal(str(value)) for key, value in overrides.items() if key != 'version'})
    return ScoringPolicy(version=overrides.get('version', 1), **values)


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


class AttainmentFactory:
    """Builds programs, courses, assessments and marks for engine tests"""

    def __init__(self):
        self._clock = datetime(2024, 1, 1, 9, 0, 0)

    def program(self, code='BE-CS', name='Computer Engineering'):
        program = Program(code=code, name=name)
        db.session.add(program)
        db.session.flush()
        return program

    def semester(self, name='Fall 2024', locked=False):
        semester = Semester(name=name, academic_year='2024-25', is_locked=locked)
        db.session.add(semester)
        db.session.flush()
        return semester

    def course(self, program, semester, code='CS101', name='Programming'):
        course = Course(code=code, name=name, program_id=program.id, semester_id=semester.id)
        db.session.add(course)
        db.session.flush()
        return course

    def course_outcome(self, course, code):
        co = CourseOutcome(code=code, description=f"{code} description", course_id=course.id)
        db.session.add(co)
        db.session.flush()
        return co

    def program_outcome(self, program, code):
        po = ProgramOutcome(code=code, description=f"{code} description", program_id=program.id)
        db.session.add(po)
        db.session.flush()
        return po

    def mapping(self, course, co, po, value):
        mapping = CoPoMapping(course_id=course.id, course_outcome_id=co.id, program_outcome_id=po.id, value=value)
        db.session.add(mapping)
        db.session.flush()
        return mapping

    def assessment(self, course, type_, name=None):
        assessment = Assessment(course_id=course.id, type=type_, name=name or type_)
        db.session.add(assessment)
        db.session.flush()
        return assessment

    def question(self, assessment, co, number, max_marks):
        question = AssessmentQuestion(assessment_id=assessment.id, course_outcome_id=co.id,
                                      number=number, max_marks=Decimal(str(max_marks)))
        db.session.add(question)
        db.session.flush()
        return question

    def upload(self, assessment, marks):
        """``marks`` maps roll number -> {question: marks}"""
        self._clock += timedelta(minutes=5)
        upload = MarksUpload(assessment_id=assessment.id, uploaded_by='faculty', uploaded_at=self._clock)
        db.session.add(upload)
        db.session.flush()
        for roll_no, by_question in marks.items():
            for question, value in by_question.items():
                db.session.add(StudentMark(marks_upload_id=upload.id, question_id=question.id,
                                           roll_no=roll_no, marks=Decimal(str(value))))
        db.session.flush()
        return upload

    def co_survey(self, co, responses, average):
        survey = COSurveyAggregate(course_outcome_id=co.id, responses=responses, average_score=Decimal(str(average)))
        db.session.add(survey)
        db.session.flush()
        return survey

    def po_survey(self, po, responses, average):
        survey = POSurveyAggregate(program_outcome_id=po.id, responses=responses, average_score=Decimal(str(average)))
        db.session.add(survey)
        db.session.flush()
        return survey

    def co_attainment(self, co, final_score, level='LEVEL_2'):
        attainment = COAttainment(course_outcome_id=co.id, final_score=Decimal(str(final_score)),
                                  level=level, config_version=1)
        db.session.add(attainment)
        db.session.flush()
        return attainment

    def cohort_with_pass_rate(self, assessment, co, passed, failed, max_marks=10):
        """One question, ``passed`` students at full marks and ``failed`` at zero"""
        number = AssessmentQuestion.query.filter_by(assessment_id=assessment.id).count() + 1
        question = self.question(assessment, co, number=number, max_marks=max_marks)
        marks = {}
        for i in range(passed):
            marks[f"P{assessment.id}-{i:03d}"] = {question: max_marks}
        for i in range(failed):
            marks[f"F{assessment.id}-{i:03d}"] = {question: 0}
        self.upload(assessment, marks)
        return question


@pytest.fixture
def factory(app):
    return AttainmentFactory()
