# --- START OF FILE models.py ---

from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Index # Import Index explicitly

# Create a db instance to be initialized later
db = SQLAlchemy()

ASSESSMENT_TYPES = ('IA1', 'IA2', 'ENDSEM')
ATTAINMENT_LEVELS = ('LEVEL_0', 'LEVEL_1', 'LEVEL_2', 'LEVEL_3')

class Program(db.Model):
    """Program model (e.g. B.E. Computer Engineering)"""
    __tablename__ = 'program'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), nullable=False, unique=True, index=True)
    name = db.Column(db.String(150), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    courses = db.relationship('Course', backref='program', lazy=True, cascade="all, delete-orphan")
    program_outcomes = db.relationship('ProgramOutcome', backref='program', lazy=True, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Program {self.code}: {self.name}>"

class Semester(db.Model):
    """Academic term; a locked term refuses every write, recomputation included"""
    __tablename__ = 'semester'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False, index=True)
    academic_year = db.Column(db.String(20), nullable=True, index=True)
    is_locked = db.Column(db.Boolean, default=False, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    courses = db.relationship('Course', backref='semester', lazy=True)

    def __repr__(self):
        state = "locked" if self.is_locked else "open"
        return f"<Semester {self.name} ({state})>"

class Course(db.Model):
    """Course model representing one offering of a course in a semester"""
    __tablename__ = 'course'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), nullable=False, index=True) # Indexed
    name = db.Column(db.String(100), nullable=False, index=True)
    program_id = db.Column(db.Integer, db.ForeignKey('program.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    semester_id = db.Column(db.Integer, db.ForeignKey('semester.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    assessments = db.relationship('Assessment', backref='course', lazy=True, cascade="all, delete-orphan")
    course_outcomes = db.relationship('CourseOutcome', backref='course', lazy=True, cascade="all, delete-orphan")
    co_po_mappings = db.relationship('CoPoMapping', backref='course', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('code', 'semester_id', name='_code_semester_uc'),
        Index('idx_course_program_semester', 'program_id', 'semester_id'),
    )

    def __repr__(self):
        return f"<Course {self.code}: {self.name}>"

class CourseOutcome(db.Model):
    """CourseOutcome model"""
    __tablename__ = 'course_outcome'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), nullable=False, index=True) # Indexed
    description = db.Column(db.Text, nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    questions = db.relationship('AssessmentQuestion', backref='course_outcome', lazy=True)
    attainment = db.relationship('COAttainment', backref='course_outcome', uselist=False, cascade="all, delete-orphan")
    survey = db.relationship('COSurveyAggregate', backref='course_outcome', uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('course_id', 'code', name='_course_co_code_uc'),
        Index('idx_course_outcome_course_code', 'course_id', 'code'),
    )

    def __repr__(self):
        return f"<CourseOutcome {self.code} for Course {self.course_id}>"

class ProgramOutcome(db.Model):
    """ProgramOutcome model"""
    __tablename__ = 'program_outcome'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    program_id = db.Column(db.Integer, db.ForeignKey('program.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    attainment = db.relationship('POAttainment', backref='program_outcome', uselist=False, cascade="all, delete-orphan")
    survey = db.relationship('POSurveyAggregate', backref='program_outcome', uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint('program_id', 'code', name='_program_po_code_uc'),
    )

    def __repr__(self):
        return f"<ProgramOutcome {self.code}>"

class CoPoMapping(db.Model):
    """CO -> PO contribution strength (0-3); 0 or absence means no contribution"""
    __tablename__ = 'co_po_mapping'
    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    course_outcome_id = db.Column(db.Integer, db.ForeignKey('course_outcome.id', ondelete='CASCADE'), nullable=False, index=True)
    program_outcome_id = db.Column(db.Integer, db.ForeignKey('program_outcome.id', ondelete='CASCADE'), nullable=False, index=True)
    value = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    course_outcome = db.relationship('CourseOutcome', lazy=True)
    program_outcome = db.relationship('ProgramOutcome', lazy=True)

    __table_args__ = (
        db.UniqueConstraint('course_outcome_id', 'program_outcome_id', name='_co_po_uc'),
        Index('idx_co_po_po_course', 'program_outcome_id', 'course_id'),
    )

    def __repr__(self):
        return f"<CoPoMapping CO {self.course_outcome_id} -> PO {self.program_outcome_id} = {self.value}>"

class Assessment(db.Model):
    """Assessment model (IA1, IA2 or End-Semester paper)"""
    __tablename__ = 'assessment'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    type = db.Column(db.String(10), nullable=False, index=True) # IA1 / IA2 / ENDSEM
    course_id = db.Column(db.Integer, db.ForeignKey('course.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    questions = db.relationship('AssessmentQuestion', backref='assessment', lazy=True, cascade="all, delete-orphan")
    uploads = db.relationship('MarksUpload', backref='assessment', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_assessment_course_type', 'course_id', 'type'),
    )

    def __repr__(self):
        return f"<Assessment {self.type} {self.name} for Course {self.course_id}>"

class AssessmentQuestion(db.Model):
    """Question of one assessment, tagged with exactly one CO"""
    __tablename__ = 'assessment_question'
    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.Integer, nullable=False, index=True)
    max_marks = db.Column(db.Numeric(10, 2), nullable=False)
    assessment_id = db.Column(db.Integer, db.ForeignKey('assessment.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    course_outcome_id = db.Column(db.Integer, db.ForeignKey('course_outcome.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    created_at = db.Column(db.DateTime, default=datetime.now)

    __table_args__ = (
        Index('idx_question_assessment_co', 'assessment_id', 'course_outcome_id'),
    )

    def __repr__(self):
        return f"<AssessmentQuestion {self.number} for Assessment {self.assessment_id}>"

class MarksUpload(db.Model):
    """One marks upload; only the newest upload of an assessment is active"""
    __tablename__ = 'marks_upload'
    id = db.Column(db.Integer, primary_key=True)
    assessment_id = db.Column(db.Integer, db.ForeignKey('assessment.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    uploaded_by = db.Column(db.String(100), nullable=True)
    uploaded_at = db.Column(db.DateTime, default=datetime.now, nullable=False, index=True)

    marks = db.relationship('StudentMark', backref='upload', lazy=True, cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_marks_upload_assessment_time', 'assessment_id', 'uploaded_at'),
    )

    def __repr__(self):
        return f"<MarksUpload {self.id} for Assessment {self.assessment_id}>"

class StudentMark(db.Model):
    """Marks scored by one student (roll number) on one question"""
    __tablename__ = 'student_mark'
    id = db.Column(db.Integer, primary_key=True)
    roll_no = db.Column(db.String(30), nullable=False, index=True)
    marks = db.Column(db.Numeric(10, 2), nullable=False)
    marks_upload_id = db.Column(db.Integer, db.ForeignKey('marks_upload.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK
    question_id = db.Column(db.Integer, db.ForeignKey('assessment_question.id', ondelete='CASCADE'), nullable=False, index=True) # Indexed FK

    __table_args__ = (
        Index('idx_student_mark_upload_question', 'marks_upload_id', 'question_id'),
    )

    def __repr__(self):
        return f"<StudentMark {self.marks} for {self.roll_no} on Question {self.question_id}>"

class COSurveyAggregate(db.Model):
    """Aggregated course exit survey answers for one CO (Likert 0-3 scale)"""
    __tablename__ = 'co_survey_aggregate'
    id = db.Column(db.Integer, primary_key=True)
    course_outcome_id = db.Column(db.Integer, db.ForeignKey('course_outcome.id', ondelete='CASCADE'), nullable=False, unique=True, index=True)
    responses = db.Column(db.Integer, nullable=False, default=0)
    average_score = db.Column(db.Numeric(10, 4), nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f"<COSurveyAggregate CO {self.course_outcome_id}: {self.average_score} ({self.responses})>"

class POSurveyAggregate(db.Model):
    """Aggregated program exit survey answers for one PO (Likert 0-3 scale)"""
    __tablename__ = 'po_survey_aggregate'
    id = db.Column(db.Integer, primary_key=True)
    program_outcome_id = db.Column(db.Integer, db.ForeignKey('program_outcome.id', ondelete='CASCADE'), nullable=False, unique=True, index=True)
    responses = db.Column(db.Integer, nullable=False, default=0)
    average_score = db.Column(db.Numeric(10, 4), nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f"<POSurveyAggregate PO {self.program_outcome_id}: {self.average_score} ({self.responses})>"

class COAttainment(db.Model):
    """Derived attainment of one CO; recomputation overwrites the single row"""
    __tablename__ = 'co_attainment'
    id = db.Column(db.Integer, primary_key=True)
    course_outcome_id = db.Column(db.Integer, db.ForeignKey('course_outcome.id', ondelete='CASCADE'), nullable=False, unique=True, index=True)
    ia1_level = db.Column(db.Integer, nullable=True) # Null when the assessment was not given yet
    ia2_level = db.Column(db.Integer, nullable=True)
    end_sem_level = db.Column(db.Integer, nullable=True)
    direct_score = db.Column(db.Numeric(10, 4), nullable=True)
    indirect_score = db.Column(db.Numeric(10, 4), nullable=True)
    final_score = db.Column(db.Numeric(10, 4), nullable=False)
    level = db.Column(db.String(10), nullable=False)
    config_version = db.Column(db.Integer, nullable=True, index=True)
    calculated_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    def __repr__(self):
        return f"<COAttainment CO {self.course_outcome_id}: {self.final_score} {self.level}>"

class POAttainment(db.Model):
    """Derived attainment of one PO; recomputation overwrites the single row"""
    __tablename__ = 'po_attainment'
    id = db.Column(db.Integer, primary_key=True)
    program_outcome_id = db.Column(db.Integer, db.ForeignKey('program_outcome.id', ondelete='CASCADE'), nullable=False, unique=True, index=True)
    semester_id = db.Column(db.Integer, db.ForeignKey('semester.id', ondelete='SET NULL'), nullable=True, index=True)
    direct_score = db.Column(db.Numeric(10, 4), nullable=True)
    indirect_score = db.Column(db.Numeric(10, 4), nullable=True)
    final_score = db.Column(db.Numeric(10, 4), nullable=False)
    level = db.Column(db.String(10), nullable=False)
    config_version = db.Column(db.Integer, nullable=True, index=True)
    calculated_at = db.Column(db.DateTime, default=datetime.now, nullable=False)

    def __repr__(self):
        return f"<POAttainment PO {self.program_outcome_id}: {self.final_score}>"

class ScoringConfig(db.Model):
    """One version of the global scoring policy; exactly one row is active"""
    __tablename__ = 'scoring_config'
    id = db.Column(db.Integer, primary_key=True)
    version = db.Column(db.Integer, nullable=False, unique=True, index=True)
    is_active = db.Column(db.Boolean, default=False, nullable=False, index=True)
    co_target_marks_percent = db.Column(db.Numeric(10, 4), nullable=False)
    co_target_percent = db.Column(db.Numeric(10, 4), nullable=False)
    ia1_weightage = db.Column(db.Numeric(10, 4), nullable=False)
    ia2_weightage = db.Column(db.Numeric(10, 4), nullable=False)
    end_sem_weightage = db.Column(db.Numeric(10, 4), nullable=False)
    direct_weightage = db.Column(db.Numeric(10, 4), nullable=False)
    indirect_weightage = db.Column(db.Numeric(10, 4), nullable=False)
    po_target_level = db.Column(db.Numeric(10, 4), nullable=False)
    level3_threshold = db.Column(db.Numeric(10, 4), nullable=False)
    level2_threshold = db.Column(db.Numeric(10, 4), nullable=False)
    level1_threshold = db.Column(db.Numeric(10, 4), nullable=False)
    changed_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now, index=True)

    def __repr__(self):
        state = "active" if self.is_active else "archived"
        return f"<ScoringConfig v{self.version} ({state})>"

class Log(db.Model):
    """Log model"""
    __tablename__ = 'log'
    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(50), nullable=False, index=True) # Indexed
    description = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime, default=datetime.now, index=True) # Indexed

    def __repr__(self):
        return f"<Log {self.action} at {self.timestamp}>"

# --- END OF FILE models.py ---
