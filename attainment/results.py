"""Typed records passed between engine stages and returned to callers."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from attainment.errors import Failure


def _as_float(value):
    return float(value) if value is not None else None


@dataclass(frozen=True)
class COAttainmentResult:
    course_outcome_id: int
    code: str
    ia1_level: Optional[int]
    ia2_level: Optional[int]
    end_sem_level: Optional[int]
    direct_score: Optional[Decimal]
    indirect_score: Optional[Decimal]
    final_score: Decimal
    level: str
    config_version: int
    calculated_at: datetime

    def to_dict(self):
        return {
            'course_outcome_id': self.course_outcome_id,
            'code': self.code,
            'ia1_level': self.ia1_level,
            'ia2_level': self.ia2_level,
            'end_sem_level': self.end_sem_level,
            'direct_score': _as_float(self.direct_score),
            'indirect_score': _as_float(self.indirect_score),
            'final_score': float(self.final_score),
            'level': self.level,
            'config_version': self.config_version,
            'calculated_at': self.calculated_at.isoformat(),
        }


@dataclass(frozen=True)
class COContribution:
    """One CO's share in a course-level PO value"""
    course_outcome_id: int
    code: str
    mapping_value: int
    final_score: Decimal


@dataclass(frozen=True)
class CourseLevelPO:
    """Mapping-strength weighted average of finalized CO scores for one (PO, course)

    ``excluded_outcome_ids`` lists mapped COs that have no finalized attainment;
    they are left out of the average rather than counted as zero.
    """
    program_outcome_id: int
    course_id: int
    value: Optional[Decimal]
    contributions: List[COContribution] = field(default_factory=list)
    excluded_outcome_ids: List[int] = field(default_factory=list)

    @property
    def is_complete(self):
        return not self.excluded_outcome_ids

    def to_dict(self):
        return {
            'program_outcome_id': self.program_outcome_id,
            'course_id': self.course_id,
            'value': _as_float(self.value),
            'contributions': [
                {
                    'course_outcome_id': c.course_outcome_id,
                    'code': c.code,
                    'mapping_value': c.mapping_value,
                    'final_score': float(c.final_score),
                }
                for c in self.contributions
            ],
            'excluded_outcome_ids': list(self.excluded_outcome_ids),
        }


@dataclass(frozen=True)
class POAttainmentResult:
    program_outcome_id: int
    code: str
    direct_score: Optional[Decimal]
    indirect_score: Optional[Decimal]
    final_score: Decimal
    level: str
    courses: List[CourseLevelPO]
    config_version: int
    calculated_at: datetime

    @property
    def incomplete_courses(self):
        return [c.course_id for c in self.courses if not c.is_complete]

    def to_dict(self):
        return {
            'program_outcome_id': self.program_outcome_id,
            'code': self.code,
            'direct_score': _as_float(self.direct_score),
            'indirect_score': _as_float(self.indirect_score),
            'final_score': float(self.final_score),
            'level': self.level,
            'courses': [c.to_dict() for c in self.courses],
            'incomplete_courses': self.incomplete_courses,
            'config_version': self.config_version,
            'calculated_at': self.calculated_at.isoformat(),
        }


@dataclass
class CourseAttainmentRun:
    course_id: int
    config_version: int
    results: List[COAttainmentResult] = field(default_factory=list)
    failures: List[Failure] = field(default_factory=list)

    @property
    def outcome_status(self) -> Dict[int, bool]:
        status = {r.course_outcome_id: True for r in self.results}
        status.update({f.entity_id: False for f in self.failures})
        return status

    def to_dict(self):
        return {
            'course_id': self.course_id,
            'config_version': self.config_version,
            'results': [r.to_dict() for r in self.results],
            'failures': [f.to_dict() for f in self.failures],
        }


@dataclass
class ProgramAttainmentRun:
    program_id: int
    semester_id: int
    config_version: int
    results: List[POAttainmentResult] = field(default_factory=list)
    failures: List[Failure] = field(default_factory=list)

    @property
    def outcome_status(self) -> Dict[int, bool]:
        status = {r.program_outcome_id: True for r in self.results}
        status.update({f.entity_id: False for f in self.failures})
        return status

    def to_dict(self):
        return {
            'program_id': self.program_id,
            'semester_id': self.semester_id,
            'config_version': self.config_version,
            'results': [r.to_dict() for r in self.results],
            'failures': [f.to_dict() for f in self.failures],
        }
