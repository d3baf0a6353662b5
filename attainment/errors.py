"""Exceptions raised by the attainment engine and the per-entity failure record."""

from dataclasses import dataclass


class AttainmentError(Exception):
    """Base class for attainment engine errors"""
    http_status = 400


class ConfigurationAbsentError(AttainmentError):
    """No active scoring policy; nothing can be computed"""
    http_status = 409


class InsufficientEvidenceError(AttainmentError):
    """An outcome has neither direct nor indirect evidence"""
    http_status = 422


class InconsistentMappingError(AttainmentError):
    """A CO->PO mapping is out of range or crosses program boundaries"""
    http_status = 422

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("Inconsistent CO-PO mapping: " + "; ".join(self.problems))


class LockedScopeError(AttainmentError):
    """Recomputation requested against a term that is locked for edits"""
    http_status = 423


class ScopeNotFoundError(AttainmentError):
    http_status = 404


class ConfigValidationError(AttainmentError):
    """A scoring config version was rejected at write time"""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("Invalid scoring configuration: " + "; ".join(self.errors))


@dataclass(frozen=True)
class Failure:
    """Per-entity failure reported alongside successful results"""
    entity_id: int
    code: str
    reason: str

    def to_dict(self):
        return {'id': self.entity_id, 'code': self.code, 'reason': self.reason}
