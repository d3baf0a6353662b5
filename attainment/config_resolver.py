"""Scoring policy snapshots and versioned publishing.

Every engine run reads the active ScoringConfig row exactly once and turns it
into an immutable ScoringPolicy that is passed to each calculation stage. A
config change made while a run is in flight is only seen by the next run.
"""

import logging
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation

from models import db, ScoringConfig
from attainment.errors import ConfigurationAbsentError, ConfigValidationError

DEFAULT_SCORING_CONFIG = {
    'co_target_percent': Decimal('60'),
    'co_target_marks_percent': Decimal('60'),
    'direct_weightage': Decimal('0.8'),
    'indirect_weightage': Decimal('0.2'),
    'ia1_weightage': Decimal('0.2'),
    'ia2_weightage': Decimal('0.2'),
    'end_sem_weightage': Decimal('0.6'),
    'po_target_level': Decimal('2.5'),
    'level3_threshold': Decimal('60'),
    'level2_threshold': Decimal('50'),
    'level1_threshold': Decimal('40'),
}

PERCENT_FIELDS = ('co_target_percent', 'co_target_marks_percent',
                  'level3_threshold', 'level2_threshold', 'level1_threshold')
WEIGHTAGE_FIELDS = ('ia1_weightage', 'ia2_weightage', 'end_sem_weightage',
                    'direct_weightage', 'indirect_weightage')
WEIGHT_SUM_TOLERANCE = Decimal('0.001')
MAX_LEVEL = Decimal('3')


@dataclass(frozen=True)
class ScoringPolicy:
    """Immutable snapshot of one scoring config version"""
    version: int
    co_target_marks_percent: Decimal
    co_target_percent: Decimal
    ia1_weightage: Decimal
    ia2_weightage: Decimal
    end_sem_weightage: Decimal
    direct_weightage: Decimal
    indirect_weightage: Decimal
    po_target_level: Decimal
    level3_threshold: Decimal
    level2_threshold: Decimal
    level1_threshold: Decimal

    @classmethod
    def from_model(cls, config):
        values = {name: Decimal(str(getattr(config, name))) for name in DEFAULT_SCORING_CONFIG}
        return cls(version=config.version, **values)

    def to_dict(self):
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        return {key: (float(value) if isinstance(value, Decimal) else value)
                for key, value in data.items()}


def get_active_scoring_policy():
    """Resolve the single active scoring policy as a snapshot.

    Raises ConfigurationAbsentError when no version is active.
    """
    config = ScoringConfig.query.filter_by(is_active=True).order_by(ScoringConfig.version.desc()).first()
    if config is None:
        raise ConfigurationAbsentError("No active scoring configuration. Contact an administrator.")
    return ScoringPolicy.from_model(config)


def validate_scoring_values(values):
    """Validate a complete set of scoring values and return them as Decimals.

    Weightage groups must each sum to 1 and the level thresholds must be
    strictly descending. Raises ConfigValidationError listing every problem.
    """
    errors = []
    parsed = {}

    unknown = sorted(set(values) - set(DEFAULT_SCORING_CONFIG))
    if unknown:
        errors.append(f"Unknown fields: {', '.join(unknown)}")

    for name in DEFAULT_SCORING_CONFIG:
        raw = values.get(name)
        if raw is None or isinstance(raw, bool):
            errors.append(f"{name} is required")
            continue
        try:
            number = Decimal(str(raw))
        except (InvalidOperation, ValueError):
            errors.append(f"{name} must be a number")
            continue
        if not number.is_finite():
            errors.append(f"{name} must be a finite number")
            continue
        parsed[name] = number

    for name in PERCENT_FIELDS:
        if name in parsed and not (Decimal('0') <= parsed[name] <= Decimal('100')):
            errors.append(f"{name} must be between 0 and 100")
    for name in WEIGHTAGE_FIELDS:
        if name in parsed and not (Decimal('0') <= parsed[name] <= Decimal('1')):
            errors.append(f"{name} must be between 0 and 1")
    if 'po_target_level' in parsed and not (Decimal('0') <= parsed['po_target_level'] <= MAX_LEVEL):
        errors.append("po_target_level must be between 0 and 3")

    assessment_weights = ('ia1_weightage', 'ia2_weightage', 'end_sem_weightage')
    if all(name in parsed for name in assessment_weights):
        total = sum(parsed[name] for name in assessment_weights)
        if abs(total - Decimal('1')) > WEIGHT_SUM_TOLERANCE:
            errors.append(f"ia1_weightage + ia2_weightage + end_sem_weightage must equal 1 (got {total})")

    if 'direct_weightage' in parsed and 'indirect_weightage' in parsed:
        total = parsed['direct_weightage'] + parsed['indirect_weightage']
        if abs(total - Decimal('1')) > WEIGHT_SUM_TOLERANCE:
            errors.append(f"direct_weightage + indirect_weightage must equal 1 (got {total})")

    thresholds = ('level3_threshold', 'level2_threshold', 'level1_threshold')
    if all(name in parsed for name in thresholds):
        l3, l2, l1 = (parsed[name] for name in thresholds)
        if not (l3 > l2 > l1):
            errors.append("Level thresholds must be strictly descending (level3 > level2 > level1)")

    if errors:
        raise ConfigValidationError(errors)
    return parsed


def publish_scoring_config(changes, changed_by=None):
    """Create a new active scoring config version.

    ``changes`` may be partial; missing fields are taken from the currently
    active version (or the defaults when none exists). The previous version is
    kept, deactivated, so attainment rows stamped with it stay interpretable.
    The caller owns the transaction commit.
    """
    current = ScoringConfig.query.filter_by(is_active=True).order_by(ScoringConfig.version.desc()).first()
    if current is not None:
        merged = {name: getattr(current, name) for name in DEFAULT_SCORING_CONFIG}
    else:
        merged = dict(DEFAULT_SCORING_CONFIG)
    merged.update(changes or {})

    values = validate_scoring_values(merged)

    last_version = db.session.query(db.func.max(ScoringConfig.version)).scalar() or 0
    ScoringConfig.query.filter_by(is_active=True).update({'is_active': False})

    config = ScoringConfig(version=last_version + 1, is_active=True, changed_by=changed_by, **values)
    db.session.add(config)
    db.session.flush()

    logging.info(f"Published scoring config v{config.version} (previous: "
                 f"{'v' + str(current.version) if current else 'none'})")
    return config


def scoring_config_history(limit=50):
    """Most recent scoring config versions, newest first"""
    return ScoringConfig.query.order_by(ScoringConfig.version.desc()).limit(limit).all()


def ensure_default_scoring_config():
    """Seed version 1 with the default policy when no config has ever been stored"""
    if ScoringConfig.query.count() > 0:
        return None
    config = ScoringConfig(version=1, is_active=True, changed_by='system', **DEFAULT_SCORING_CONFIG)
    db.session.add(config)
    db.session.commit()
    logging.info("Initialized default scoring configuration")
    return config
