"""Direct score combiner, indirect score mapper and CO attainment finalizer."""

from decimal import Decimal

from attainment.errors import InsufficientEvidenceError
from attainment.level_classifier import level_name
from attainment.weighting import renormalized_weighted_average, to_decimal

# Likert options of course/program exit surveys on the native 0-3 scale
LIKERT_SCORES = {
    'STRONGLY_AGREE': 3,
    'AGREE': 2,
    'NEUTRAL': 1,
    'DISAGREE': 0,
}

# Final-score bands below the target level
LEVEL2_BAND = Decimal('0.5')
LEVEL1_BAND = Decimal('1.5')


def combine_direct_score(ia1_level, ia2_level, end_sem_level, policy):
    """Blend the per-assessment levels into one direct score.

    Missing levels drop out and the remaining weightages are renormalized.
    Returns None when no assessment level is available.
    """
    return renormalized_weighted_average([
        (ia1_level, policy.ia1_weightage),
        (ia2_level, policy.ia2_weightage),
        (end_sem_level, policy.end_sem_weightage),
    ])


def map_indirect_score(aggregate):
    """Survey average on the 0-3 scale, or None without any response"""
    if aggregate is None or not aggregate.responses:
        return None
    return to_decimal(aggregate.average_score)


def aggregate_likert_responses(answers):
    """Count and average Likert answers, e.g. one CO column of an exit survey.

    Returns ``(responses, average_score)``; the average is None for no answers.
    """
    total = Decimal('0')
    count = 0
    for answer in answers:
        key = str(answer).strip().upper()
        if key not in LIKERT_SCORES:
            raise ValueError(f"Invalid survey option '{answer}'")
        total += LIKERT_SCORES[key]
        count += 1
    if count == 0:
        return 0, None
    return count, total / Decimal(count)


def finalize_score(direct_score, indirect_score, policy):
    """Blend direct and indirect scores by configured weightage.

    Only defined scores take part, so a CO without survey data is finalized on
    its direct score alone and vice versa. Raises InsufficientEvidenceError when
    neither is defined, or when the defined ones all carry zero weightage.
    """
    if direct_score is None and indirect_score is None:
        raise InsufficientEvidenceError("No assessment levels and no survey data")

    final = renormalized_weighted_average([
        (direct_score, policy.direct_weightage),
        (indirect_score, policy.indirect_weightage),
    ])
    if final is None:
        available = [name for name, score in (('direct', direct_score), ('survey', indirect_score))
                     if score is not None]
        raise InsufficientEvidenceError(
            f"Available evidence ({', '.join(available)}) has zero weightage in scoring config v{policy.version}"
        )
    return final


def level_from_final_score(final_score, policy):
    """Attainment level of a 0-3 final score relative to the target level.

    Reaching ``po_target_level`` is Level 3, so "achieved" and Level 3 coincide.
    """
    score = to_decimal(final_score)
    target = policy.po_target_level
    if score >= target:
        return level_name(3)
    if score >= target - LEVEL2_BAND:
        return level_name(2)
    if score >= target - LEVEL1_BAND:
        return level_name(1)
    return level_name(0)


def is_achieved(final_score, policy):
    return final_score is not None and to_decimal(final_score) >= policy.po_target_level
