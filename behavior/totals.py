import logging
import math
from collections.abc import Mapping

from store.client import get_store
from store.retry import retry_with_backoff

logger = logging.getLogger(__name__)

STEPPER = 'stepper'
CHECKBOX = 'checkbox'

# Points available per graded cell
POSSIBLE_POINTS = {STEPPER: 2, CHECKBOX: 1}

AMPM_MARKER = 'AMPM'


def round_pct(points, possible):
    """Percentage rounded half up; zero when nothing was possible."""
    if possible <= 0:
        return 0
    return int(math.floor(100 * points / possible + 0.5))


def _stepper_points(value):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return float(value)


def compute_totals(matrix, schedule, goals, plan_type=None):
    """
    Score a day matrix against a plan.

    Stepper goals contribute their value out of 2, checkbox goals 1 out of 1
    when truthy. Cells that were never graded are skipped. For AM/PM plans
    the half-day percentages are added for each half the schedule covers.
    """
    matrix = matrix if isinstance(matrix, Mapping) else {}
    tally = {'total': [0, 0], 'am': [0, 0], 'pm': [0, 0]}
    halves = set()

    for period in schedule or []:
        half = 'am' if period.get('am') else 'pm'
        halves.add(half)
        cells = matrix.get(period.get('id'))
        if not isinstance(cells, Mapping):
            continue

        for goal in goals or []:
            value = cells.get(goal.get('id'))
            if value is None:
                continue
            kind = goal.get('kind')
            if kind == STEPPER:
                try:
                    points = _stepper_points(value)
                except (TypeError, ValueError):
                    logger.warning(f"Skipping non-numeric stepper value {value!r} for goal {goal.get('id')}")
                    continue
            elif kind == CHECKBOX:
                points = 1 if value else 0
            else:
                continue

            for key in ('total', half):
                tally[key][0] += points
                tally[key][1] += POSSIBLE_POINTS[kind]

    totals = {'pct': round_pct(*tally['total'])}
    if plan_type and AMPM_MARKER in plan_type:
        for half in ('am', 'pm'):
            if half in halves:
                totals[f"{half}Pct"] = round_pct(*tally[half])
    return totals


def recalculate_day_totals(school_id, plan_id, day_key, store=None):
    """
    Recompute and store ``totals`` for one day.

    Never raises: a missing plan or day, or any store failure, is logged and
    None is returned. Otherwise returns the totals that were written.
    """
    try:
        store = store or get_store()
        plan = retry_with_backoff(store.doc('schools', school_id, 'plans', plan_id).get)
        if not plan.exists:
            logger.warning(f"Plan not found for totals: {plan_id}")
            return None

        day_ref = store.doc('schools', school_id, 'plans', plan_id, 'days', day_key)
        day = retry_with_backoff(day_ref.get)
        if not day.exists:
            logger.warning(f"Day not found for totals: {plan_id}/{day_key}")
            return None

        plan_data = plan.to_dict()
        totals = compute_totals(
            day.get('matrix'),
            plan_data.get('schedule'),
            plan_data.get('goals'),
            plan_data.get('planType'),
        )
        retry_with_backoff(lambda: day_ref.update({'totals': totals}))
        logger.info(f"Totals recalculated for {plan_id}/{day_key}: {totals}")
        return totals
    except Exception as e:
        logger.error(f"Failed to recalculate totals for {plan_id}/{day_key}: {e}", exc_info=True)
        return None
