"""Radioactive decay arithmetic.

All durations are in minutes. Activities are in whatever unit the caller
uses (mCi, MBq); the functions are unit-agnostic.

    A(t) = A0 * exp(-lambda * t),  lambda = ln 2 / half-life
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta


def decay_constant(half_life_minutes: float) -> float:
    if half_life_minutes <= 0:
        raise ValueError("half-life must be positive")
    return math.log(2) / half_life_minutes


def decayed_activity(initial_activity: float, half_life_minutes: float, elapsed_minutes: float) -> float:
    return initial_activity * math.exp(-decay_constant(half_life_minutes) * elapsed_minutes)


def required_initial_activity(target_activity: float, half_life_minutes: float, elapsed_minutes: float) -> float:
    """Activity needed now to have target_activity after elapsed_minutes."""
    return target_activity / math.exp(-decay_constant(half_life_minutes) * elapsed_minutes)


def elapsed_minutes(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def is_within_shelf_life(production_time: datetime, target_time: datetime, shelf_life_minutes: float) -> bool:
    elapsed = elapsed_minutes(production_time, target_time)
    return 0 <= elapsed <= shelf_life_minutes


def activity_at_time(
    initial_activity: float,
    calibration_time: datetime,
    target_time: datetime,
    half_life_minutes: float,
) -> float:
    return decayed_activity(initial_activity, half_life_minutes, elapsed_minutes(calibration_time, target_time))


@dataclass(frozen=True)
class Schedule:
    dispatch_time: datetime
    packaging_start_time: datetime
    qc_start_time: datetime
    synthesis_start_time: datetime


def backward_schedule(
    delivery_time: datetime,
    travel_minutes: float,
    packaging_minutes: float,
    qc_minutes: float,
    synthesis_minutes: float,
) -> Schedule:
    """Work back from the delivery time to when synthesis must start."""
    dispatch = delivery_time - timedelta(minutes=travel_minutes)
    packaging_start = dispatch - timedelta(minutes=packaging_minutes)
    qc_start = packaging_start - timedelta(minutes=qc_minutes)
    synthesis_start = qc_start - timedelta(minutes=synthesis_minutes)
    return Schedule(dispatch, packaging_start, qc_start, synthesis_start)


def production_activity_with_overage(
    requested_activity: float,
    half_life_minutes: float,
    target_time: datetime,
    production_time: datetime,
    overage_percent: float,
) -> float:
    """Activity to produce so that requested_activity remains at target_time, plus overage."""
    required = required_initial_activity(
        requested_activity,
        half_life_minutes,
        elapsed_minutes(production_time, target_time),
    )
    return required * (1 + overage_percent / 100)
