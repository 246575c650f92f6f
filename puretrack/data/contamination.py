"""
puretrack/data/contamination.py
───────────────────────────────
Contamination event profiles for synthetic water-quality data.

Modes implemented:
  intrusion  — dissolved-solids intrusion: TDS climbs, turbidity follows
  acid       — acidic discharge: pH falls, TDS rises slightly
  alkaline   — caustic overdose in treatment: pH rises
  sediment   — sediment disturbance: turbidity surge with a fast onset

Each profile maps normalized event time t ∈ [0, 1] to parameter values.
"""
from __future__ import annotations

from enum import Enum

import numpy as np


class ContaminationMode(str, Enum):
    INTRUSION = "intrusion"
    ACID = "acid"
    ALKALINE = "alkaline"
    SEDIMENT = "sediment"


def intrusion(
    t: float,
    base_tds: float,
    base_turbidity: float,
    rng: np.random.Generator,
) -> tuple[float, float]:
    """
    Slow start then accelerating TDS rise, up to ~3x baseline.

    Returns:
        (tds_ppm, turbidity_ntu)
    """
    if t < 0.4:
        tds_f = 1.0 + 0.5 * (t / 0.4)
    else:
        tn = (t - 0.4) / 0.6
        tds_f = 1.5 + 1.5 * tn ** 1.5
    turb_f = 1.0 + 0.8 * t

    return (
        float(np.clip(base_tds * tds_f + rng.normal(0.0, 8.0), 0.0, 5_000.0)),
        float(np.clip(base_turbidity * turb_f + rng.normal(0.0, 0.05), 0.0, 100.0)),
    )


def ph_shift(
    t: float,
    base_ph: float,
    target_ph: float,
    rng: np.random.Generator,
) -> float:
    """Linear drift from base_ph toward target_ph."""
    value = base_ph + (target_ph - base_ph) * t + rng.normal(0.0, 0.03)
    return float(np.clip(value, 0.0, 14.0))


def sediment(
    t: float,
    base_turbidity: float,
    rng: np.random.Generator,
) -> float:
    """Sharp turbidity surge in the first quarter, then slow settling."""
    if t < 0.25:
        factor = 1.0 + 10.0 * (t / 0.25)
    else:
        factor = 11.0 - 6.0 * (t - 0.25) / 0.75
    noise = rng.normal(0.0, 0.05 * factor)
    return float(np.clip(base_turbidity * factor + noise, 0.0, 100.0))
