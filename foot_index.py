"""
foot_index.py
Chippaux–Smirak (CSI) and Staheli (SI) indices from the three calibrated
band widths, plus the foot-type classification and its static record.

  CSI = arch / forefoot
  SI  = arch / heel

  CSI ≥ 0.55 or SI ≥ 0.75  → flat
  CSI ≤ 0.25 or SI ≤ 0.40  → high
  otherwise                → neutral
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import config
from errors import InputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FootType:
    key:           str
    name:          str
    pronation:     str
    description:   str
    medical_risks: Tuple[str, ...]
    shoe_type:     str
    color:         str    # hex, for the report card


FOOT_TYPES = {
    "flat": FootType(
        key="flat",
        name="Pes Planus (Flat Foot)",
        pronation="Overpronation",
        description="Large contact area in the midfoot. A high Staheli index "
                    "points to a dropped longitudinal arch.",
        medical_risks=("Shin splints", "Plantar fasciitis", "Medial meniscus load"),
        shoe_type="Stability shoe / Motion control",
        color="#f87171",
    ),
    "neutral": FootType(
        key="neutral",
        name="Pes Rectus (Normal Foot)",
        pronation="Neutral pronation",
        description="Physiologically healthy pressure distribution. The foot "
                    "rolls off efficiently over the big-toe joint.",
        medical_risks=("Low injury risk under standard load",),
        shoe_type="Neutral shoe",
        color="#4ade80",
    ),
    "high": FootType(
        key="high",
        name="Pes Cavus (High Arch)",
        pronation="Supination (Underpronation)",
        description="Minimal contact area in the midfoot. Shock absorption "
                    "through the arch is biomechanically limited.",
        medical_risks=("Stress fractures", "Ankle instability", "Tendon irritation"),
        shoe_type="Cushioned shoe (Neutral plus)",
        color="#60a5fa",
    ),
}


@dataclass(frozen=True)
class AnalysisResult:
    type_key:  str
    csi:       float
    si:        float
    foot_type: FootType

    @property
    def csi_display(self) -> str:
        return f"{self.csi:.2f}"

    @property
    def si_display(self) -> str:
        return f"{self.si:.2f}"


def _check_width(label, value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InputError(f"{label} width must be a number, got {value!r}")
    if not math.isfinite(value) or value <= 0:
        raise InputError(f"{label} width must be positive, got {value}")
    return value


def compute_indices(forefoot_w, arch_w, heel_w):
    """Returns (csi, si). Raises InputError for non-positive widths."""
    forefoot_w = _check_width("Forefoot", forefoot_w)
    arch_w     = _check_width("Arch", arch_w)
    heel_w     = _check_width("Heel", heel_w)
    return arch_w / forefoot_w, arch_w / heel_w


def classify_foot(csi: float, si: float) -> str:
    if csi >= config.FLAT_CSI_MIN or si >= config.FLAT_SI_MIN:
        return "flat"
    if csi <= config.HIGH_CSI_MAX or si <= config.HIGH_SI_MAX:
        return "high"
    return "neutral"


def analyse_bands(bands) -> AnalysisResult:
    """bands: mapping forefoot/arch/heel → MeasurementBand (or anything with .width)."""
    csi, si = compute_indices(bands["forefoot"].width,
                              bands["arch"].width,
                              bands["heel"].width)
    key = classify_foot(csi, si)
    logger.info("Analysis: CSI=%.2f SI=%.2f → %s", csi, si, key)
    return AnalysisResult(type_key=key, csi=csi, si=si, foot_type=FOOT_TYPES[key])


def foot_type_table():
    """Rows for the reference table shown in the report."""
    rows = []
    for ft in FOOT_TYPES.values():
        rows.append({
            "Type":        ft.name,
            "Pronation":   ft.pronation,
            "Shoe":        ft.shoe_type,
            "Risks":       ", ".join(ft.medical_risks),
        })
    return rows
