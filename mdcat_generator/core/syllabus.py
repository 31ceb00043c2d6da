# mdcat_generator/core/syllabus.py
"""
MDCAT 2025 syllabus reference data and the pure helpers built on it:
subject distribution, topic lookup and year-range handling.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Any, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyllabusEntry:
    key: str
    name: str
    percentage: float
    topics: Tuple[str, ...]


@dataclass(frozen=True)
class YearWindow:
    start: int
    end: int


# Priority order matters: remainder allocation and full-test grouping follow it
SYLLABUS: Dict[str, SyllabusEntry] = {
    "biology": SyllabusEntry(
        key="biology",
        name="Biology",
        percentage=0.45,
        topics=(
            "Acellular Life (Viruses, AIDS and HIV)",
            "Bioenergetics (Respiration)",
            "Biological Molecules (Carbohydrates, Proteins, Lipids, DNA, RNA)",
            "Cell Structure & Function (Prokaryotic vs Eukaryotic, Organelles, Chromosomes)",
            "Coordination & Control (Receptors, Neurons, Brain, Nervous System)",
            "Enzymes (Enzyme Action, Factors Affecting Enzymes, Inhibitors)",
            "Evolution (Lamarckism, Darwinism, Natural Selection)",
            "Reproduction (Human Reproductive System, Menstrual Cycle, STDs)",
            "Support & Movement (Human Skeleton, Muscles, Joints, Arthritis)",
            "Inheritance (Mendel's Laws, Gene Linkage, X-linked Inheritance, Hemophilia)",
            "Circulation (Human Heart, Cardiac Cycle, Blood Vessels, Lymphatic System)",
            "Immunity (Specific Defense Mechanisms)",
            "Respiration (Human Respiratory System, Mechanism of Breathing)",
            "Homeostasis (Osmoregulation, Excretion, Kidney Structure & Function)",
            "Ecosystems (Food Chains, Energy Flow, Carbon and Nitrogen Cycles)",
        ),
    ),
    "chemistry": SyllabusEntry(
        key="chemistry",
        name="Chemistry",
        percentage=0.25,
        topics=(
            "Atomic Structure (Electron Configuration, Quantum Numbers)",
            "Chemical Bonding (Ionic, Covalent, Metallic Bonds)",
            "Electrochemistry (Electrolysis, Faraday's Laws)",
            "Chemical Equilibria (Le Chatelier's Principle, Equilibrium Constants)",
            "Reaction Kinetics (Rate Laws, Activation Energy, Catalysts)",
            "Acids & Bases (pH, Buffer Solutions, Neutralization)",
            "Periodic Table & Periodicity (Groups, Periods, Trends)",
            "Organic Chemistry (Functional Groups, Reactions, IUPAC Nomenclature)",
            "States of Matter (Gas Laws, Intermolecular Forces)",
            "Solutions (Solubility, Concentration, Colligative Properties)",
            "Thermochemistry (Enthalpy, Entropy, Free Energy)",
            "Nuclear Chemistry (Radioactivity, Half-Life, Nuclear Reactions)",
            "Analytical Chemistry (Chromatography, Spectroscopy)",
            "Transition Elements (Properties, Complex Compounds)",
            "Hydrocarbons (Alkanes, Alkenes, Alkynes)",
        ),
    ),
    "physics": SyllabusEntry(
        key="physics",
        name="Physics",
        percentage=0.20,
        topics=(
            "Kinematics (Displacement, Velocity, Acceleration, Equations of Motion)",
            "Dynamics (Newton's Laws, Forces, Friction)",
            "Work, Energy & Power (Conservation of Energy, Work-Energy Theorem)",
            "Circular Motion & Gravitation (Centripetal Force, Kepler's Laws)",
            "Waves (Types, Properties, Standing Waves, Doppler Effect)",
            "Optics (Reflection, Refraction, Lenses, Optical Instruments)",
            "Thermodynamics (Laws, Heat Transfer, Thermal Properties)",
            "Electrostatics (Coulomb's Law, Electric Field, Potential)",
            "Current Electricity (Ohm's Law, Circuits, Resistance)",
            "Magnetism (Magnetic Fields, Electromagnetism, Faraday's Law)",
            "Modern Physics (Quantum Theory, Photoelectric Effect)",
            "Nuclear Physics (Nuclear Stability, Radioactive Decay)",
            "Electronics (Semiconductors, Logic Gates, Digital Systems)",
            "Fluid Mechanics (Pressure, Buoyancy, Bernoulli's Principle)",
            "Electromagnetic Waves (Spectrum, Properties, Applications)",
        ),
    ),
    "english": SyllabusEntry(
        key="english",
        name="English",
        percentage=0.05,
        topics=(
            "Parts of Speech (Nouns, Pronouns, Verbs, Adjectives)",
            "Tenses (Past, Present, Future Forms)",
            "Conditionals (Zero, First, Second, Third)",
            "Articles (Definite, Indefinite)",
            "Infinitives and Infinitive Phrases",
            "Gerunds and Gerund Phrases",
            "Adverbs (Position and Types)",
            "Prepositions (Position, Time, Movement, Direction)",
            "Punctuation Marks",
            "Sentence Structure and Clauses",
            "Active and Passive Voice",
            "Direct and Indirect Speech",
            "Subject-Verb Agreement",
            "Sentence Errors and Corrections",
        ),
    ),
    "logical": SyllabusEntry(
        key="logical",
        name="Logical Reasoning",
        percentage=0.05,
        topics=(
            "Critical Thinking (Logical Arguments, Truth vs Falsehood)",
            "Letter and Symbols Series (Arithmetical, Geometrical Progressions)",
            "Logical Deductions (Structured Thinking, Relations)",
            "Logical Problems (Puzzles, Deductive Reasoning)",
            "Course of Action (Administrative Decisions, Problem Solving)",
            "Cause and Effect (Relationships, Reasoning)",
        ),
    ),
}

SUBJECT_PRIORITY = ("biology", "chemistry", "physics", "english", "logical")

UNIVERSITIES = ("UHS", "KMU", "DUHS", "BUMHS", "NUMS")

# Keeps products like 0.45 * 20 from flooring one below the exact share
FLOOR_EPSILON = 1e-9

DEFAULT_YEAR_WINDOW = YearWindow(start=2018, end=2025)

NAMED_YEAR_RANGES = {
    "recent": YearWindow(start=2020, end=2025),
    "2010s": YearWindow(start=2010, end=2019),
    "2020s": YearWindow(start=2020, end=2025),
}

YearRange = Union[str, Dict[str, Any], YearWindow, None]


def get_subject(subject: Optional[str]) -> Optional[SyllabusEntry]:
    """Look up a syllabus entry by its key, case-insensitively"""
    if not subject:
        return None
    return SYLLABUS.get(subject.strip().lower())


def calculate_distribution(total: int) -> Dict[str, int]:
    """
    Split ``total`` questions across subjects by syllabus percentage.

    Each subject first gets ``floor(total * percentage)``; whatever is left
    is handed out one at a time in ``SUBJECT_PRIORITY`` order, cycling.
    For very small totals every subject floors to zero, so the whole count
    lands on the first subjects of the priority list.
    """
    distribution = {
        key: math.floor(total * SYLLABUS[key].percentage + FLOOR_EPSILON)
        for key in SUBJECT_PRIORITY
    }

    remaining = total - sum(distribution.values())
    for i in range(max(remaining, 0)):
        distribution[SUBJECT_PRIORITY[i % len(SUBJECT_PRIORITY)]] += 1

    logger.debug(f"📊 Distribution for {total} questions: {distribution}")
    return distribution


def _topic_matches(topic: str, syllabus_topic: str) -> bool:
    lc_topic = topic.strip().lower()
    lc_syllabus = syllabus_topic.lower()
    return lc_topic in lc_syllabus or lc_syllabus in lc_topic


def find_topic_subject(topic: Optional[str]) -> Optional[SyllabusEntry]:
    """Return the subject whose topic list contains ``topic`` (either direction)"""
    if not topic or not topic.strip():
        return None
    for key in SUBJECT_PRIORITY:
        entry = SYLLABUS[key]
        if any(_topic_matches(topic, t) for t in entry.topics):
            return entry
    return None


def is_topic_in_official_syllabus(topic: Optional[str]) -> bool:
    return find_topic_subject(topic) is not None


def normalize_year_range(year_range: YearRange) -> Optional[YearWindow]:
    """
    Turn a request year range into an inclusive window.

    ``None`` and ``"all"`` mean no window. Named ranges map to fixed windows,
    mappings need both ``start`` and ``end``. Anything unrecognized falls back
    to the recent window.
    """
    if year_range is None or year_range == "all":
        return None
    if isinstance(year_range, YearWindow):
        return year_range
    if isinstance(year_range, str):
        return NAMED_YEAR_RANGES.get(year_range, NAMED_YEAR_RANGES["recent"])
    if (isinstance(year_range, dict)
            and year_range.get("start") is not None and year_range.get("end") is not None):
        return YearWindow(start=int(year_range["start"]), end=int(year_range["end"]))
    return NAMED_YEAR_RANGES["recent"]


def random_year(year_range: YearRange = None) -> int:
    window = normalize_year_range(year_range) or DEFAULT_YEAR_WINDOW
    return random.randint(window.start, window.end)


def syllabus_stats() -> Dict[str, Dict[str, Any]]:
    return {
        key: {"topics": len(entry.topics), "percentage": entry.percentage}
        for key, entry in SYLLABUS.items()
    }
