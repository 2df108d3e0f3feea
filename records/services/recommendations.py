"""
Dosage, frequency and duration suggestions for a prescribed medicine.

The catalog entry wins when it carries all three defaults.  Otherwise
the gaps are filled from the entry's strength and form, then from the
medicine name itself.  When the name is not in the catalog at all, or
the lookup fails, a fixed set of defaults is returned.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, asdict
from typing import Callable, Mapping, Optional

logger = logging.getLogger(__name__)

SOURCE_DATABASE = 'database'
SOURCE_COMPUTED = 'computed'
SOURCE_DEFAULT = 'default'

STRENGTH_RE = re.compile(r'(\d+)\s*(mg|g|ml|mcg)', re.IGNORECASE)
FORM_RE = re.compile(r'(tablet|syrup|injection|capsule|drops|cream|ointment|gel)', re.IGNORECASE)

LIQUID_FORMS = {'syrup', 'drops', 'injection'}

DEFAULT_DOSAGE = '500 mg'
DEFAULT_FREQUENCY = 'Twice daily'
DEFAULT_DURATION = '5 days'


@dataclass
class Recommendation:
    dosage: str
    frequency: str
    duration: str
    source: str

    def to_dict(self) -> dict:
        return asdict(self)


def strength_from_name(name: str) -> Optional[str]:
    """Return ``"<digits> <unit>"`` for the first strength token in ``name``."""
    m = STRENGTH_RE.search(name or '')
    if not m:
        return None
    return f"{m.group(1)} {m.group(2).lower()}"


def _frequency_for(name_lower: str) -> str:
    if any(k in name_lower for k in ('antibiotic', 'amoxicillin', 'azithromycin')):
        return 'Three times daily'
    if 'pain' in name_lower or 'paracetamol' in name_lower:
        return 'As needed'
    return DEFAULT_FREQUENCY


def _duration_for(name_lower: str) -> str:
    if 'antibiotic' in name_lower:
        return '7 days'
    if 'chronic' in name_lower or 'maintenance' in name_lower:
        return '30 days'
    return DEFAULT_DURATION


def default_recommendations(medicine_name: str) -> Recommendation:
    name = medicine_name or ''
    strength = strength_from_name(name)
    form_match = FORM_RE.search(name)
    form = form_match.group(1).lower() if form_match else 'tablet'
    if strength:
        dosage = strength
    elif form in ('syrup', 'drops'):
        dosage = '5 ml'
    elif form == 'injection':
        dosage = '1 ml'
    else:
        dosage = DEFAULT_DOSAGE
    return Recommendation(dosage=dosage, frequency=DEFAULT_FREQUENCY, duration=DEFAULT_DURATION, source=SOURCE_DEFAULT)


def compute_recommendations(medicine_doc: Mapping, medicine_name: str) -> Recommendation:
    doc = medicine_doc or {}
    dosage = doc.get('defaultDosage')
    frequency = doc.get('defaultFrequency')
    duration = doc.get('defaultDuration')
    if dosage and frequency and duration:
        return Recommendation(dosage=str(dosage), frequency=str(frequency), duration=str(duration), source=SOURCE_DATABASE)

    name_lower = (medicine_name or '').lower()

    if dosage:
        dosage = str(dosage)
    elif doc.get('strength'):
        dosage = str(doc['strength'])
        form = str(doc.get('form') or '').lower()
        # a bare strength stays as recorded when the form is unknown
        if form:
            dosage = f"{dosage} {'ml' if form in LIQUID_FORMS else 'mg'}"
    else:
        dosage = strength_from_name(medicine_name) or DEFAULT_DOSAGE

    frequency = str(frequency) if frequency else _frequency_for(name_lower)
    duration = str(duration) if duration else _duration_for(name_lower)
    return Recommendation(dosage=dosage, frequency=frequency, duration=duration, source=SOURCE_COMPUTED)


def recommend_for_name(name: str, lookup: Callable[[str], Optional[Mapping]]) -> Recommendation:
    """Look ``name`` up in the catalog and apply the recommendation chain.

    Errors from ``lookup`` are logged and answered with the defaults, so
    prescribing never blocks on the catalog.
    """
    try:
        doc = lookup(name)
        if doc:
            return compute_recommendations(doc, name)
    except Exception:
        logger.exception("medicine recommendation lookup failed for %r", name)
    return default_recommendations(name)
