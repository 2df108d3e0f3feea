"""
Unique Hospital ID helpers.

A UHID looks like ``UHID-202601-00042``: the registration year and month
followed by a five digit sequence.
"""
import re
import secrets
from datetime import datetime
from typing import Optional

from django.utils import timezone

UHID_RE = re.compile(r'^UHID-\d{6}-\d{5}$')
_EMBEDDED_RE = re.compile(r'UHID-\d{6}-\d{5}')


def generate_uhid(now: Optional[datetime] = None, exists=None) -> str:
    """Generate a UHID for the month of ``now``.

    ``exists`` is an optional predicate; candidates it accepts are
    skipped so the caller can keep the identifier unique.
    """
    now = now or timezone.now()
    for _ in range(20):
        candidate = f"UHID-{now:%Y%m}-{secrets.randbelow(100000):05d}"
        if exists is None or not exists(candidate):
            return candidate
    raise RuntimeError('could not allocate a free UHID')


def is_valid_uhid(value: str) -> bool:
    return bool(UHID_RE.match(value or ''))


def parse_scanned_uhid(raw: str) -> Optional[str]:
    """Normalise the text read from a barcode scanner into a UHID, if any."""
    text = (raw or '').strip().upper()
    if is_valid_uhid(text):
        return text
    m = _EMBEDDED_RE.search(text)
    return m.group(0) if m else None


def registration_month(uhid: str) -> Optional[datetime]:
    if not is_valid_uhid(uhid):
        return None
    part = uhid.split('-')[1]
    return datetime(int(part[:4]), int(part[4:6]), 1)
