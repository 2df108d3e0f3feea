import re
from datetime import datetime
from decimal import Decimal

from records.services.billing import consultation_fee, generate_bill_number
from records.services.uhid import generate_uhid, is_valid_uhid, parse_scanned_uhid, registration_month


def test_generated_uhid_has_expected_format():
    uhid = generate_uhid(datetime(2026, 1, 15))
    assert uhid.startswith('UHID-202601-')
    assert is_valid_uhid(uhid)


def test_generate_uhid_skips_taken_values():
    taken = set()

    def exists(value):
        if not taken:
            taken.add(value)
            return True
        return value in taken

    uhid = generate_uhid(datetime(2026, 1, 15), exists=exists)
    assert uhid not in taken


def test_uhid_validation():
    assert is_valid_uhid('UHID-202601-00001')
    assert not is_valid_uhid('UHID-20261-00001')
    assert not is_valid_uhid('uhid-202601-00001')
    assert not is_valid_uhid('')


def test_parse_scanned_uhid():
    assert parse_scanned_uhid('  uhid-202601-00042\n') == 'UHID-202601-00042'
    assert parse_scanned_uhid('PATIENT:UHID-202512-12345;') == 'UHID-202512-12345'
    assert parse_scanned_uhid('not a card') is None


def test_registration_month():
    assert registration_month('UHID-202512-12345') == datetime(2025, 12, 1)
    assert registration_month('bogus') is None


def test_bill_number_format():
    assert re.match(r'^BILL-20250304-\d{4}$', generate_bill_number(datetime(2025, 3, 4, 9, 0)))


def test_consultation_fee_tariff():
    assert consultation_fee('consultation') == Decimal('500')
    assert consultation_fee('consultation', 'Cardiology') == Decimal('800')
    assert consultation_fee('follow-up', 'Cardiology') == Decimal('300')
    assert consultation_fee('emergency') == Decimal('1200')
