import pytest

from records.services.recommendations import (
    Recommendation,
    compute_recommendations,
    default_recommendations,
    recommend_for_name,
    strength_from_name,
)


def test_paracetamol_computed_from_name():
    rec = compute_recommendations({}, "Paracetamol 500mg")
    assert rec == Recommendation(dosage="500 mg", frequency="As needed", duration="5 days", source="computed")


def test_catalog_defaults_win_verbatim():
    doc = {'defaultDosage': '1 tab', 'defaultFrequency': 'Once daily', 'defaultDuration': 14,
           'strength': '250', 'form': 'tablet'}
    rec = compute_recommendations(doc, "Amoxicillin antibiotic 500mg")
    assert rec.to_dict() == {'dosage': '1 tab', 'frequency': 'Once daily', 'duration': '14', 'source': 'database'}


def test_partial_catalog_defaults_are_kept_and_gaps_filled():
    rec = compute_recommendations({'defaultDosage': '2 tabs'}, "Azithromycin")
    assert rec.dosage == '2 tabs'
    assert rec.frequency == 'Three times daily'
    assert rec.duration == '5 days'
    assert rec.source == 'computed'


@pytest.mark.parametrize('form,expected', [
    ('Syrup', '5 ml'),
    ('drops', '5 ml'),
    ('injection', '5 ml'),
    ('capsule', '5 mg'),
])
def test_strength_gets_unit_from_form(form, expected):
    assert compute_recommendations({'strength': '5', 'form': form}, 'Something').dosage == expected


def test_strength_without_form_is_used_as_recorded():
    assert compute_recommendations({'strength': '250'}, 'Something').dosage == '250'


def test_name_strength_is_normalised():
    assert strength_from_name('Ibuprofen 400MG tablet') == '400 mg'
    assert strength_from_name('Vitamin D3 60000 mcg') == '60000 mcg'
    assert strength_from_name('Cetirizine') is None
    assert compute_recommendations({'form': 'tablet'}, 'Cetirizine').dosage == '500 mg'


@pytest.mark.parametrize('name,frequency,duration', [
    ('Amoxicillin 250mg', 'Three times daily', '5 days'),
    ('Broad spectrum antibiotic', 'Three times daily', '7 days'),
    ('Pain relief gel', 'As needed', '5 days'),
    ('Metformin maintenance', 'Twice daily', '30 days'),
    ('Chronic care pack', 'Twice daily', '30 days'),
    ('Pantoprazole', 'Twice daily', '5 days'),
])
def test_keyword_rules(name, frequency, duration):
    rec = compute_recommendations({'name': name}, name)
    assert (rec.frequency, rec.duration) == (frequency, duration)


@pytest.mark.parametrize('name,dosage', [
    ('Unknown drug', '500 mg'),
    ('Paracetamol 650 mg', '650 mg'),
    ('Cough Syrup', '5 ml'),
    ('Eye drops', '5 ml'),
    ('Vitamin B12 injection', '1 ml'),
    ('', '500 mg'),
])
def test_default_recommendations(name, dosage):
    rec = default_recommendations(name)
    assert rec == Recommendation(dosage=dosage, frequency='Twice daily', duration='5 days', source='default')


def test_recommend_for_name_uses_catalog_document():
    rec = recommend_for_name('Amoxicillin', lambda n: {'name': n, 'strength': '250', 'form': 'capsule'})
    assert rec.to_dict() == {'dosage': '250 mg', 'frequency': 'Three times daily', 'duration': '5 days', 'source': 'computed'}


def test_recommend_for_name_unknown_medicine_uses_defaults():
    assert recommend_for_name('Zzz 10mg', lambda n: None).source == 'default'


def test_recommend_for_name_lookup_failure_uses_defaults():
    def broken(name):
        raise ConnectionError('catalog unavailable')

    rec = recommend_for_name('Paracetamol 500mg', broken)
    assert rec == Recommendation(dosage='500 mg', frequency='Twice daily', duration='5 days', source='default')
