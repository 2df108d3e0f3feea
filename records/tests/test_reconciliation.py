import copy
from decimal import Decimal

import pytest

from records.services.reconciliation import (
    UnbilledService,
    build_revenue_report,
    calculate_unbilled_amount,
    captured_revenue,
    detect_unbilled_services,
    expected_revenue,
    leakage_percentage,
)


def apt(id='a1', patient='p1', status='completed', **kw):
    return {'id': id, 'patientId': patient, 'status': status, 'doctorName': 'Dr. Rao', 'date': '2025-01-02', **kw}


def lab(id='l1', patient='p1', status='completed', **kw):
    doc = {'id': id, 'patientId': patient, 'status': status, 'billGenerated': False,
           'tests': [{'testName': 'CBC', 'price': 400}], 'totalAmount': 400}
    doc.update(kw)
    return doc


def rx(id='r1', patient='p1', status='approved', **kw):
    doc = {'id': id, 'patientId': patient, 'status': status,
           'medicines': [{'name': 'Amoxicillin', 'price': 120}, {'name': 'Paracetamol'}]}
    doc.update(kw)
    return doc


def item(link_type, link_id, total=0):
    return {'linkedTo': {'type': link_type, 'id': link_id}, 'totalPrice': total}


def detect(appointments=(), lab_orders=(), prescriptions=(), billing_items=(), **kw):
    return detect_unbilled_services('p1', 'Asha', 'UHID-202501-00001',
                                    list(appointments), list(lab_orders), list(prescriptions), list(billing_items), **kw)


def test_empty_inputs_give_no_findings():
    assert detect() == []
    assert calculate_unbilled_amount([]) == Decimal('0')


def test_completed_unbilled_appointment_is_flagged_at_flat_fee():
    findings = detect(appointments=[apt(type='emergency')])
    assert len(findings) == 1
    f = findings[0]
    assert f.id == 'UB-APT-a1'
    assert f.service_type == 'appointment'
    assert f.expected_amount == Decimal('500')
    assert f.service_name == 'Consultation with Dr. Rao'
    assert f.performed_at == '2025-01-02'
    assert f.performed_by == 'Dr. Rao'
    assert f.uhid == 'UHID-202501-00001'
    assert f.status == 'pending'


def test_consultation_end_time_preferred_over_date():
    f = detect(appointments=[apt(consultationEndTime='2025-01-02T10:30:00')])[0]
    assert f.performed_at == '2025-01-02T10:30:00'


def test_billed_appointment_is_not_flagged():
    assert detect(appointments=[apt()], billing_items=[item('appointment', 'a1', 500)]) == []


def test_ids_are_compared_as_text():
    assert detect(appointments=[apt(id=7)], billing_items=[item('appointment', '7')]) == []


def test_other_patients_and_open_records_are_ignored():
    findings = detect(
        appointments=[apt(patient='p2'), apt(id='a2', status='scheduled')],
        lab_orders=[lab(status='in-progress')],
        prescriptions=[rx(status='pending')],
    )
    assert findings == []


def test_lab_order_flag_and_line_item_must_both_be_present():
    assert len(detect(lab_orders=[lab(billGenerated=True)])) == 1
    assert len(detect(lab_orders=[lab()], billing_items=[item('lab-order', 'l1', 400)])) == 1
    assert detect(lab_orders=[lab(billGenerated=True)], billing_items=[item('lab-order', 'l1', 400)]) == []


def test_lab_order_amount_falls_back_to_test_prices():
    order = lab(tests=[{'testName': 'LFT', 'price': 800}, {'testName': 'KFT', 'price': '700'}])
    del order['totalAmount']
    f = detect(lab_orders=[order])[0]
    assert f.expected_amount == Decimal('1500')
    assert f.service_name == 'Lab Tests: LFT, KFT'
    assert f.performed_by == 'Lab'


def test_prescription_uses_recorded_prices_and_nominal_fallback():
    f = detect(prescriptions=[rx()])[0]
    assert f.id == 'UB-RX-r1'
    assert f.expected_amount == Decimal('120')
    assert f.service_name == 'Medicines: 2 items'
    assert f.performed_by == 'Pharmacist'
    f = detect(prescriptions=[rx()], nominal_medicine_price=Decimal('25'))[0]
    assert f.expected_amount == Decimal('145')


def test_billed_prescription_is_not_flagged():
    assert detect(prescriptions=[rx()], billing_items=[item('prescription', 'r1')]) == []


def test_findings_keep_category_order():
    findings = detect(
        prescriptions=[rx()],
        lab_orders=[lab()],
        appointments=[apt(id='a1'), apt(id='a2')],
    )
    assert [f.id for f in findings] == ['UB-APT-a1', 'UB-APT-a2', 'UB-LAB-l1', 'UB-RX-r1']


def test_malformed_optional_fields_do_not_raise():
    findings = detect(
        appointments=[{'id': 'a1', 'patientId': 'p1', 'status': 'completed'}],
        lab_orders=[{'id': 'l1', 'patientId': 'p1', 'status': 'completed', 'tests': None, 'totalAmount': 'n/a'}],
        prescriptions=[{'id': 'r1', 'patientId': 'p1', 'status': 'approved', 'medicines': 'oops'}],
        billing_items=[{'linkedTo': None}, {}],
    )
    assert [f.service_type for f in findings] == ['appointment', 'lab-order', 'prescription']
    assert findings[1].expected_amount == Decimal('0')
    assert findings[2].expected_amount == Decimal('0')


@pytest.mark.parametrize('bad', ['NaN', 'sNaN', 'Infinity', '-Infinity', float('nan'), float('inf')])
def test_non_finite_amounts_count_as_zero(bad):
    order = lab(totalAmount=bad)
    findings = detect(lab_orders=[order], prescriptions=[rx(medicines=[{'name': 'X', 'price': bad}])])
    assert [f.expected_amount for f in findings] == [Decimal('0'), Decimal('0')]
    assert calculate_unbilled_amount(findings) == Decimal('0')

    report = build_revenue_report([{'id': 'p1', 'name': 'Asha', 'uhid': 'U1'}], [apt()], [order], [],
                                  [item('appointment', 'a1', bad)])
    assert report.expected_revenue == Decimal('500')
    assert report.captured_revenue == Decimal('0')
    assert report.leakage_percentage == 100.0
    assert report.to_dict()['stats']['leakagePercentage'] == 100.0


def test_detector_is_idempotent_and_leaves_inputs_untouched():
    inputs = dict(appointments=[apt()], lab_orders=[lab()], prescriptions=[rx()], billing_items=[item('lab-order', 'zz')])
    before = copy.deepcopy(inputs)
    assert detect(**inputs) == detect(**inputs)
    assert inputs == before


def test_unbilled_amount_counts_pending_only():
    findings = detect(appointments=[apt(id='a1'), apt(id='a2')])
    findings[1].status = 'resolved'
    assert calculate_unbilled_amount(findings) == Decimal('500')


def test_leakage_is_zero_without_expected_revenue():
    assert leakage_percentage(Decimal('0'), Decimal('0')) == 0.0
    assert leakage_percentage(Decimal('0'), Decimal('300')) == 0.0
    assert leakage_percentage(Decimal('1000'), Decimal('750')) == 25.0


def test_expected_and_captured_revenue():
    appointments = [apt(id='a1'), apt(id='a2', status='cancelled')]
    assert expected_revenue(appointments, [lab()]) == Decimal('900')
    assert captured_revenue([item('appointment', 'a1', 500), {'totalPrice': '99.50'}]) == Decimal('599.50')


def test_revenue_report_across_patients():
    patients = [{'id': 'p1', 'name': 'Asha', 'uhid': 'U1'}, {'id': 'p2', 'name': 'Ravi', 'uhid': 'U2'}]
    report = build_revenue_report(
        patients,
        [apt(), apt(id='a2', patient='p2')],
        [lab(patient='p2')],
        [rx()],
        [item('appointment', 'a1', 500)],
    )
    assert [f.id for f in report.findings] == ['UB-RX-r1', 'UB-APT-a2', 'UB-LAB-l1']
    assert report.expected_revenue == Decimal('1400')
    assert report.captured_revenue == Decimal('500')
    assert report.unbilled_amount == Decimal('1020')
    assert round(report.leakage_percentage, 2) == 64.29
    stats = report.to_dict()['stats']
    assert stats['unbilledCount'] == 3
    assert stats['completedAppointments'] == 2
    assert stats['completedLabOrders'] == 1
    assert stats['approvedPrescriptions'] == 1


def test_report_for_one_patient_keeps_only_their_findings():
    patients = [{'id': 'p1', 'name': 'Asha', 'uhid': 'U1'}, {'id': 'p2', 'name': 'Ravi', 'uhid': 'U2'}]
    report = build_revenue_report(patients, [apt(), apt(id='a2', patient='p2')], [], [], [], patient_id='p2')
    assert [f.patient_name for f in report.findings] == ['Ravi']
    assert report.expected_revenue == Decimal('1000')


def test_finding_serialises_with_camel_case_keys():
    f = UnbilledService(id='UB-APT-1', patient_id='1', patient_name='A', uhid='U', service_type='appointment',
                        service_name='Consultation with X', expected_amount=Decimal('500'))
    d = f.to_dict()
    assert d['patientId'] == '1'
    assert d['expectedAmount'] == Decimal('500')
    assert d['status'] == 'pending'
