"""
Unbilled-service detection and revenue leakage figures.

Everything here works on plain mappings shaped like the documents the
front-end reads (camelCase keys, ``linkedTo`` on billing items), as
produced by :mod:`records.services.snapshot`.  Nothing in this module
touches the database, so the same functions back the on-demand API and
the ``scan_revenue_leakage`` batch job.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Sequence

DEFAULT_CONSULTATION_FEE = Decimal('500')
DEFAULT_NOMINAL_MEDICINE_PRICE = Decimal('0')

SERVICE_APPOINTMENT = 'appointment'
SERVICE_LAB_ORDER = 'lab-order'
SERVICE_PRESCRIPTION = 'prescription'

REASON_APPOINTMENT = 'completed consultation with no matching bill'
REASON_LAB_ORDER = 'completed lab order with no bill'
REASON_PRESCRIPTION = 'approved prescription not yet billed'


@dataclass
class UnbilledService:
    id: str
    patient_id: str
    patient_name: str
    uhid: str
    service_type: str
    service_name: str
    expected_amount: Decimal
    performed_at: Any = None
    performed_by: str = ''
    reason: str = ''
    status: str = 'pending'

    def to_dict(self) -> dict:
        performed_at = self.performed_at
        if hasattr(performed_at, 'isoformat'):
            performed_at = performed_at.isoformat()
        return {
            'id': self.id,
            'patientId': self.patient_id,
            'patientName': self.patient_name,
            'uhid': self.uhid,
            'serviceType': self.service_type,
            'serviceName': self.service_name,
            'expectedAmount': self.expected_amount,
            'performedAt': performed_at,
            'performedBy': self.performed_by,
            'reason': self.reason,
            'status': self.status,
        }


@dataclass
class RevenueReport:
    expected_revenue: Decimal = Decimal('0')
    captured_revenue: Decimal = Decimal('0')
    unbilled_amount: Decimal = Decimal('0')
    leakage_percentage: float = 0.0
    completed_appointments: int = 0
    completed_lab_orders: int = 0
    approved_prescriptions: int = 0
    findings: list[UnbilledService] = field(default_factory=list)

    def stats(self) -> dict:
        data = asdict(self)
        data.pop('findings')
        return {
            'expectedRevenue': data['expected_revenue'],
            'capturedRevenue': data['captured_revenue'],
            'unbilledAmount': data['unbilled_amount'],
            'unbilledCount': len(self.findings),
            'leakagePercentage': round(data['leakage_percentage'], 2),
            'completedAppointments': data['completed_appointments'],
            'completedLabOrders': data['completed_lab_orders'],
            'approvedPrescriptions': data['approved_prescriptions'],
        }

    def to_dict(self) -> dict:
        return {'stats': self.stats(), 'findings': [f.to_dict() for f in self.findings]}


def _money(value: Any) -> Decimal:
    """Coerce a stored amount to ``Decimal``; unusable values count as zero."""
    if value is None or value == '' or isinstance(value, bool):
        return Decimal('0')
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal('0')
    # NaN and Infinity parse but cannot be summed into a report
    return amount if amount.is_finite() else Decimal('0')


def _same(a: Any, b: Any) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _linked_ids(billing_items: Iterable[Mapping], link_type: str) -> set[str]:
    ids = set()
    for item in billing_items or ():
        link = item.get('linkedTo') if isinstance(item, Mapping) else None
        if isinstance(link, Mapping) and link.get('type') == link_type and link.get('id') is not None:
            ids.add(str(link['id']))
    return ids


def lab_order_amount(order: Mapping) -> Decimal:
    total = order.get('totalAmount')
    if total is not None and total != '':
        return _money(total)
    return sum((_money(t.get('price')) for t in _list(order.get('tests')) if isinstance(t, Mapping)), Decimal('0'))


def prescription_amount(rx: Mapping, nominal_price: Decimal = DEFAULT_NOMINAL_MEDICINE_PRICE) -> Decimal:
    total = Decimal('0')
    for med in _list(rx.get('medicines')):
        price = med.get('price') if isinstance(med, Mapping) else None
        total += _money(price) if price not in (None, '') else nominal_price
    return total


def detect_unbilled_services(
    patient_id: Any,
    patient_name: str,
    uhid: str,
    appointments: Sequence[Mapping],
    lab_orders: Sequence[Mapping],
    prescriptions: Sequence[Mapping],
    billing_items: Sequence[Mapping],
    *,
    consultation_fee: Decimal = DEFAULT_CONSULTATION_FEE,
    nominal_medicine_price: Decimal = DEFAULT_NOMINAL_MEDICINE_PRICE,
) -> list[UnbilledService]:
    """Return the services performed for one patient that no billing item covers.

    Findings come out grouped as appointments, lab orders, prescriptions,
    each group in input order.  The inputs are never modified.
    """
    billing_items = billing_items or ()
    billed_appointments = _linked_ids(billing_items, SERVICE_APPOINTMENT)
    billed_lab_orders = _linked_ids(billing_items, SERVICE_LAB_ORDER)
    billed_prescriptions = _linked_ids(billing_items, SERVICE_PRESCRIPTION)
    pid = str(patient_id)
    findings: list[UnbilledService] = []

    for apt in appointments or ():
        if not _same(apt.get('patientId'), pid) or apt.get('status') != 'completed':
            continue
        if str(apt.get('id')) in billed_appointments:
            continue
        doctor = apt.get('doctorName') or ''
        findings.append(UnbilledService(
            id=f"UB-APT-{apt.get('id')}",
            patient_id=pid, patient_name=patient_name, uhid=uhid,
            service_type=SERVICE_APPOINTMENT,
            service_name=f"Consultation with {doctor}".strip(),
            expected_amount=consultation_fee,
            performed_at=apt.get('consultationEndTime') or apt.get('date'),
            performed_by=doctor,
            reason=REASON_APPOINTMENT,
        ))

    for order in lab_orders or ():
        if not _same(order.get('patientId'), pid) or order.get('status') != 'completed':
            continue
        # the flag and the line item can drift apart; either gap is a leak
        if order.get('billGenerated') and str(order.get('id')) in billed_lab_orders:
            continue
        names = [str(t.get('testName')) for t in _list(order.get('tests')) if isinstance(t, Mapping) and t.get('testName')]
        findings.append(UnbilledService(
            id=f"UB-LAB-{order.get('id')}",
            patient_id=pid, patient_name=patient_name, uhid=uhid,
            service_type=SERVICE_LAB_ORDER,
            service_name=f"Lab Tests: {', '.join(names)}",
            expected_amount=lab_order_amount(order),
            performed_at=order.get('completedAt') or order.get('orderedAt'),
            performed_by=order.get('technicianName') or 'Lab',
            reason=REASON_LAB_ORDER,
        ))

    for rx in prescriptions or ():
        if not _same(rx.get('patientId'), pid) or rx.get('status') != 'approved':
            continue
        if str(rx.get('id')) in billed_prescriptions:
            continue
        findings.append(UnbilledService(
            id=f"UB-RX-{rx.get('id')}",
            patient_id=pid, patient_name=patient_name, uhid=uhid,
            service_type=SERVICE_PRESCRIPTION,
            service_name=f"Medicines: {len(_list(rx.get('medicines')))} items",
            expected_amount=prescription_amount(rx, nominal_medicine_price),
            performed_at=rx.get('processedAt') or rx.get('createdAt'),
            performed_by=rx.get('processedBy') or 'Pharmacist',
            reason=REASON_PRESCRIPTION,
        ))

    return findings


def calculate_unbilled_amount(findings: Iterable[UnbilledService]) -> Decimal:
    return sum((f.expected_amount for f in findings if f.status == 'pending'), Decimal('0'))


def expected_revenue(appointments: Sequence[Mapping], lab_orders: Sequence[Mapping],
                     consultation_fee: Decimal = DEFAULT_CONSULTATION_FEE) -> Decimal:
    completed = sum(1 for a in appointments or () if a.get('status') == 'completed')
    labs = sum((lab_order_amount(o) for o in lab_orders or ()), Decimal('0'))
    return consultation_fee * completed + labs


def captured_revenue(billing_items: Sequence[Mapping]) -> Decimal:
    return sum((_money(i.get('totalPrice')) for i in billing_items or ()), Decimal('0'))


def leakage_percentage(expected: Decimal, captured: Decimal) -> float:
    if not expected:
        return 0.0
    return float((expected - captured) / expected * 100)


def build_revenue_report(
    patients: Sequence[Mapping],
    appointments: Sequence[Mapping],
    lab_orders: Sequence[Mapping],
    prescriptions: Sequence[Mapping],
    billing_items: Sequence[Mapping],
    *,
    consultation_fee: Decimal = DEFAULT_CONSULTATION_FEE,
    nominal_medicine_price: Decimal = DEFAULT_NOMINAL_MEDICINE_PRICE,
    patient_id: Optional[Any] = None,
) -> RevenueReport:
    """Run the detector over every patient and compute the dashboard figures.

    When ``patient_id`` is given only that patient's findings are kept.
    The revenue figures are computed over every row passed in, so callers
    wanting per-patient figures pass that patient's rows only.
    """
    findings: list[UnbilledService] = []
    for p in patients or ():
        if patient_id is not None and not _same(p.get('id'), patient_id):
            continue
        findings.extend(detect_unbilled_services(
            p.get('id'), p.get('name') or '', p.get('uhid') or '',
            appointments, lab_orders, prescriptions, billing_items,
            consultation_fee=consultation_fee,
            nominal_medicine_price=nominal_medicine_price,
        ))
    expected = expected_revenue(appointments, lab_orders, consultation_fee)
    captured = captured_revenue(billing_items)
    return RevenueReport(
        expected_revenue=expected,
        captured_revenue=captured,
        unbilled_amount=calculate_unbilled_amount(findings),
        leakage_percentage=leakage_percentage(expected, captured),
        completed_appointments=sum(1 for a in appointments or () if a.get('status') == 'completed'),
        completed_lab_orders=sum(1 for o in lab_orders or () if o.get('status') == 'completed'),
        approved_prescriptions=sum(1 for r in prescriptions or () if r.get('status') == 'approved'),
        findings=findings,
    )
