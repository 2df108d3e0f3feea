"""
Read the revenue-relevant tables into the document shape the
reconciliation functions expect.

The five reads are independent and not wrapped in a transaction; a
record changing between them can at worst produce a finding that the
next scan clears.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from django.conf import settings

from records.models import Patient, Appointment, LabOrder, Prescription, BillingItem
from records.services.reconciliation import RevenueReport, build_revenue_report


@dataclass
class RecordsSnapshot:
    patients: list[dict] = field(default_factory=list)
    appointments: list[dict] = field(default_factory=list)
    lab_orders: list[dict] = field(default_factory=list)
    prescriptions: list[dict] = field(default_factory=list)
    billing_items: list[dict] = field(default_factory=list)


def revenue_settings() -> dict:
    return {
        'consultation_fee': Decimal(str(settings.REVENUE_CONSULTATION_FEE)),
        'nominal_medicine_price': Decimal(str(settings.REVENUE_NOMINAL_MEDICINE_PRICE)),
    }


def _name(user) -> Optional[str]:
    return user.display_name if user is not None else None


def appointment_document(a: Appointment) -> dict:
    return {
        'id': str(a.id),
        'patientId': str(a.patient_id),
        'doctorName': _name(a.doctor),
        'type': a.type,
        'status': a.status,
        'date': a.date,
        'consultationEndTime': a.consultation_end_time,
    }


def lab_order_document(o: LabOrder) -> dict:
    return {
        'id': str(o.id),
        'patientId': str(o.patient_id),
        'tests': o.tests,
        'totalAmount': o.total_amount,
        'status': o.status,
        'billGenerated': o.bill_generated,
        'technicianName': _name(o.technician),
        'orderedAt': o.ordered_at,
        'completedAt': o.completed_at,
    }


def prescription_document(rx: Prescription) -> dict:
    return {
        'id': str(rx.id),
        'patientId': str(rx.patient_id),
        'medicines': rx.medicines,
        'status': rx.status,
        'processedBy': _name(rx.processed_by),
        'processedAt': rx.processed_at,
        'createdAt': rx.created_at,
    }


def billing_item_document(i: BillingItem) -> dict:
    link = {'type': i.linked_type, 'id': i.linked_id} if i.linked_type else None
    return {
        'id': str(i.id),
        'billId': i.bill_id,
        'serviceName': i.service_name,
        'quantity': i.quantity,
        'unitPrice': i.unit_price,
        'totalPrice': i.total_price,
        'linkedTo': link,
    }


def fetch_revenue_snapshot(patient_id: Optional[int] = None) -> RecordsSnapshot:
    """Load patients, clinical records and billing items as documents.

    With ``patient_id`` the clinical records are limited to that patient;
    billing items are always read in full because a line item can name
    its source without a patient link.
    """
    patients = Patient.objects.all()
    appointments = Appointment.objects.select_related('doctor')
    lab_orders = LabOrder.objects.select_related('technician')
    prescriptions = Prescription.objects.select_related('processed_by')
    if patient_id is not None:
        patients = patients.filter(id=patient_id)
        appointments = appointments.filter(patient_id=patient_id)
        lab_orders = lab_orders.filter(patient_id=patient_id)
        prescriptions = prescriptions.filter(patient_id=patient_id)
    return RecordsSnapshot(
        patients=[{'id': str(p.id), 'name': p.name, 'uhid': p.uhid} for p in patients.order_by('id')],
        appointments=[appointment_document(a) for a in appointments.order_by('id')],
        lab_orders=[lab_order_document(o) for o in lab_orders.order_by('id')],
        prescriptions=[prescription_document(r) for r in prescriptions.order_by('id')],
        billing_items=[billing_item_document(i) for i in BillingItem.objects.order_by('id')],
    )


def current_revenue_report(patient_id: Optional[int] = None) -> RevenueReport:
    snap = fetch_revenue_snapshot(patient_id)
    return build_revenue_report(
        snap.patients, snap.appointments, snap.lab_orders, snap.prescriptions, snap.billing_items,
        patient_id=patient_id, **revenue_settings(),
    )
