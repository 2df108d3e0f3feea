"""
Lifecycle transitions for appointments, lab orders and prescriptions.

Each change locks the row, checks the transition against the allowed
map, stamps the timestamps the revenue scan relies on and writes a
:class:`StatusTransition` plus an audit event.
"""
from typing import Optional

import bleach
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from records.models import Appointment, LabOrder, Prescription, StatusTransition
from records.services.audit import log_action

User = get_user_model()


class InvalidTransition(ValueError):
    pass


APPOINTMENT_TRANSITIONS = {
    Appointment.STATUS_SCHEDULED: {Appointment.STATUS_IN_PROGRESS, Appointment.STATUS_CANCELLED},
    Appointment.STATUS_IN_PROGRESS: {Appointment.STATUS_COMPLETED, Appointment.STATUS_CANCELLED},
    Appointment.STATUS_COMPLETED: set(),
    Appointment.STATUS_CANCELLED: set(),
}

LAB_ORDER_TRANSITIONS = {
    LabOrder.STATUS_PENDING: {LabOrder.STATUS_SAMPLE_COLLECTED, LabOrder.STATUS_CANCELLED},
    LabOrder.STATUS_SAMPLE_COLLECTED: {LabOrder.STATUS_IN_PROGRESS, LabOrder.STATUS_CANCELLED},
    LabOrder.STATUS_IN_PROGRESS: {LabOrder.STATUS_COMPLETED, LabOrder.STATUS_CANCELLED},
    LabOrder.STATUS_COMPLETED: set(),
    LabOrder.STATUS_CANCELLED: set(),
}

PRESCRIPTION_TRANSITIONS = {
    Prescription.STATUS_PENDING: {Prescription.STATUS_APPROVED, Prescription.STATUS_REJECTED},
    Prescription.STATUS_APPROVED: set(),
    Prescription.STATUS_REJECTED: set(),
}


def _check(transitions: dict, current: str, target: str) -> None:
    if target not in transitions:
        raise InvalidTransition(f'unknown status: {target}')
    if target not in transitions.get(current, set()):
        raise InvalidTransition(f'cannot move from {current} to {target}')


def _record(entity_type: str, obj, from_status: str, operator: Optional[User], reason: str = '') -> StatusTransition:
    t = StatusTransition.objects.create(
        entity_type=entity_type, entity_id=str(obj.id),
        from_status=from_status, to_status=obj.status,
        operator=operator, reason=(reason or '')[:255],
    )
    log_action(user=operator, action=f'{entity_type}.status', object_type=entity_type, object_id=obj.id,
               detail={'from': from_status, 'to': obj.status})
    return t


@transaction.atomic
def transition_appointment(appointment_id: int, target: str, operator: Optional[User] = None,
                           reason: str = '') -> Appointment:
    apt = Appointment.objects.select_for_update().get(id=appointment_id)
    _check(APPOINTMENT_TRANSITIONS, apt.status, target)
    prev = apt.status
    apt.status = target
    fields = ['status']
    if target == Appointment.STATUS_COMPLETED:
        apt.consultation_end_time = timezone.now()
        fields.append('consultation_end_time')
    apt.save(update_fields=fields)
    _record('appointment', apt, prev, operator, reason)
    return apt


@transaction.atomic
def transition_lab_order(order_id: int, target: str, operator: Optional[User] = None,
                         reason: str = '') -> LabOrder:
    order = LabOrder.objects.select_for_update().get(id=order_id)
    _check(LAB_ORDER_TRANSITIONS, order.status, target)
    prev = order.status
    order.status = target
    fields = ['status']
    if target == LabOrder.STATUS_COMPLETED:
        order.completed_at = timezone.now()
        fields.append('completed_at')
        if operator is not None and getattr(operator, 'role', '') == 'lab':
            order.technician = operator
            fields.append('technician')
    order.save(update_fields=fields)
    _record('lab-order', order, prev, operator, reason)
    return order


@transaction.atomic
def process_prescription(prescription_id: int, approve: bool, operator: Optional[User] = None,
                         notes: str = '') -> Prescription:
    """Approve or reject a pending prescription on behalf of the pharmacy."""
    rx = Prescription.objects.select_for_update().get(id=prescription_id)
    target = Prescription.STATUS_APPROVED if approve else Prescription.STATUS_REJECTED
    _check(PRESCRIPTION_TRANSITIONS, rx.status, target)
    prev = rx.status
    rx.status = target
    rx.processed_by = operator
    rx.processed_at = timezone.now()
    fields = ['status', 'processed_by', 'processed_at']
    notes = bleach.clean((notes or '').strip(), strip=True)
    if notes:
        rx.notes = notes
        fields.append('notes')
    rx.save(update_fields=fields)
    _record('prescription', rx, prev, operator, notes)
    return rx
