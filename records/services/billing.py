"""
Bill creation, discounts and payment.

``bill_unbilled_service`` is the "Generate Bill" action of the revenue
integrity dashboard: it turns one detector finding into a pending bill
whose line items link back to the source record, which clears the
finding on the next scan.
"""
import logging
import secrets
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from records.models import Appointment, Bill, BillingItem, LabOrder, Prescription
from records.services.audit import log_action
from records.services.reconciliation import lab_order_amount, prescription_amount
from records.services.snapshot import lab_order_document, prescription_document, revenue_settings

User = get_user_model()
logger = logging.getLogger(__name__)

SERVICE_PRICES = {
    'consultation': {
        'general': Decimal('500'),
        'specialist': Decimal('800'),
        'emergency': Decimal('1200'),
        'followup': Decimal('300'),
    },
    'procedure': {
        'ecg': Decimal('300'),
        'xray': Decimal('600'),
        'ultrasound': Decimal('1000'),
        'bloodPressure': Decimal('50'),
        'dressing': Decimal('200'),
    },
    'investigation': {
        'bloodTest': Decimal('400'),
        'urineTest': Decimal('200'),
        'cbcTest': Decimal('500'),
        'liverFunction': Decimal('800'),
        'kidneyFunction': Decimal('700'),
    },
    'document': {
        'medicalCertificate': Decimal('100'),
        'prescription': Decimal('50'),
        'reportCopy': Decimal('50'),
    },
}

SPECIALTIES = ('cardiology', 'neurology', 'orthopedics', 'pediatrics', 'gynecology')

# medical services carry no tax
DEFAULT_TAX_RATE = Decimal('0')

CENT = Decimal('0.01')


class AlreadyBilled(ValueError):
    pass


class NotBillable(ValueError):
    pass


def _q(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def consultation_fee(appointment_type: str, specialization: str = '') -> Decimal:
    """Tariff fee for a consultation, by visit type and doctor speciality."""
    fees = SERVICE_PRICES['consultation']
    if appointment_type == 'follow-up':
        return fees['followup']
    if appointment_type == 'emergency':
        return fees['emergency']
    specialty = (specialization or '').lower()
    if specialty and any(s in specialty for s in SPECIALTIES):
        return fees['specialist']
    return fees['general']


def generate_bill_number(now: Optional[datetime] = None) -> str:
    now = now or timezone.localtime()
    return f"BILL-{now:%Y%m%d}-{secrets.randbelow(10000):04d}"


def _unique_bill_number() -> str:
    for _ in range(20):
        number = generate_bill_number()
        if not Bill.objects.filter(bill_number=number).exists():
            return number
    raise RuntimeError('could not allocate a free bill number')


def recalculate_totals(bill: Bill, save: bool = True) -> Bill:
    subtotal = sum((i.total_price for i in bill.items.all()), Decimal('0'))
    bill.subtotal = _q(subtotal)
    bill.tax = _q(subtotal * bill.tax_rate)
    bill.total = max(Decimal('0'), _q(bill.subtotal + bill.tax - bill.discount))
    if save:
        bill.save(update_fields=['subtotal', 'tax', 'total'])
    return bill


def _add_item(bill: Bill, *, name: str, service_type: str, unit_price: Decimal, quantity: int = 1,
              linked_type: str = '', linked_id: str = '', description: str = '') -> BillingItem:
    return BillingItem.objects.create(
        bill=bill, patient_id=bill.patient_id,
        service_name=name[:255], service_type=service_type, description=description[:255],
        quantity=quantity, unit_price=_q(unit_price), total_price=_q(unit_price * quantity),
        linked_type=linked_type, linked_id=linked_id,
    )


def _new_bill(patient_id, user: Optional[User]) -> Bill:
    return Bill.objects.create(
        bill_number=_unique_bill_number(), patient_id=patient_id,
        tax_rate=DEFAULT_TAX_RATE, status=Bill.STATUS_PENDING,
        created_by=user if isinstance(user, User) else None,
    )


def _reconcile_lab_order(order: LabOrder, user: Optional[User]) -> Optional[Bill]:
    """Set the billed flag on a lab order whose line item was entered elsewhere.

    Items without a bill are gathered onto a new pending bill. Returns
    ``None`` when no item references the order.
    """
    items = list(BillingItem.objects.select_related('bill').filter(
        linked_type=BillingItem.LINK_LAB_ORDER, linked_id=str(order.id)).order_by('id'))
    if not items:
        return None
    bill = next((i.bill for i in items if i.bill_id), None)
    if bill is None:
        bill = _new_bill(order.patient_id, user)
        BillingItem.objects.filter(id__in=[i.id for i in items]).update(bill=bill)
        recalculate_totals(bill)
    order.bill_generated = True
    order.save(update_fields=['bill_generated'])
    log_action(user=user, action='bill.reconcile', object_type='bill', object_id=bill.id,
               detail={'serviceType': BillingItem.LINK_LAB_ORDER, 'sourceId': str(order.id)})
    logger.info("lab order %s already had a line item on %s; flag set", order.id, bill.bill_number)
    return bill


def _ensure_not_billed(link_type: str, object_id) -> None:
    if BillingItem.objects.filter(linked_type=link_type, linked_id=str(object_id)).exists():
        raise AlreadyBilled(f'{link_type} {object_id} is already billed')


@transaction.atomic
def bill_unbilled_service(service_type: str, object_id: int, user: Optional[User] = None) -> Bill:
    """Create a pending bill covering one unbilled appointment, lab order or prescription."""
    cfg = revenue_settings()
    if service_type == BillingItem.LINK_APPOINTMENT:
        src = Appointment.objects.select_for_update().select_related('doctor').get(id=object_id)
        if src.status != Appointment.STATUS_COMPLETED:
            raise NotBillable(f'appointment {object_id} is {src.status}, not completed')
    elif service_type == BillingItem.LINK_LAB_ORDER:
        src = LabOrder.objects.select_for_update().get(id=object_id)
        if src.status != LabOrder.STATUS_COMPLETED:
            raise NotBillable(f'lab order {object_id} is {src.status}, not completed')
    elif service_type == BillingItem.LINK_PRESCRIPTION:
        src = Prescription.objects.select_for_update().get(id=object_id)
        if src.status != Prescription.STATUS_APPROVED:
            raise NotBillable(f'prescription {object_id} is {src.status}, not approved')
    else:
        raise NotBillable(f'unknown service type: {service_type}')
    if service_type == BillingItem.LINK_LAB_ORDER and not src.bill_generated:
        reconciled = _reconcile_lab_order(src, user)
        if reconciled is not None:
            return reconciled
    _ensure_not_billed(service_type, object_id)

    bill = _new_bill(src.patient_id, user)
    link = {'linked_type': service_type, 'linked_id': str(object_id)}

    if service_type == BillingItem.LINK_APPOINTMENT:
        doctor = src.doctor.display_name if src.doctor else ''
        # billed at the flat fee the leakage scan expects for a consultation
        _add_item(bill, name=f'Consultation with {doctor}'.strip(), service_type='consultation',
                  unit_price=cfg['consultation_fee'], description=src.department, **link)
        src.bill = bill
        src.save(update_fields=['bill'])
    elif service_type == BillingItem.LINK_LAB_ORDER:
        names = [str(t.get('testName')) for t in src.tests or [] if isinstance(t, dict) and t.get('testName')]
        _add_item(bill, name=f"Lab Tests: {', '.join(names)}", service_type='investigation',
                  unit_price=lab_order_amount(lab_order_document(src)), **link)
        src.bill_generated = True
        src.save(update_fields=['bill_generated'])
    else:
        medicines = [m for m in src.medicines or [] if isinstance(m, dict)]
        for med in medicines:
            _add_item(bill, name=str(med.get('name') or 'Medicine'), service_type='pharmacy',
                      unit_price=prescription_amount({'medicines': [med]}, cfg['nominal_medicine_price']),
                      description=' '.join(str(med.get(k) or '') for k in ('dosage', 'frequency', 'duration')).strip(),
                      **link)
        if not medicines:
            _add_item(bill, name='Medicines: 0 items', service_type='pharmacy',
                      unit_price=prescription_amount(prescription_document(src), cfg['nominal_medicine_price']),
                      **link)

    recalculate_totals(bill)
    log_action(user=user, action='bill.generate', object_type='bill', object_id=bill.id,
               detail={'serviceType': service_type, 'sourceId': str(object_id), 'total': str(bill.total)})
    logger.info("generated %s for %s %s, total %s", bill.bill_number, service_type, object_id, bill.total)
    return bill


@transaction.atomic
def apply_discount(bill_id: int, amount: Decimal, reason: str = '', user: Optional[User] = None) -> Bill:
    bill = Bill.objects.select_for_update().get(id=bill_id)
    if bill.status in (Bill.STATUS_PAID, Bill.STATUS_CANCELLED):
        raise ValueError(f'cannot discount a {bill.status} bill')
    amount = Decimal(str(amount))
    if amount < 0:
        raise ValueError('discount must not be negative')
    bill.discount = _q(amount)
    bill.discount_reason = (reason or '')[:255]
    bill.save(update_fields=['discount', 'discount_reason'])
    recalculate_totals(bill)
    log_action(user=user, action='bill.discount', object_type='bill', object_id=bill.id,
               detail={'discount': str(bill.discount), 'reason': bill.discount_reason})
    return bill


@transaction.atomic
def process_payment(bill_id: int, method: str, details: Optional[dict] = None,
                    paid_by: Optional[User] = None) -> Bill:
    bill = Bill.objects.select_for_update().get(id=bill_id)
    if bill.status in (Bill.STATUS_PAID, Bill.STATUS_CANCELLED):
        raise ValueError(f'bill {bill.bill_number} is already {bill.status}')
    bill.status = Bill.STATUS_PAID
    bill.payment_method = method
    bill.payment_details = details or {}
    bill.paid_at = timezone.now()
    bill.paid_by = paid_by if isinstance(paid_by, User) else None
    bill.save(update_fields=['status', 'payment_method', 'payment_details', 'paid_at', 'paid_by'])
    log_action(user=paid_by, action='bill.pay', object_type='bill', object_id=bill.id,
               detail={'method': method, 'total': str(bill.total)})
    return bill


def bill_payload(bill: Bill) -> dict:
    return {
        'id': bill.id,
        'billNumber': bill.bill_number,
        'patientId': bill.patient_id,
        'subtotal': bill.subtotal,
        'discount': bill.discount,
        'tax': bill.tax,
        'total': bill.total,
        'status': bill.status,
        'paymentMethod': bill.payment_method or None,
        'paidAt': bill.paid_at.isoformat() if bill.paid_at else None,
        'items': [{
            'id': i.id,
            'serviceName': i.service_name,
            'serviceType': i.service_type,
            'quantity': i.quantity,
            'unitPrice': i.unit_price,
            'totalPrice': i.total_price,
            'linkedTo': {'type': i.linked_type, 'id': i.linked_id} if i.linked_type else None,
        } for i in bill.items.order_by('id')],
    }
