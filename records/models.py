"""
Database models for the hospital records backend.

These models capture the clinical and financial records the revenue
integrity logic reads: patients, appointments, lab orders,
prescriptions, bills and their line items, plus the medicine catalog
used for dosage recommendations.  Lifecycle changes are recorded in
:class:`StatusTransition` and leakage scans in :class:`RevenueSnapshot`.
"""
from __future__ import annotations

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Staff or patient account with a single role.

    Roles mirror the front-end dashboards: 'admin', 'doctor', 'nurse',
    'pharmacist', 'receptionist', 'lab' and 'patient'.
    """
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('doctor', 'Doctor'),
        ('nurse', 'Nurse'),
        ('pharmacist', 'Pharmacist'),
        ('receptionist', 'Receptionist'),
        ('lab', 'Lab technician'),
        ('patient', 'Patient'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default='patient', db_index=True)
    department = models.CharField(max_length=128, blank=True)
    specialization = models.CharField(max_length=128, blank=True)

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """A registered patient identified by a UHID."""
    STATUS_CHOICES = [
        ('outpatient', 'Outpatient'),
        ('admitted', 'Admitted'),
        ('critical', 'Critical'),
        ('discharged', 'Discharged'),
    ]
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]
    uhid = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    age = models.PositiveIntegerField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    diagnosis = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='outpatient', db_index=True)
    assigned_doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='assigned_patients'
    )
    history = models.JSONField(default=list, blank=True)
    vitals = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        if not self.uhid:
            from records.services.uhid import generate_uhid
            self.uhid = generate_uhid(exists=lambda v: Patient.objects.filter(uhid=v).exists())
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} ({self.uhid})"


class Bill(models.Model):
    """An OPD or discharge bill grouping one or more :class:`BillingItem`."""
    STATUS_DRAFT = 'draft'
    STATUS_PENDING = 'pending'
    STATUS_PAID = 'paid'
    STATUS_PARTIAL = 'partially-paid'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_PENDING, 'Pending'),
        (STATUS_PAID, 'Paid'),
        (STATUS_PARTIAL, 'Partially paid'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    PAYMENT_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('upi', 'UPI'),
        ('insurance', 'Insurance'),
        ('other', 'Other'),
    ]
    bill_number = models.CharField(max_length=32, unique=True)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='bills')
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    discount_reason = models.CharField(max_length=255, blank=True)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal('0'))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    payment_method = models.CharField(max_length=16, choices=PAYMENT_CHOICES, blank=True)
    payment_details = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='bills_created')
    created_at = models.DateTimeField(auto_now_add=True)
    paid_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='bills_paid')
    paid_at = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:
        return f"{self.bill_number} ({self.status})"


class Appointment(models.Model):
    TYPE_CHOICES = [
        ('consultation', 'Consultation'),
        ('follow-up', 'Follow-up'),
        ('emergency', 'Emergency'),
    ]
    STATUS_SCHEDULED = 'scheduled'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments')
    department = models.CharField(max_length=128, blank=True)
    date = models.DateField()
    time = models.CharField(max_length=16, blank=True)
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default='consultation')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED, db_index=True)
    consultation_end_time = models.DateTimeField(null=True, blank=True)
    bill = models.ForeignKey(Bill, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'status'], name='appt_patient_status_idx')]

    def __str__(self) -> str:
        return f"Appointment {self.id} {self.patient_id} {self.date} ({self.status})"


class LabOrder(models.Model):
    """A set of ordered lab tests; ``tests`` holds ``{testName, price}`` entries."""
    STATUS_PENDING = 'pending'
    STATUS_SAMPLE_COLLECTED = 'sample-collected'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_SAMPLE_COLLECTED, 'Sample collected'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='lab_orders')
    ordered_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='lab_orders_placed')
    technician = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='lab_orders_handled')
    tests = models.JSONField(default=list, blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    bill_generated = models.BooleanField(default=False)
    ordered_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'status'], name='laborder_patient_status_idx')]

    def save(self, *args, **kwargs):
        # keep the aggregate in step with the constituent tests
        if self.tests and not self.total_amount:
            self.total_amount = sum(
                (Decimal(str(t.get('price') or 0)) for t in self.tests if isinstance(t, dict)),
                Decimal('0'),
            )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"LabOrder {self.id} {self.patient_id} ({self.status})"


class Prescription(models.Model):
    """Medicines prescribed by a doctor; ``medicines`` holds per-drug dicts."""
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='prescriptions')
    doctor = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions_written')
    medicines = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    notes = models.TextField(blank=True)
    processed_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions_processed')
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'status'], name='rx_patient_status_idx')]

    def __str__(self) -> str:
        return f"Prescription {self.id} {self.patient_id} ({self.status})"


class BillingItem(models.Model):
    """A billed line item.  ``linked_type``/``linked_id`` name the source service."""
    LINK_APPOINTMENT = 'appointment'
    LINK_LAB_ORDER = 'lab-order'
    LINK_PRESCRIPTION = 'prescription'
    LINK_CHOICES = [
        (LINK_APPOINTMENT, 'Appointment'),
        (LINK_LAB_ORDER, 'Lab order'),
        (LINK_PRESCRIPTION, 'Prescription'),
    ]
    SERVICE_TYPE_CHOICES = [
        ('consultation', 'Consultation'),
        ('procedure', 'Procedure'),
        ('investigation', 'Investigation'),
        ('pharmacy', 'Pharmacy'),
        ('document', 'Document'),
        ('other', 'Other'),
    ]
    bill = models.ForeignKey(Bill, null=True, blank=True, on_delete=models.CASCADE, related_name='items')
    patient = models.ForeignKey(Patient, null=True, blank=True, on_delete=models.CASCADE, related_name='billing_items')
    service_name = models.CharField(max_length=255)
    service_type = models.CharField(max_length=16, choices=SERVICE_TYPE_CHOICES, default='other')
    description = models.CharField(max_length=255, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    linked_type = models.CharField(max_length=16, choices=LINK_CHOICES, blank=True)
    linked_id = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['linked_type', 'linked_id'], name='billitem_link_idx')]

    def __str__(self) -> str:
        return f"{self.service_name} x{self.quantity} = {self.total_price}"


class Medicine(models.Model):
    """Catalog entry used for autocomplete and dosage recommendations.

    Only ``name`` is required.  Imported catalogs spell the drug name in
    several fields, so lookups consider ``drug_name``, ``medicine_name``
    and ``display_name`` too.
    """
    name = models.CharField(max_length=255, db_index=True)
    drug_name = models.CharField(max_length=255, blank=True, db_index=True)
    medicine_name = models.CharField(max_length=255, blank=True, db_index=True)
    display_name = models.CharField(max_length=255, blank=True)
    strength = models.CharField(max_length=64, blank=True)
    form = models.CharField(max_length=32, blank=True)
    default_dosage = models.CharField(max_length=64, blank=True)
    default_frequency = models.CharField(max_length=64, blank=True)
    default_duration = models.CharField(max_length=64, blank=True)

    def to_document(self) -> dict:
        """Return the catalog entry as a document with only populated fields."""
        doc = {
            'name': self.name,
            'drugName': self.drug_name,
            'medicineName': self.medicine_name,
            'displayName': self.display_name,
            'strength': self.strength,
            'form': self.form,
            'defaultDosage': self.default_dosage,
            'defaultFrequency': self.default_frequency,
            'defaultDuration': self.default_duration,
        }
        return {k: v for k, v in doc.items() if v}

    def __str__(self) -> str:
        return self.name


class StatusTransition(models.Model):
    """Records a lifecycle change of an appointment, lab order or prescription."""
    entity_type = models.CharField(max_length=16)
    entity_id = models.CharField(max_length=64)
    from_status = models.CharField(max_length=20, blank=True)
    to_status = models.CharField(max_length=20)
    operator = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='status_transitions')
    reason = models.CharField(max_length=255, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['entity_type', 'entity_id', 'timestamp'], name='transition_entity_idx')]

    def __str__(self) -> str:
        return f"{self.entity_type}:{self.entity_id}: {self.from_status} → {self.to_status}"


class RevenueSnapshot(models.Model):
    """Result of one revenue leakage scan."""
    expected_revenue = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    captured_revenue = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    unbilled_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    leakage_percentage = models.FloatField(default=0.0)
    unbilled_count = models.PositiveIntegerField(default=0)
    completed_appointments = models.PositiveIntegerField(default=0)
    completed_lab_orders = models.PositiveIntegerField(default=0)
    approved_prescriptions = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['created_at'], name='revsnap_created_idx')]

    def __str__(self):
        return f"Revenue({self.unbilled_count} unbilled, {self.leakage_percentage:.1f}%) @ {self.created_at:%F %T}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]
