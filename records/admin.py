"""
Django admin registrations for the records models.

Superusers can inspect clinical records, bills and scan history at
``/admin/``; the revenue tables are read-mostly.
"""

from django.contrib import admin

from .models import (
    User,
    Patient,
    Appointment,
    LabOrder,
    Prescription,
    Bill,
    BillingItem,
    Medicine,
    StatusTransition,
    RevenueSnapshot,
    AuditEvent,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'department', 'is_staff', 'is_superuser')
    list_filter = ('role', 'department')
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('uhid', 'name', 'age', 'gender', 'status', 'assigned_doctor')
    list_filter = ('status', 'gender')
    search_fields = ('uhid', 'name', 'phone')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'date', 'time', 'type', 'status', 'bill')
    list_filter = ('status', 'type', 'department')
    search_fields = ('patient__name', 'patient__uhid')


@admin.register(LabOrder)
class LabOrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'status', 'total_amount', 'bill_generated', 'ordered_at', 'completed_at')
    list_filter = ('status', 'bill_generated')
    search_fields = ('patient__name', 'patient__uhid')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'status', 'processed_by', 'processed_at')
    list_filter = ('status',)
    search_fields = ('patient__name', 'patient__uhid')


class BillingItemInline(admin.TabularInline):
    model = BillingItem
    extra = 0
    fields = ('service_name', 'service_type', 'quantity', 'unit_price', 'total_price', 'linked_type', 'linked_id')


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ('bill_number', 'patient', 'total', 'status', 'payment_method', 'created_at', 'paid_at')
    list_filter = ('status', 'payment_method')
    search_fields = ('bill_number', 'patient__name', 'patient__uhid')
    inlines = [BillingItemInline]


@admin.register(BillingItem)
class BillingItemAdmin(admin.ModelAdmin):
    list_display = ('service_name', 'bill', 'total_price', 'linked_type', 'linked_id', 'created_at')
    list_filter = ('service_type', 'linked_type')
    search_fields = ('service_name', 'linked_id')


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = ('name', 'strength', 'form', 'default_dosage', 'default_frequency', 'default_duration')
    search_fields = ('name', 'drug_name', 'medicine_name', 'display_name')


@admin.register(StatusTransition)
class StatusTransitionAdmin(admin.ModelAdmin):
    list_display = ('entity_type', 'entity_id', 'from_status', 'to_status', 'operator', 'timestamp')
    list_filter = ('entity_type', 'to_status')


@admin.register(RevenueSnapshot)
class RevenueSnapshotAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'expected_revenue', 'captured_revenue', 'unbilled_amount',
                    'leakage_percentage', 'unbilled_count')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
