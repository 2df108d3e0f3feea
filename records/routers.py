"""
URL mappings for the records API.

Paths follow the front-end's endpoint table; trailing slashes are
deliberately omitted.
"""
from django.urls import path, include

from .auth_views import login_view
from .views import health
from .views.medicines import medicine_recommendations, medicine_autocomplete
from .views.revenue import revenue_integrity, unbilled_for_patient, generate_bill, revenue_snapshots
from .views.appointments import list_appointments, update_appointment_status
from .views.lab_orders import list_lab_orders, update_lab_order_status
from .views.prescriptions import list_prescriptions, process_prescription_view
from .views.bills import bill_discount, bill_pay
from .views.insights import patient_insights


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    # Medicine catalog
    path('api/medicines/recommendations', medicine_recommendations, name='medicine_recommendations'),
    path('api/medicines/autocomplete', medicine_autocomplete, name='medicine_autocomplete'),
    # Revenue integrity
    path('api/revenue/integrity', revenue_integrity, name='revenue_integrity'),
    path('api/revenue/unbilled', unbilled_for_patient, name='revenue_unbilled'),
    path('api/revenue/generate-bill', generate_bill, name='revenue_generate_bill'),
    path('api/revenue/snapshots', revenue_snapshots, name='revenue_snapshots'),
    # Clinical records
    path('api/appointments', list_appointments, name='appointments'),
    path('api/appointments/update-status', update_appointment_status, name='appointment_update_status'),
    path('api/lab-orders', list_lab_orders, name='lab_orders'),
    path('api/lab-orders/update-status', update_lab_order_status, name='lab_order_update_status'),
    path('api/prescriptions', list_prescriptions, name='prescriptions'),
    path('api/prescriptions/process', process_prescription_view, name='prescription_process'),
    # Bills
    path('api/bills/<int:pk>/discount', bill_discount, name='bill_discount'),
    path('api/bills/<int:pk>/pay', bill_pay, name='bill_pay'),
    # AI insights
    path('api/patients/<int:pk>/insights', patient_insights, name='patient_insights'),
]
