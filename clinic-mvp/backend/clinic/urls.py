from django.urls import path
from . import views

urlpatterns = [
    # intake & clinical pipeline
    path('intake/', views.IntakeView.as_view(), name='intake'),
    path('intake/<str:intake_id>/pipeline/', views.IntakePipelineView.as_view(), name='intake-pipeline'),
    path('intake-mock/', views.MockIntakeView.as_view(), name='intake-mock'),

    # doctor workspace
    path('doctor/notes/', views.DoctorNotesView.as_view(), name='doctor-notes'),
    path('doctor/erx/', views.ERxView.as_view(), name='doctor-erx'),
    path('doctor/secure-email/', views.SecureEmailView.as_view(), name='doctor-secure-email'),

    # revenue cycle
    path('rcm/eligibility/', views.EligibilityView.as_view(), name='rcm-eligibility'),
    path('rcm/export/', views.ExportView.as_view(), name='rcm-export'),

    # billing mirror
    path('patients/', views.PatientListView.as_view(), name='patient-list'),
    path('patients/<str:patient_id>/', views.PatientDetailView.as_view(), name='patient-detail'),
    path('patients/<str:patient_id>/sync/', views.PatientSyncView.as_view(), name='patient-sync'),
    path('invoices/', views.InvoiceListView.as_view(), name='invoice-list'),
    path('payments/', views.PaymentListView.as_view(), name='payment-list'),
    path('webhook/', views.WebhookView.as_view(), name='webhook'),
    path('webhook/events/', views.WebhookEventListView.as_view(), name='webhook-events'),
    path('dashboard/', views.DashboardView.as_view(), name='dashboard'),
    path('health/', views.HealthView.as_view(), name='health'),

    # CRM
    path('ghl/contacts/', views.CRMContactsView.as_view(), name='crm-contacts'),
    path('ghl/users/', views.CRMUsersView.as_view(), name='crm-users'),
    path('ghl/users/<str:user_id>/', views.CRMUserDetailView.as_view(), name='crm-user-detail'),
    path('ghl/calendars/', views.CRMCalendarsView.as_view(), name='crm-calendars'),
    path('ghl/ai/', views.CRMAgentView.as_view(), name='crm-agent'),
    path('ghl/ai/workflows/', views.CRMWorkflowView.as_view(), name='crm-workflows'),

    # EHR mirror
    path('osmind/patients/', views.EHRPatientsView.as_view(), name='ehr-patients'),
    path('osmind/appointments/', views.EHRAppointmentsView.as_view(), name='ehr-appointments'),
    path('osmind/insurance-cards/', views.EHRInsuranceCardsView.as_view(), name='ehr-insurance-cards'),
    path('osmind/sync/', views.EHRSyncView.as_view(), name='ehr-sync'),

    # payments / scraping
    path('square/invoice/', views.SquareInvoiceView.as_view(), name='square-invoice'),
    path('firecrawl/scrape/', views.ScrapeView.as_view(), name='firecrawl-scrape'),
]
