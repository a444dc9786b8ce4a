from django.urls import path
from . import views

app_name = 'reseller_commissions'

urlpatterns = [
    # Commissions
    path('api/commissions/', views.commission_list, name='commission_list'),
    path('api/commissions/bulk/', views.commission_bulk, name='commission_bulk'),
    path('api/commissions/<int:pk>/', views.commission_detail, name='commission_detail'),

    # Auto-approval rules
    path('api/auto-approval-rules/', views.rule_list, name='rule_list'),
    path('api/auto-approval-rules/<int:pk>/', views.rule_detail, name='rule_detail'),
    path('api/auto-approval-rules/<int:pk>/toggle/', views.rule_toggle, name='rule_toggle'),

    # Resellers and deals
    path('api/resellers/<int:pk>/toggle-trusted/', views.reseller_toggle_trusted, name='reseller_toggle_trusted'),
    path('api/customers/<int:pk>/close-deal/', views.customer_close_deal, name='customer_close_deal'),

    # Notifications
    path('api/notifications/', views.notification_list, name='notification_list'),
    path('api/notifications/preferences/', views.notification_preferences, name='notification_preferences'),
    path('api/notifications/<int:pk>/', views.notification_detail, name='notification_detail'),

    # Audit log and documents
    path('api/audit-logs/', views.audit_log_list, name='audit_log_list'),
    path('api/documents/', views.document_list, name='document_list'),
]
