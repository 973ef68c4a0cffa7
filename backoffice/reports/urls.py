from django.urls import path
from .views import dashboard, finance_summary, transaction_list, transaction_export

urlpatterns = [
    path('reports/dashboard/', dashboard, name='report-dashboard'),
    path('reports/finance/', finance_summary, name='report-finance'),
    path('reports/transactions/', transaction_list, name='report-transactions'),
    path('reports/transactions/export/', transaction_export, name='report-transactions-export'),
]
