# urls.py

from django.urls import path
from . import views


app_name = 'portal'

urlpatterns = [
    path('', views.landing, name='landing'),
    path('login', views.login_view, name='login'),
    path('logout', views.logout_view, name='logout'),
    path('unauthorized', views.unauthorized, name='unauthorized'),

    # Dashboards
    path('sales/dashboard', views.sales_dashboard, name='sales_dashboard'),
    path('purchase/dashboard', views.purchase_dashboard, name='purchase_dashboard'),
    path('admin/dashboard', views.admin_dashboard, name='admin_dashboard'),

    # Admin user management
    path('admin/users', views.manage_users, name='manage_users'),
]
