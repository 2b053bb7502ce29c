"""
Equipstock URLs.

Usage in the project urls.py:
    path('api/', include('equipstock.urls')),
"""

from django.urls import path

from equipstock import views

app_name = 'equipstock'

urlpatterns = [
    path('equipment/<int:equipment_id>/availability', views.availability, name='availability'),
    path('equipment/<int:equipment_id>/movement', views.movement, name='movement'),
    path('equipment/<int:equipment_id>/movements', views.movement_history, name='movement-history'),
    path('equipment/<int:equipment_id>/adjust', views.adjust, name='adjust'),
    path('equipment/<int:equipment_id>/units', views.units, name='units'),
    path('equipment/<int:equipment_id>/units/<int:unit_id>', views.unit_detail, name='unit-detail'),
    path('stock/', views.overview, name='overview'),
    path('stock/alerts', views.alerts, name='alerts'),
    path('stock/low-stock', views.low_stock, name='low-stock'),
    path('stock/<int:equipment_id>', views.stock_detail, name='stock-detail'),
    path('bookings/<int:booking_id>/dates', views.reschedule, name='reschedule'),
    path('bookings/<int:booking_id>/return', views.return_booking, name='return'),
]
