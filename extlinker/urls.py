"""URL configuration for the extlinker app.

This module defines the URL patterns for the app's views. It also
specifies the ``app_name`` to allow namespacing from the project URL
configuration.
"""

from django.urls import path

from . import views

app_name = 'extlinker'

urlpatterns = [
    path('api/rewrite/', views.rewrite_content, name='rewrite'),
    path('api/stats/', views.content_stats, name='stats'),
    path('api/script-data/', views.script_data, name='script_data'),
    path('extlinker.css', views.stylesheet, name='stylesheet'),
]
