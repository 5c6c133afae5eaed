"""Root URL configuration for extlinker_tool."""

from django.urls import include, path

urlpatterns = [
    path('', include('extlinker.urls')),
]
