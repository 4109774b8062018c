from django.urls import path
from . import views

urlpatterns = [
    path("", views.index, name="index"),
    path("demographic/", views.demographic_view, name="demographic"),
    path("device/", views.device_view, name="device"),
    path("weekly/", views.weekly_view, name="weekly"),
    path("region/", views.region_view, name="region"),
]
