"""
URL Configuration for Urban Climate API project.

Only the admin is routed; HTTP controllers live outside this repository.
"""
from django.contrib import admin
from django.urls import path

urlpatterns = [
    path('admin/', admin.site.urls),
]
