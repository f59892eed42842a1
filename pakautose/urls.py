# pakautose/urls.py - Django admin site + the store API under /api/
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("store.urls")),
]
