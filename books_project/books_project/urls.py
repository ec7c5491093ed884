from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    # JSON endpoints consumed by the admin frontend
    path("api/", include("ledger_core.urls")),
]
