from django.contrib import admin
from django.urls import path

urlpatterns = [
    path("admin/", admin.site.urls),
]


# admin customisation
admin.site.site_header = "Freight Matching"
admin.site.site_title = "Freight Matching"
admin.site.index_title = "Matching Audit"
