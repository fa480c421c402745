from django.contrib import admin
from django.urls import path

admin.site.site_header = 'Asset Ledger'
admin.site.site_title = 'Asset Ledger'

urlpatterns = [
    path('admin/', admin.site.urls),
]
