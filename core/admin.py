from django.contrib import admin
from .models import Society


@admin.register(Society)
class SocietyAdmin(admin.ModelAdmin):
    list_display = ("name", "num_flats", "created_by", "created_at")
    search_fields = ("name", "address", "created_by")
    readonly_fields = ("created_at", "updated_at")
