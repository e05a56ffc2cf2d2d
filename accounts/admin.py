from django.contrib import admin
from .models import Identity, UserProfile, UserRole


@admin.register(Identity)
class IdentityAdmin(admin.ModelAdmin):
    list_display = ("email", "kratos_id", "created_at")
    search_fields = ("email", "kratos_id")
    readonly_fields = ("created_at",)


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "first_name", "last_name", "society", "flat_number")
    search_fields = ("id", "first_name", "last_name")
    list_filter = ("society",)


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user_id", "role")
    list_filter = ("role",)
