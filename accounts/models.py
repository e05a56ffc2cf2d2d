from django.db import models


class Identity(models.Model):
    kratos_id = models.CharField(max_length=64, unique=True)
    email = models.EmailField(db_index=True)
    traits = models.JSONField(default=dict, blank=True)  # first_name, last_name, tenant_status, ...
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.email} ({self.kratos_id})"


class RoleChoices(models.TextChoices):
    ADMIN = "admin", "admin"
    TENANT = "tenant", "tenant"


class UserProfile(models.Model):
    class Meta:
        db_table = "user_profiles"

    # same id the identity provider issued
    id = models.CharField(max_length=64, primary_key=True)
    society = models.ForeignKey(
        "core.Society",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="profiles",
    )
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    avatar_url = models.URLField(max_length=500, blank=True)
    bio = models.TextField(blank=True)
    flat_number = models.CharField(max_length=20, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.id})".strip()


class UserRole(models.Model):
    class Meta:
        db_table = "user_roles"

    user_id = models.CharField(max_length=64, unique=True)
    role = models.CharField(max_length=20, choices=RoleChoices.choices, default=RoleChoices.TENANT)

    def __str__(self):
        return f"{self.user_id}: {self.role}"
