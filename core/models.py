# core/models.py
from django.core.validators import MinValueValidator
from django.db import models


class Society(models.Model):
    class Meta:
        db_table = "societies"
        indexes = [models.Index(fields=["created_by"])]

    name = models.CharField(max_length=200)
    address = models.TextField()
    amenities = models.JSONField(default=list, blank=True)
    # "<name> (<contact>)" or just "<name>"
    utility_workers = models.JSONField(default=list, blank=True)
    num_flats = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    created_by = models.CharField(max_length=64)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def to_dict(self):
        return {
            "id": self.pk,
            "name": self.name,
            "address": self.address,
            "amenities": self.amenities,
            "utility_workers": self.utility_workers,
            "num_flats": self.num_flats,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
