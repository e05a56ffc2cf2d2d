# core/serializers.py
from rest_framework import serializers

from accounts.models import UserProfile
from .models import Society


def split_list(value):
    """'Pool, Gym,, ' -> ['Pool', 'Gym']"""
    return [item.strip() for item in value.split(",") if item.strip()]


def format_utility_worker(name, contact=None):
    name = (name or "").strip()
    contact = (contact or "").strip()
    if contact:
        return f"{name} ({contact})"
    return name


class CommaSeparatedListField(serializers.Field):
    """Accepts comma separated text or a list of strings."""

    default_error_messages = {
        "invalid": "Expected comma separated text or a list of strings.",
    }

    def to_internal_value(self, data):
        if data is None:
            return []
        if isinstance(data, str):
            return split_list(data)
        if isinstance(data, (list, tuple)):
            items = []
            for item in data:
                if not isinstance(item, str):
                    self.fail("invalid")
                if item.strip():
                    items.append(item.strip())
            return items
        self.fail("invalid")

    def to_representation(self, value):
        return list(value or [])


class UtilityWorkersField(CommaSeparatedListField):
    """Text, list of names, or list of ``{name, contact}`` objects; stored flattened."""

    default_error_messages = {
        "invalid": "Expected comma separated text or a list of workers.",
        "missing_name": "Every utility worker needs a name.",
    }

    def to_internal_value(self, data):
        if not isinstance(data, (list, tuple)):
            return super().to_internal_value(data)
        workers = []
        for item in data:
            if isinstance(item, dict):
                if not (item.get("name") or "").strip():
                    self.fail("missing_name")
                workers.append(format_utility_worker(item.get("name"), item.get("contact")))
            elif isinstance(item, str):
                if item.strip():
                    workers.append(item.strip())
            else:
                self.fail("invalid")
        return workers


class SocietySetupSerializer(serializers.Serializer):
    """Society setup form: both the standalone and the pre-signup one."""

    name = serializers.CharField(max_length=200, trim_whitespace=True)
    address = serializers.CharField(trim_whitespace=True)
    amenities = CommaSeparatedListField(required=False, default=list)
    utilityWorkers = UtilityWorkersField(required=False, default=list)
    numFlats = serializers.IntegerField(min_value=1)


class SocietySerializer(serializers.ModelSerializer):
    class Meta:
        model = Society
        fields = ["id", "name", "address", "amenities", "utility_workers", "num_flats", "created_by", "created_at"]
        read_only_fields = fields


class UserProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserProfile
        fields = ["id", "first_name", "last_name", "avatar_url", "bio", "flat_number", "society", "updated_at"]
        read_only_fields = ["id", "society", "updated_at"]


class SocietyMemberSerializer(serializers.ModelSerializer):
    role = serializers.SerializerMethodField()

    class Meta:
        model = UserProfile
        fields = ["id", "first_name", "last_name", "flat_number", "role"]

    def get_role(self, obj):
        return self.context.get("roles", {}).get(obj.id, "tenant")
