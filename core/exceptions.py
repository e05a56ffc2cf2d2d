# core/exceptions.py


class StoreError(Exception):
    """A read or write against the relational store failed."""


class ProvisioningError(Exception):
    step = "provisioning"
    status_code = 502
    default_message = "Failed to create society"

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)

    def to_dict(self):
        data = {"success": False, "error": self.message, "step": self.step}
        if self.errors:
            data["errors"] = self.errors
        return data


class ValidationFailed(ProvisioningError):
    step = "validation"
    status_code = 400
    default_message = "Please fill in all required fields"


class SocietyLookupError(ProvisioningError):
    step = "lookup"
    default_message = "Failed to check existing society data"


class SocietyCreationError(ProvisioningError):
    step = "create_society"
    default_message = "Failed to create society"


class ProfileLinkError(ProvisioningError):
    step = "link_profile"
    default_message = "Failed to update your profile with society information"


class IdentityUnresolved(ProvisioningError):
    step = "identity"
    default_message = "User ID not found after signup"


class ProvisioningInProgress(ProvisioningError):
    step = "in_flight"
    status_code = 409
    default_message = "Society setup is already in progress"
