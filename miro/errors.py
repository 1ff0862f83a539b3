class MiroError(Exception):
    """Base class for application errors."""


class GatewayError(MiroError):
    """The model provider is unavailable or returned something unusable."""


class ProfileError(MiroError, ValueError):
    """Onboarding or edit-profile input failed validation."""
