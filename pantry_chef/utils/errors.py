"""Custom exception classes for Pantry Chef services and the ingredient pipeline."""


class PantryChefError(Exception):
    """Base exception for Pantry Chef"""

    pass


class MissingConfiguration(PantryChefError):
    """Raised when a remote endpoint is not configured.

    Callers treat this as a signal to use their local fallback; it is never
    shown to the user.
    """

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"Configure {setting} to enable this feature.")


class InvalidResponse(PantryChefError):
    """Raised when a remote payload cannot be decoded"""

    def __init__(self, detail: str = "The AI chef returned an unexpected response."):
        self.detail = detail
        super().__init__(detail)


class RequestFailed(PantryChefError):
    """Raised when a remote endpoint answers with a non-2xx status"""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"The server responded with status code {status_code}.")


class TransportError(PantryChefError):
    """Raised when a request never produced an HTTP response (DNS, connection, timeout)"""

    def __init__(self, original_error: str):
        self.original_error = original_error
        super().__init__(f"Could not reach the server: {original_error}")


class IngredientValidationError(PantryChefError):
    """Raised when a request fails local validation before any network call"""

    pass


class NoActiveRecipeError(IngredientValidationError):
    """Raised when a follow-up is requested before any recipe exists"""

    def __init__(self):
        super().__init__("Generate a recipe first, then ask for tweaks.")


class CapabilityDenied(PantryChefError):
    """Raised when the user refuses access to a capability (microphone, speech)"""

    def __init__(self, capability: str = "Speech recognition"):
        self.capability = capability
        super().__init__(f"{capability} access is required to transcribe your voice.")


class CapabilityError(PantryChefError):
    """Raised when a capability provider fails at the session or transport level"""

    def __init__(self, capability: str, error: str):
        self.capability = capability
        self.error = error
        super().__init__(f"{capability} failed: {error}")
