from api.services.auth import AuthService, AuthSession

__all__ = ["AuthService", "AuthSession"]
