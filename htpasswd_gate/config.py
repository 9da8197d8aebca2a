"""Application configuration"""

from pydantic_settings import BaseSettings


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """Application settings"""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"

    # Auth
    # Path to an htpasswd file with `user:{SHA}base64digest` records.
    # If unset, the app starts with an empty store and only anonymous access works.
    htpasswd_file: str | None = None
    auth_realm: str = "htpasswd-gate"
    # Comma-separated usernames allowed on /api/admin routes.
    #
    # Example: "alice,bob"
    admin_users: str | None = None
    # When enabled, every route except public_paths requires a logged user,
    # on top of the per-route policies.
    auth_protect_all: bool = False
    # Comma-separated paths the middleware never checks.
    public_paths: str = "/health"

    class Config:
        env_file = ".env"
        case_sensitive = False

    def admin_user_list(self) -> list[str]:
        return _split_csv(self.admin_users)

    def public_path_set(self) -> set[str]:
        return set(_split_csv(self.public_paths))


settings = Settings()
