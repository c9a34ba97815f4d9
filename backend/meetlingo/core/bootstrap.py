# meetlingo/core/bootstrap.py
"""
Bootstrap module for application initialization.
Handles the startup configuration check and creation of a default admin user.
"""
import logging

from meetlingo.config import Settings
from meetlingo.models.user import User
from meetlingo.core.security import hash_password

logger = logging.getLogger("uvicorn.error")


def check_configuration(settings: Settings) -> None:
    """
    Fail fast when required credentials are missing.

    Skipped when SKIP_ENV_VALIDATION is set (tests, image builds).

    Raises:
        ConfigError: listing every missing variable
    """
    if settings.skip_env_validation:
        logger.warning("[bootstrap] SKIP_ENV_VALIDATION set -> configuration not validated")
        return
    settings.ensure_valid()


async def ensure_default_admin(settings: Settings) -> None:
    """
    If no admin exists in the database, create one from ADMIN_* settings.
    Only takes effect when there is no user with role="admin" and
    ADMIN_PASSWORD is set (to avoid a default weak password).
    """
    if await User.filter(role="admin").exists():
        return

    if not settings.admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return

    # The configured username may already belong to a regular account
    admin_username = settings.admin_username
    suffix = 1
    while await User.filter(username=admin_username).exists():
        suffix += 1
        admin_username = f"{settings.admin_username}{suffix}"

    u = await User.create(
        username=admin_username,
        name="Administrator",
        email=settings.admin_email,
        password_hash=hash_password(settings.admin_password),
        role="admin",
    )
    logger.warning("[bootstrap] Created default admin -> username=%s email=%s id=%s",
                   u.username, u.email, u.id)
