import logging
import os
import sys

from carcheck.session_store import SessionStore
from carcheck.utils.logging import configure_logging


def debug_session():
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    log = logging.getLogger("debug_session")

    with SessionStore.from_settings() as store:
        log.info("Restored session: authenticated=%s", store.is_authenticated)

        email = os.getenv("DEBUG_EMAIL")
        password = os.getenv("DEBUG_PASSWORD")
        if not store.is_authenticated and email and password:
            result = store.login(email, password)
            if not result.success:
                log.error("Login failed: %s", result.error)
                return 1

        if store.is_authenticated:
            profile = store.profile
            log.info("Signed in as %s (%s)", store.display_name, store.user_id)
            if profile:
                log.info(
                    "Profile role=%s access=%s notifications=%s",
                    profile.role,
                    profile.access,
                    profile.notification_enabled,
                )
    return 0


if __name__ == "__main__":
    sys.exit(debug_session())
