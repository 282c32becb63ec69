"""
services/user_registry.py

Keeps the users table in step with the senders the agent talks to.

Nothing here may block message storage or reply generation: every failure is logged and
swallowed, and without a configured durable store the registry does nothing.
"""

from typing import Optional

from config.logging_config import get_logger
from core.normalizer import to_numeric_phone
from services.durable_store import DurableStoreProvider

logger = get_logger(__name__)


class UserRegistry:
    def __init__(self, durable: DurableStoreProvider):
        self.durable = durable

    async def ensure_user(self, phone_number: Optional[str], name: str) -> None:
        """
        Create the user on first contact and keep the stored display name current.

        Lookup is by numeric phone number. An existing user is only written to when the
        observed name differs from the stored one.
        """
        numeric_phone = to_numeric_phone(phone_number)
        if numeric_phone is None:
            logger.warning("Skipping user registry update: sender has no phone digits")
            return

        try:
            store = await self.durable.get()
            if store is None:
                logger.debug("User registry skipped: durable store not configured")
                return

            existing = await store.get_user_by_phone(numeric_phone)
            if existing is None:
                user_id = await store.create_user(name, numeric_phone)
                logger.info(f"Created user {user_id} for new sender", extra={'user_name': name})
            elif existing.name != name:
                await store.update_user(numeric_phone, name)
                logger.info(
                    "Updated user name",
                    extra={'old_name': existing.name, 'user_name': name}
                )
        except Exception as e:
            logger.error(f"Error managing user: {e}", exc_info=True)
