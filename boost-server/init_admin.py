"""
Bootstrap the first administrator account.

Reads ADMIN_EMAIL / ADMIN_PASSWORD from the environment, falling back to a
development default that must be changed after the first login.
"""
import asyncio
import logging
import os

from boostshop.core.config import get_settings
from boostshop.core.logging import configure_logging
from boostshop.infrastructure.database.session import dispose_engine, get_session_factory, init_db
from boostshop.modules.accounts import AccountCreateInput, AccountRole, AccountService

logger = logging.getLogger("boostshop.init_admin")


async def create_default_admin() -> None:
    await init_db()

    factory = get_session_factory()
    async with factory() as db, db.begin():
        accounts = AccountService.with_session(db)
        if await accounts.has_admin():
            logger.info("An administrator already exists; nothing to do")
            return

        email = os.environ.get("ADMIN_EMAIL", "admin@example.com")
        password = os.environ.get("ADMIN_PASSWORD", "admin123")
        existing = await accounts.get_by_email(email)
        if existing is not None:
            account = await accounts.set_role(existing.id, AccountRole.SUPER_ADMIN)
            logger.info("Promoted %s to super administrator", account.email)
            return
        account = await accounts.register(
            AccountCreateInput(email=email, password=password, role=AccountRole.SUPER_ADMIN)
        )
        logger.info("Created administrator %s (%s)", account.email, account.id)
        if "ADMIN_PASSWORD" not in os.environ:
            logger.warning("Default password in use; change it after logging in")


async def main() -> None:
    configure_logging(get_settings())
    try:
        await create_default_admin()
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
