import pytest

from boostshop.core.crypto import hash_password, needs_rehash, verify_password
from boostshop.modules.accounts import (
    AccountAlreadyExistsError,
    AccountCreateInput,
    AccountNotFoundError,
    AccountRole,
    AccountService,
    InvalidPasswordError,
    InvalidRoleError,
)


@pytest.fixture()
def accounts(session_factory):
    """Run one AccountService call inside its own transaction."""

    async def _run(method: str, *args, **kwargs):
        async with session_factory() as session:
            async with session.begin():
                return await getattr(AccountService.with_session(session), method)(*args, **kwargs)

    return _run


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("secret123", rounds=4)
        assert verify_password("secret123", hashed)
        assert not verify_password("secret124", hashed)
        assert not verify_password("secret123", "plain-text")

    def test_overlong_password_rejected(self):
        with pytest.raises(ValueError):
            hash_password("x" * 73, rounds=4)
        assert not verify_password("x" * 73, hash_password("x" * 72, rounds=4))

    def test_needs_rehash(self):
        assert needs_rehash(hash_password("secret123", rounds=4))
        assert not needs_rehash(hash_password("secret123", rounds=4), rounds=4)
        assert needs_rehash("garbage")


class TestAccountService:
    @pytest.mark.asyncio()
    async def test_register_normalizes_email(self, accounts):
        account = await accounts("register", AccountCreateInput(email="  Buyer@Example.COM ", password="secret123"))

        assert account.email == "buyer@example.com"
        assert account.role == AccountRole.USER
        assert account.display_name == "buyer"
        with pytest.raises(AccountAlreadyExistsError):
            await accounts("register", AccountCreateInput(email="buyer@example.com", password="secret123"))

    @pytest.mark.asyncio()
    async def test_register_rejects_unknown_role(self, accounts):
        with pytest.raises(InvalidRoleError):
            await accounts("register", AccountCreateInput(email="a@example.com", password="x" * 8, role="owner"))

    @pytest.mark.asyncio()
    async def test_authenticate(self, accounts, make_account):
        account = await make_account()

        assert (await accounts("authenticate", account.email.upper(), "secret123")).id == account.id
        assert await accounts("authenticate", account.email, "wrong") is None
        assert await accounts("authenticate", "nobody@example.com", "secret123") is None

    @pytest.mark.asyncio()
    async def test_disabled_account_cannot_log_in(self, accounts, make_account):
        account = await make_account()

        disabled = await accounts("set_active", account.id, False)

        assert disabled.is_active is False
        assert await accounts("authenticate", account.email, "secret123") is None
        with pytest.raises(AccountNotFoundError):
            await accounts("set_active", "missing", False)

    @pytest.mark.asyncio()
    async def test_change_password(self, accounts, make_account):
        account = await make_account()

        with pytest.raises(InvalidPasswordError):
            await accounts("change_password", account.id, "wrong", "newsecret")
        await accounts("change_password", account.id, "secret123", "newsecret")

        assert await accounts("authenticate", account.email, "secret123") is None
        assert await accounts("authenticate", account.email, "newsecret") is not None

    @pytest.mark.asyncio()
    async def test_roles_and_admin_lookup(self, accounts, make_account):
        account = await make_account()
        assert await accounts("has_admin") is False

        promoted = await accounts("set_role", account.id, AccountRole.ADMIN)

        assert promoted.is_admin()
        assert await accounts("has_admin") is True
        assert [a.id for a in await accounts("list_accounts", role=AccountRole.ADMIN)] == [account.id]
        with pytest.raises(InvalidRoleError):
            await accounts("set_role", account.id, "root")
