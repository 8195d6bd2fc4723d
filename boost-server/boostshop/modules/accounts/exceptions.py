"""Errors raised by account use cases."""


class AccountError(Exception):
    """Base class for account errors."""


class AccountAlreadyExistsError(AccountError):
    pass


class AccountNotFoundError(AccountError):
    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class InvalidPasswordError(AccountError):
    """The password is wrong or cannot be used."""


class InvalidRoleError(AccountError):
    def __init__(self, role: str) -> None:
        self.role = role
        super().__init__(f"Unknown role {role!r}")
