"""Exceptions raised by the vault core and its collaborators.

Every error aborts the whole operation: by the time one reaches the caller,
any state touched by the failing call has been restored.
"""


class VaultError(Exception):
    """Base class for all vault failures."""


class Unauthorized(VaultError):
    """Caller is not allowed to perform an owner-only action."""

    def __init__(self, caller: str, action: str):
        self.caller = caller
        self.action = action
        super().__init__(f"{caller} is not authorized to {action}")


class VaultPaused(VaultError):
    """Deposits and mints are refused while the vault is paused."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Vault is paused: {action} is disabled")


class BelowMinimumDeposit(VaultError):
    def __init__(self, assets: int, minimum: int):
        self.assets = assets
        self.minimum = minimum
        super().__init__(f"Deposit of {assets} is below the minimum of {minimum}")


class ZeroConversion(VaultError):
    """A nonzero deposit or mint that would convert to nothing on the other side."""

    def __init__(self, action: str, amount: int):
        self.action = action
        self.amount = amount
        super().__init__(f"{action} of {amount} converts to zero")


class ExceededMaxWithdraw(VaultError):
    def __init__(self, owner: str, assets: int, max_assets: int):
        self.owner = owner
        self.assets = assets
        self.max_assets = max_assets
        super().__init__(f"Withdraw of {assets} exceeds max {max_assets} for {owner}")


class ExceededMaxRedeem(VaultError):
    def __init__(self, owner: str, shares: int, max_shares: int):
        self.owner = owner
        self.shares = shares
        self.max_shares = max_shares
        super().__init__(f"Redeem of {shares} shares exceeds max {max_shares} for {owner}")


class SlippageExceeded(VaultError):
    """External protocol returned less than the tolerated minimum."""

    def __init__(self, expected: int, received: int, minimum: int):
        self.expected = expected
        self.received = received
        self.minimum = minimum
        super().__init__(f"Slippage exceeded: expected {expected}, received {received} (minimum {minimum})")


class ExternalProtocolCallFailed(VaultError):
    """The external yield protocol reverted or raised."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"External protocol {operation} failed: {reason}")


class EmergencyModeDisabled(VaultError):
    def __init__(self):
        super().__init__("Emergency withdraw is disabled")


class ReentrantCall(VaultError):
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Reentrant call to {action} refused")


class InvalidAddress(VaultError):
    def __init__(self, address: str, reason: str = "invalid address"):
        self.address = address
        super().__init__(f"{reason}: {address!r}")


class DeadSharesLocked(VaultError):
    """Dead shares can never leave the dead address."""

    def __init__(self):
        super().__init__("Dead shares cannot be moved or burned")


class InvalidRedemptionState(VaultError):
    def __init__(self, current: str, expected: str):
        self.current = current
        self.expected = expected
        super().__init__(f"Redemption is {current}, expected {expected}")


class TokenError(VaultError):
    """Base class for base-asset and share-token transfer failures."""


class InsufficientBalance(TokenError):
    def __init__(self, account: str, balance: int, needed: int):
        self.account = account
        self.balance = balance
        self.needed = needed
        super().__init__(f"Insufficient balance for {account}: has {balance}, needs {needed}")


class InsufficientAllowance(TokenError):
    def __init__(self, spender: str, allowance: int, needed: int):
        self.spender = spender
        self.allowance = allowance
        self.needed = needed
        super().__init__(f"Insufficient allowance for {spender}: has {allowance}, needs {needed}")
