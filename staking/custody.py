"""
custody.py - Custody Gateway

The staking controller never touches balances itself. It asks a
CustodyGateway to move asset units between accounts and treats a False
return as an abort of the whole operation.

AssetLedger is the in-memory gateway: a single-asset balance book with
wallet registration, issuance from the system wallet, and a transfer log.

Key responsibilities:
    - transfer(source, dest, amount) -> bool, used in both directions
      (participant -> pool on open, pool -> participant on payout)
    - Never raises on a failed transfer; reports False instead
    - Conserves total supply: transfers redistribute, never create or destroy
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .core import validate_account


# Reserved wallet used to issue units into the book (funding, reward reserve).
# Exempt from the non-negative balance check.
SYSTEM_WALLET = "system"


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    Executed movement of asset units between two wallets.

    Attributes:
        amount: Units moved (positive)
        source: Debited wallet
        dest: Credited wallet
        sequence: Monotonic position in the custody log
    """
    amount: int
    source: str
    dest: str
    sequence: int

    def __repr__(self) -> str:
        return f"Transfer(#{self.sequence} {self.amount}: {self.source}→{self.dest})"


class AssetLedger:
    """
    Single-asset balance book implementing the CustodyGateway protocol.

    Wallets must be registered before they can send or receive. Balances are
    plain integers (asset base units). The system wallet is auto-registered
    and may go negative; its negated balance is the total issued supply.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own instance.

    Example:
        custody = AssetLedger("TOKEN", verbose=False)
        custody.register_wallet("alice")
        custody.register_wallet("staking_pool")
        custody.deposit("alice", 1_000)
        custody.transfer("alice", "staking_pool", 400)   # True
        custody.transfer("alice", "staking_pool", 10_000)  # False
    """

    def __init__(self, asset: str = "TOKEN", verbose: bool = True):
        """
        Create a custody book.

        Args:
            asset: Symbol of the single asset held (display only)
            verbose: Print one line per rejected transfer (default: True)
        """
        self.asset = asset
        self.verbose = verbose
        self.balances: Dict[str, int] = {SYSTEM_WALLET: 0}
        self.registered_wallets: Set[str] = {SYSTEM_WALLET}
        self.transfer_log: List[Transfer] = []
        self._next_sequence: int = 0

    # ========================================================================
    # READ-ONLY
    # ========================================================================

    def get_balance(self, wallet_id: str) -> int:
        """
        Balance of a wallet.

        Raises:
            KeyError: If the wallet is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise KeyError(f"Wallet {wallet_id} not registered")
        return self.balances[wallet_id]

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.registered_wallets

    def list_wallets(self) -> Set[str]:
        return self.registered_wallets.copy()

    def total_supply(self) -> int:
        """Sum of all balances; zero whenever every unit was issued via the system wallet."""
        return sum(self.balances[w] for w in sorted(self.registered_wallets))

    def issued_supply(self) -> int:
        """Units issued into the book so far."""
        return -self.balances[SYSTEM_WALLET]

    # ========================================================================
    # MUTATING
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet with a zero balance.

        Raises:
            ValueError: If wallet is already registered or the id is blank
        """
        validate_account(wallet_id, "wallet_id")
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = 0
        return wallet_id

    def deposit(self, wallet_id: str, amount: int) -> None:
        """
        Issue `amount` units from the system wallet into `wallet_id`.

        Raises:
            ValueError: If the transfer is rejected
        """
        if not self.transfer(SYSTEM_WALLET, wallet_id, amount):
            raise ValueError(f"deposit of {amount} into {wallet_id} rejected")

    def transfer(self, source: str, dest: str, amount: int) -> bool:
        """
        Move `amount` units from `source` to `dest`.

        Returns:
            True if applied; False if either wallet is unknown, the amount
            is not a positive integer, source equals dest, or the source
            (other than the system wallet) would go negative. A rejected
            transfer changes nothing.
        """
        reason = self._validate(source, dest, amount)
        if reason:
            if self.verbose:
                print(f"✗ TRANSFER REJECTED: {reason}")
            return False

        self.balances[source] -= amount
        self.balances[dest] += amount
        self.transfer_log.append(Transfer(amount, source, dest, self._next_sequence))
        self._next_sequence += 1
        return True

    def _validate(self, source: str, dest: str, amount: int) -> Optional[str]:
        if not isinstance(amount, int) or isinstance(amount, bool):
            return f"amount must be an integer, got {type(amount).__name__}"
        if amount <= 0:
            return f"amount must be positive, got {amount}"
        if source == dest:
            return "source and dest must be different"
        if source not in self.registered_wallets:
            return f"wallet not registered: {source}"
        if dest not in self.registered_wallets:
            return f"wallet not registered: {dest}"
        if source != SYSTEM_WALLET and self.balances[source] < amount:
            return f"{source}: balance {self.balances[source]} < {amount}"
        return None
