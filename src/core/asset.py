"""
Base Asset — интерфейс принимаемого актива и in-memory реализация

Vault потребляет base asset через ERC-20-подобный интерфейс:
- transfer_from(spender, owner, to, amount) -> bool
- transfer(sender, to, amount) -> bool
- balance_of(account) -> int
- approve(owner, spender, amount) -> bool

Любой сигнал отказа (False или исключение) vault трактует как жёсткое
прерывание операции — см. require_transfer().

InMemoryAsset — эталонная реализация для симуляций и тестов:
балансы и allowances в dict, mint/burn для начальной настройки,
checkpoint/restore для транзакционного отката.
"""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from src.core.errors import AssetTransferFailed, InvalidAmount
from src.core.math.share_math import validate_amount


@runtime_checkable
class BaseAsset(Protocol):
    """Интерфейс base asset, потребляемый vault и стратегиями."""

    symbol: str

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...

    def approve(self, owner: str, spender: str, amount: int) -> bool: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def checkpoint(self) -> object: ...

    def restore(self, checkpoint: object) -> None: ...


def require_transfer(ok: bool, action: str) -> None:
    """
    Превращает bool-сигнал base asset в исключение.

    Raises:
        AssetTransferFailed: Если ok is not True
    """
    if ok is not True:
        raise AssetTransferFailed(f"Base asset rejected {action}")


@dataclass(frozen=True)
class AssetCheckpoint:
    """Снапшот состояния InMemoryAsset."""

    balances: dict[str, int]
    allowances: dict[tuple[str, str], int]
    total_supply: int


@dataclass
class InMemoryAsset:
    """
    In-memory fungible token.

    Семантика transfer/transfer_from следует ERC-20:
    недостаточный баланс или allowance -> False (без изменения состояния).
    """

    symbol: str = "USDC"
    decimals: int = 6
    _balances: dict[str, int] = field(default_factory=dict, repr=False)
    _allowances: dict[tuple[str, str], int] = field(default_factory=dict, repr=False)
    _total_supply: int = 0

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    @property
    def total_supply(self) -> int:
        return self._total_supply

    # -------------------------------------------------------------------------
    # Перемещения
    # -------------------------------------------------------------------------

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        validate_amount(amount, "amount")

        if self.balance_of(sender) < amount:
            return False

        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        validate_amount(amount, "amount")

        allowed = self.allowance(owner, spender)
        if allowed < amount or self.balance_of(owner) < amount:
            return False

        self._allowances[(owner, spender)] = allowed - amount
        self._move(owner, to, amount)
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        validate_amount(amount, "amount")
        self._allowances[(owner, spender)] = amount
        return True

    # -------------------------------------------------------------------------
    # Эмиссия (настройка симуляций)
    # -------------------------------------------------------------------------

    def mint(self, account: str, amount: int) -> None:
        validate_amount(amount, "amount")
        self._balances[account] = self.balance_of(account) + amount
        self._total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        validate_amount(amount, "amount")

        if self.balance_of(account) < amount:
            raise InvalidAmount(
                f"Cannot burn {amount} {self.symbol} from {account}: balance {self.balance_of(account)}"
            )

        self._set_balance(account, self.balance_of(account) - amount)
        self._total_supply -= amount

    # -------------------------------------------------------------------------
    # Транзакционный откат
    # -------------------------------------------------------------------------

    def checkpoint(self) -> AssetCheckpoint:
        return AssetCheckpoint(
            balances=dict(self._balances),
            allowances=dict(self._allowances),
            total_supply=self._total_supply,
        )

    def restore(self, checkpoint: AssetCheckpoint) -> None:
        self._balances = dict(checkpoint.balances)
        self._allowances = dict(checkpoint.allowances)
        self._total_supply = checkpoint.total_supply

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _move(self, sender: str, to: str, amount: int) -> None:
        self._set_balance(sender, self.balance_of(sender) - amount)
        self._set_balance(to, self.balance_of(to) + amount)

    def _set_balance(self, account: str, value: int) -> None:
        if value == 0:
            self._balances.pop(account, None)
        else:
            self._balances[account] = value
