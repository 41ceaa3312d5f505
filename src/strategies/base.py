"""
StrategyPort — capability-интерфейс источника доходности

Стратегия — "место, которое держит внесённые средства и умеет сообщить их
стоимость, нарастить и вернуть". Vault зависит только от этого контракта,
никогда от внутренностей адаптера.

Все мутирующие операции вызываются ТОЛЬКО привязанным vault:
caller обязан совпадать с сохранённой ссылкой на vault, иначе Unauthorized.

Привязка один-к-одному: стратегия принадлежит ровно одному vault,
повторная привязка к другому vault -> StrategyAlreadyBound.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from src.core.asset import BaseAsset
from src.core.errors import StrategyAlreadyBound, Unauthorized


class StrategyPort(ABC):
    """
    Базовый класс адаптеров стратегий.

    Подклассы реализуют _deposit/_withdraw/_withdraw_all/_harvest/balance_of
    и checkpoint/restore своего внешнего рынка. Проверку caller выполняет
    базовый класс.
    """

    name: str = "strategy"

    def __init__(self, asset: BaseAsset, address: str):
        self.asset = asset
        self.address = address
        self._vault: Optional[Any] = None

    # -------------------------------------------------------------------------
    # Привязка
    # -------------------------------------------------------------------------

    @property
    def vault(self) -> Optional[Any]:
        return self._vault

    def bind(self, vault: Any) -> None:
        """
        Привязка к vault (back-reference).

        Raises:
            StrategyAlreadyBound: Если стратегия уже привязана к другому vault
        """
        if self._vault is not None and self._vault is not vault:
            raise StrategyAlreadyBound(
                f"Strategy {self.name} at {self.address} is already bound to {self._vault.address}"
            )
        self._vault = vault

    def release(self, vault: Any) -> None:
        """Снятие привязки; вызов от чужого vault игнорируется."""
        if self._vault is vault:
            self._vault = None

    def _require_vault(self, caller: Any) -> Any:
        if self._vault is None or caller is not self._vault:
            raise Unauthorized(f"Only the bound vault may call strategy {self.name} at {self.address}")
        return self._vault

    # -------------------------------------------------------------------------
    # Операции (только для vault)
    # -------------------------------------------------------------------------

    def deposit(self, amount: int, *, caller: Any) -> None:
        """Забрать amount у vault (vault делает approve заранее) и разместить в источнике."""
        self._deposit(self._require_vault(caller), amount)

    def withdraw(self, amount: int, *, caller: Any) -> None:
        """
        Вернуть vault ровно amount.

        Raises:
            InsufficientStrategyFunds: Если источник не может вернуть amount синхронно
        """
        self._withdraw(self._require_vault(caller), amount)

    def withdraw_all(self, *, caller: Any) -> int:
        """Вернуть vault весь баланс стратегии. Returns: возвращённая сумма."""
        return self._withdraw_all(self._require_vault(caller))

    def harvest(self, *, caller: Any) -> None:
        """Шаг реализации доходности, специфичный для протокола."""
        self._harvest(self._require_vault(caller))

    # -------------------------------------------------------------------------
    # Контракт адаптера
    # -------------------------------------------------------------------------

    @abstractmethod
    def balance_of(self) -> int:
        """Текущая стоимость в base asset units, включая уже отражённую доходность."""

    @abstractmethod
    def _deposit(self, vault: Any, amount: int) -> None: ...

    @abstractmethod
    def _withdraw(self, vault: Any, amount: int) -> None: ...

    @abstractmethod
    def _withdraw_all(self, vault: Any) -> int: ...

    @abstractmethod
    def _harvest(self, vault: Any) -> None: ...

    @abstractmethod
    def checkpoint(self) -> object:
        """Снапшот состояния стратегии и её внешнего рынка."""

    @abstractmethod
    def restore(self, checkpoint: object) -> None: ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} at {self.address}>"
