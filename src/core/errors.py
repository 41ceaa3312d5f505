"""
Vault Errors — иерархия исключений ядра vault

Все ошибки поднимаются синхронно вызывающему коду. Повторы внутри ядра
не выполняются: повтор — ответственность вызывающего (новый вызов).

Любая ошибка внутри операции vault откатывает операцию целиком
(all-or-nothing), после чего исходное исключение пробрасывается дальше.
"""


class VaultError(Exception):
    """Базовый класс всех ошибок vault."""
    pass


class InvalidAmount(VaultError):
    """Нулевая, отрицательная или нецелая сумма операции."""
    pass


class InsufficientShares(VaultError):
    """У вызывающего меньше shares, чем он пытается погасить."""
    pass


class InsufficientBalance(VaultError):
    """Списание превышает баланс держателя (shares или base asset)."""
    pass


class InsufficientStrategyFunds(VaultError):
    """
    Внешний источник доходности не может синхронно вернуть запрошенную сумму.

    Жёсткий отказ: внешняя операция vault прерывается целиком,
    частичная выплата не допускается.
    """
    pass


class StrategyOperationFailed(VaultError):
    """
    Внешний рынок сигнализировал об ошибке (ненулевой код ошибки,
    невозможность прочитать exchange rate и т.п.).
    """

    def __init__(self, message: str, error_code: int | None = None):
        super().__init__(message)
        self.error_code = error_code


class NoStrategyBound(VaultError):
    """Операция требует привязанную стратегию, но её нет."""
    pass


class NoSharesOutstanding(VaultError):
    """Конверсия shares -> assets при total_supply == 0."""
    pass


class ZeroManagedValue(VaultError):
    """
    total_supply > 0, но total_managed_value == 0.

    Курс обмена не определён; новые депозиты отклоняются, иначе они
    целиком достались бы текущим держателям.
    """
    pass


class ReentrancyViolation(VaultError):
    """Повторный вход в защищённую операцию, пока другая не завершена."""
    pass


class Unauthorized(VaultError):
    """Вызов owner-only операции без валидного credential, либо вызов стратегии не её vault."""
    pass


class AssetTransferFailed(VaultError):
    """Base asset вернул False (или отказал) на transfer/transfer_from/approve."""
    pass


class StrategyAlreadyBound(VaultError):
    """Стратегия уже привязана к другому vault (привязка строго один-к-одному)."""
    pass
