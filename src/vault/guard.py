"""
ReentrancyGuard — scoped non-reentrant guard операций vault

Guard захватывается на входе в каждую мутирующую операцию
(deposit/withdraw/harvest/rebind_strategy) и освобождается на любом выходе,
включая исключения. Попытка войти в любую защищённую операцию, пока другая
не завершена (в том числе косвенно, через callback из стратегии),
поднимает ReentrancyViolation и НЕ освобождает внешний захват.

Флаг защищён threading.Lock: второй поток тоже получает
ReentrancyViolation, а не чередует свои чтения/записи с текущей операцией.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from src.core.errors import ReentrancyViolation


class ReentrancyGuard:
    """Одноразовый захват на время одной операции."""

    def __init__(self):
        self._lock = threading.Lock()
        self._active_operation: Optional[str] = None

    @property
    def active_operation(self) -> Optional[str]:
        """Имя выполняемой операции или None."""
        return self._active_operation

    @property
    def locked(self) -> bool:
        return self._active_operation is not None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        """
        Захват guard на время блока with.

        Raises:
            ReentrancyViolation: Если guard уже захвачен
        """
        with self._lock:
            if self._active_operation is not None:
                raise ReentrancyViolation(
                    f"Cannot enter {operation}: {self._active_operation} is in flight"
                )
            self._active_operation = operation

        try:
            yield
        finally:
            with self._lock:
                self._active_operation = None
