"""
OwnerCapability — credential владельца vault

Вместо глобальной mutable роли owner vault выпускает при деплое ровно один
credential-объект. Owner-only операции (rebind_strategy) принимают его
явным аргументом; vault сверяет предъявленный объект с выпущенным.
"""

import secrets
from dataclasses import dataclass, field


@dataclass(frozen=True)
class OwnerCapability:
    """
    Credential владельца.

    owner — аккаунт, получающий performance fee.
    token — случайный секрет; equality по token, поэтому копия с тем же
    owner, но другим token, авторизацию не проходит.
    """

    owner: str
    token: str = field(default_factory=lambda: secrets.token_hex(16), repr=False)

    def matches(self, other: object) -> bool:
        """Постоянное по времени сравнение с другим credential."""
        if not isinstance(other, OwnerCapability):
            return False
        return self.owner == other.owner and secrets.compare_digest(self.token, other.token)
