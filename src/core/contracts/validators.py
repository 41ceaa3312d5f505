"""
Vault Contract Validators

Проверка JSON-представления событий и снапшотов vault против
контрактов в contracts/schema/:
- vault_event.json (Deposited / Withdrawn / Harvested / StrategyUpdated,
  payload выбирается по event_type)
- vault_state.json (VaultStateSnapshot)

Нарушение контракта поднимает jsonschema.ValidationError с сообщением вида
"vault_event Deposited seq=3: shares_out: 0 is less than or equal to ...",
т.е. называет событие и поле, а не только правило схемы.
"""

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator, ValidationError
from jsonschema.exceptions import best_match


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """Загрузчик схем из contracts/schema/ в корне проекта, с кэшем."""

    def __init__(self):
        self._schema_dir = Path(__file__).parent.parent.parent.parent / "contracts" / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка и meta-validation схемы.

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если файл не является валидной JSON Schema
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Валидатор одного контракта vault."""

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self._validator = Draft202012Validator(_SCHEMA_LOADER.load_schema(schema_name))

    def describe(self, data: Dict[str, Any]) -> str:
        """Метка payload для сообщения об ошибке."""
        return self.schema_name

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Наиболее релевантное нарушение, с меткой payload и путём поля
        """
        error = best_match(self._validator.iter_errors(data))
        if error is None:
            return

        field_path = "/".join(str(part) for part in error.absolute_path) or "<root>"
        raise ValidationError(f"{self.describe(data)}: {field_path}: {error.message}") from error


class VaultEventValidator(ContractValidator):
    """Валидатор vault_event: метка содержит тип и seq события."""

    def __init__(self):
        super().__init__("vault_event")

    def describe(self, data: Dict[str, Any]) -> str:
        return f"vault_event {data.get('event_type', '<untyped>')} seq={data.get('seq')}"


class VaultStateValidator(ContractValidator):
    """Валидатор vault_state: метка содержит timestamp снапшота."""

    def __init__(self):
        super().__init__("vault_state")

    def describe(self, data: Dict[str, Any]) -> str:
        return f"vault_state ts={data.get('ts_utc_ms')}"


# Vault валидирует каждое событие: валидаторы собираются один раз
_EVENT_VALIDATOR = VaultEventValidator()
_STATE_VALIDATOR = VaultStateValidator()


def validate_vault_event(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если событие не соответствует vault_event.json
    """
    _EVENT_VALIDATOR.validate(data)


def validate_vault_state(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если снапшот не соответствует vault_state.json
    """
    _STATE_VALIDATOR.validate(data)
