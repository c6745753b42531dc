from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class SprintCapacityError(Exception):
    """Erro base do planejador de capacity"""


class NotFoundError(SprintCapacityError):
    """Registro inexistente (sprint, template, time, membro, feriado ou item de retro)"""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} não encontrado: {entity_id}")


class InvalidInputError(SprintCapacityError):
    """Entrada rejeitada antes de qualquer cálculo ou escrita"""


def validate_payload(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """
    Valida um payload contra um modelo pydantic

    Args:
        model: Classe do modelo de entrada
        data: Dados brutos recebidos

    Returns:
        Instância validada do modelo

    Raises:
        InvalidInputError: Se algum campo for inválido
    """
    try:
        return model(**data)
    except PydanticValidationError as e:
        messages = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or model.__name__
            messages.append(f"{field}: {error['msg']}")
        raise InvalidInputError("; ".join(messages)) from e
