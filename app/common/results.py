"""
Resultado estructurado de las operaciones de negocio.

Las reglas de negocio no lanzan excepciones para los rechazos esperados
(validaciones, estados inválidos): devuelven un OperationResult que la capa
HTTP traduce a 400/404/500 con raise_for_result.
"""
from enum import Enum
from typing import Any, List, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, Field


class OperationStatus(str, Enum):
    SUCCESS = "success"
    REJECTED = "rejected"      # Validación o estado inválido (400)
    NOT_FOUND = "not_found"    # La entidad referenciada no existe (404)
    ERROR = "error"            # Falla inesperada, transacción revertida (500)


class OperationResult(BaseModel):
    status: OperationStatus
    title: str
    message: str
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    data: Any = None

    model_config = {"arbitrary_types_allowed": True}

    @property
    def ok(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @classmethod
    def success(cls, title: str, message: str, data: Any = None, warnings: Optional[List[str]] = None):
        return cls(status=OperationStatus.SUCCESS, title=title, message=message,
                   data=data, warnings=warnings or [])

    @classmethod
    def rejected(cls, title: str, message: str, errors: Optional[List[str]] = None,
                 warnings: Optional[List[str]] = None):
        return cls(status=OperationStatus.REJECTED, title=title, message=message,
                   errors=errors if errors is not None else [message], warnings=warnings or [])

    @classmethod
    def not_found(cls, entity: str):
        message = f"{entity} no encontrado(a)"
        return cls(status=OperationStatus.NOT_FOUND, title="No encontrado", message=message, errors=[message])

    @classmethod
    def internal_error(cls, message: str = "Ocurrió un error interno procesando la solicitud"):
        return cls(status=OperationStatus.ERROR, title="Error interno", message=message, errors=[message])


_STATUS_CODES = {
    OperationStatus.REJECTED: status.HTTP_400_BAD_REQUEST,
    OperationStatus.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    OperationStatus.ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_result(result: OperationResult) -> Any:
    """Devuelve el payload si la operación fue exitosa, si no lanza HTTPException"""
    if result.ok:
        return result.data

    raise HTTPException(
        status_code=_STATUS_CODES[result.status],
        detail={
            "title": result.title,
            "message": result.message,
            "errors": result.errors,
            "warnings": result.warnings,
        }
    )
