"""
Helper para manejo de moneda colombiana (Peso Colombiano - COP)

Formato: $1.000,23 (mil pesos con 23 centavos)
- Separador de miles: punto (.)
- Separador decimal: coma (,)
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Tuple

_VALID_CHARS = re.compile(r'^[0-9.,]+$')
_CONSECUTIVE_SEPARATORS = re.compile(r'[.,]{2,}')
CENTS = Decimal('0.01')


class CurrencyFormatError(ValueError):
    """Cadena que no corresponde a un valor en pesos colombianos"""


def _clean_currency_string(value: str) -> str:
    cleaned = value.strip().replace("$", "").replace(" ", "").replace("\t", "")
    if not cleaned:
        return "0"

    if not _VALID_CHARS.match(cleaned):
        raise CurrencyFormatError("La cadena contiene caracteres no válidos para moneda")

    if _CONSECUTIVE_SEPARATORS.search(cleaned):
        raise CurrencyFormatError("Formato de moneda inválido: separadores consecutivos")

    return cleaned


def parse_currency(value: Optional[str]) -> Decimal:
    """
    Convierte una cadena en formato colombiano a Decimal.

    Ejemplos válidos: "$1.000", "1.000,50", "1000", "1.000.000,25"
    """
    if value is None or not value.strip():
        return Decimal('0')

    cleaned = _clean_currency_string(value)

    try:
        if ',' not in cleaned:
            return Decimal(cleaned.replace('.', ''))

        parts = cleaned.split(',')
        if len(parts) != 2:
            raise CurrencyFormatError("Formato de moneda inválido")

        integer_part = parts[0].replace('.', '') or '0'
        decimal_part = parts[1]
        if len(decimal_part) > 2:
            raise CurrencyFormatError("La parte decimal no puede tener más de 2 dígitos")

        return Decimal(f"{integer_part}.{decimal_part.ljust(2, '0')}")
    except InvalidOperation as e:
        raise CurrencyFormatError(f"Error al convertir '{value}' a moneda") from e


def try_parse_currency(value: Optional[str]) -> Tuple[bool, Decimal]:
    try:
        return True, parse_currency(value)
    except CurrencyFormatError:
        return False, Decimal('0')


def is_valid_currency_format(value: Optional[str]) -> bool:
    if value is None or not value.strip():
        return False
    return try_parse_currency(value)[0]


def _group(amount: Decimal, decimals: int) -> str:
    # 1,234,567.89 -> 1.234.567,89
    formatted = f"{amount:,.{decimals}f}"
    return formatted.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency(amount, include_symbol: bool = True) -> str:
    """Formatea un valor como moneda colombiana: $1.234.567,89"""
    value = Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)
    formatted = _group(value, 2)
    return f"${formatted}" if include_symbol else formatted


def format_currency_compact(amount, include_symbol: bool = True) -> str:
    """Igual que format_currency pero sin decimales cuando son ceros"""
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        formatted = _group(value, 0)
        return f"${formatted}" if include_symbol else formatted
    return format_currency(value, include_symbol)


def format_percentage(value) -> str:
    """19.00 -> '19%', 5.5 -> '5.5%'"""
    normalized = Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP).normalize()
    return f"{normalized:f}%"
