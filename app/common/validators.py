"""
Validadores de datos de clientes (Colombia)
"""
import re

_PHONE_PATTERNS = [
    r'^\+57[3][0-9]{9}$',      # +573XXXXXXXXX (móvil)
    r'^\+57[1-8][0-9]{6,7}$',  # +571XXXXXXX (fijo)
    r'^57[3][0-9]{9}$',        # 573XXXXXXXXX (móvil sin +)
    r'^[3][0-9]{9}$',          # 3XXXXXXXXX (móvil local)
    r'^60[1-8][0-9]{7}$',      # 601XXXXXXX (fijo con indicativo nacional)
    r'^[1-8][0-9]{6,7}$',      # fijo local
]

NIT_WEIGHTS = [3, 7, 13, 17, 19, 23, 29, 37, 41, 43, 47, 53, 59, 67, 71]


def clean_phone(phone: str) -> str:
    return re.sub(r'[\s\-\(\)]', '', phone)


def validate_colombia_phone(phone: str) -> bool:
    """Valida número de teléfono colombiano (móvil o fijo, con o sin +57)."""
    cleaned = clean_phone(phone)
    return any(re.match(pattern, cleaned) for pattern in _PHONE_PATTERNS)


def clean_document(document: str) -> str:
    """Quita puntos, espacios y guiones de un número de documento."""
    return re.sub(r'[\.\s\-]', '', document)


def validate_colombia_cedula(cedula: str) -> bool:
    """
    Valida cédula colombiana.
    - Entre 6 y 10 dígitos
    - No puede empezar con 0
    """
    cleaned = clean_document(cedula)
    return cleaned.isdigit() and 6 <= len(cleaned) <= 10 and not cleaned.startswith('0')


def calculate_nit_dv(nit_base: str) -> int:
    """Calcula el dígito de verificación de un NIT (módulo 11 DIAN)."""
    total = sum(int(d) * NIT_WEIGHTS[i] for i, d in enumerate(reversed(nit_base)))
    remainder = total % 11
    return remainder if remainder < 2 else 11 - remainder


def validate_colombia_nit(nit: str) -> bool:
    """
    Valida NIT colombiano con dígito de verificación (XXXXXXXXX-X).
    """
    cleaned = clean_document(nit)
    if not cleaned.isdigit() or not 9 <= len(cleaned) <= 11:
        return False
    return calculate_nit_dv(cleaned[:-1]) == int(cleaned[-1])


def validate_document_number(document: str) -> bool:
    """
    Un documento con guion antes del dígito de verificación solo puede ser un
    NIT; sin guion se acepta como cédula o como NIT.
    """
    if '-' in document:
        return validate_colombia_nit(document)
    return validate_colombia_cedula(document) or validate_colombia_nit(document)
