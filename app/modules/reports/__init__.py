"""
Módulo de reportes

No crea tablas nuevas: genera consultas de solo lectura sobre facturas,
detalles, clientes y artículos. Solo cuentan las facturas en estado Activa
que no han sido eliminadas y sus detalles activos.

- service.py -> Consultas y agregaciones
- schemas.py -> Modelos Pydantic de respuesta
- utils.py -> Exportación CSV
- router.py -> Endpoints FastAPI
"""
