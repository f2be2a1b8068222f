"""
Módulo de Facturación

- Creación de facturas con numeración FAC-000001 y copia de los datos del cliente
- Detalles con copia de código, nombre y descripción del artículo
- Descuento por monto mínimo e IVA calculados sobre los detalles activos
- Stock descontado al facturar y restaurado al quitar detalles o anular
- Anulación con motivo; una factura anulada no admite cambios

Roles:
- Admin / Vendedor: crear facturas y modificar sus detalles
- Admin / Supervisor: anular
- Cualquier usuario autenticado: consultar, validar y previsualizar totales

Tablas:
- invoices: Facturas
- invoice_line_items: Detalles de factura
"""
