from app.core.config import settings
from app.modules.invoices.calculator import BillingRules


def get_billing_rules() -> BillingRules:
    """Reglas de facturación vigentes según la configuración"""
    return BillingRules.from_settings(settings)
