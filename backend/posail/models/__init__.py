from .tenancy import Local
from .auth import User
from .inventory import InsumoCategoria, Insumo, InsumoLote, InsumoMovimiento, InsumoAlertaDestinatario

__all__ = [
    'Local',
    'User',
    'InsumoCategoria', 'Insumo', 'InsumoLote', 'InsumoMovimiento', 'InsumoAlertaDestinatario',
]
