"""Gas, transaction and logging utilities"""

from .gas import GasManager, GasConfig, GasPriceTooHighError
from .log import setup_logging, log_event
from .transactions import TransactionBuilder

__all__ = [
    "GasManager",
    "GasConfig",
    "GasPriceTooHighError",
    "setup_logging",
    "log_event",
    "TransactionBuilder",
]
