
from .config_manager import ConfigManager, ViewSettings, get_config_manager, load_settings
from .logging_utils import StructuredLogger, get_module_logger
from .state_store import JsonStateStore, StateStore, StateStoreError

__all__ = [
    'ConfigManager',
    'JsonStateStore',
    'StateStore',
    'StateStoreError',
    'StructuredLogger',
    'ViewSettings',
    'get_config_manager',
    'get_module_logger',
    'load_settings',
]
