"""유틸리티 모듈"""

from .logger import setup_logger, set_level
from .settings import SettingsManager

__all__ = ['setup_logger', 'set_level', 'SettingsManager']
