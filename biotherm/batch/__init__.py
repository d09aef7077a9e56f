"""배치 처리 모듈"""

from .processor import BatchProcessor, process_single_file

__all__ = ['BatchProcessor', 'process_single_file']
