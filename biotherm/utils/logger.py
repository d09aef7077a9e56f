"""로깅 설정 모듈"""

import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional, Union


def setup_logger(name: str = "biotherm",
                 level: int = logging.INFO,
                 log_file: bool = False,
                 log_dir: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    로거 설정

    Args:
        name: 로거 이름
        level: 로깅 레벨
        log_file: 파일 출력 여부
        log_dir: 로그 파일 디렉토리 (기본 ./logs)
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(level)

    # 포맷터
    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s - %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # 콘솔 핸들러
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 파일 핸들러 (선택)
    if log_file:
        log_path = Path(log_dir) if log_dir is not None else Path("logs")
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            log_path / f"biotherm_{datetime.now():%Y%m%d}.log",
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def set_level(level: int, name: str = "biotherm"):
    """패키지 로거와 핸들러 레벨 일괄 변경"""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)

