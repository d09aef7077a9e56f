"""설정 저장/불러오기 관리"""

import copy
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union

_logger = logging.getLogger(__name__)


class SettingsManager:
    """분석 파이프라인 설정 관리"""

    DEFAULT_SETTINGS = {
        # Raw 센서 파라미터
        'width': 160,
        'height': 120,
        'rotate': True,

        # 배치 파라미터
        'reader': 'raw',
        'pattern': None,              # None = 리더 기본값
        'recursive': False,
        'n_workers': 1,

        # 세그멘테이션 파라미터
        'segment': True,
        'method': 'otsu',
        'keep_largest': True,
        'morphology': True,
        'brush_size': 5,
        'connectivity': 8,

        # 통계
        'use_processed': True,

        # 시각화
        'palette': 'inferno',
        'group_palette': 'npg',
        'dpi': 150,

        # FLIR
        'exiftool': 'exiftool',

        # 마지막 경로
        'last_folder': '',
    }

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        # 기본: 사용자 홈 디렉토리에 설정 저장
        if config_dir is None:
            config_dir = Path.home() / '.biotherm'
        config_dir = Path(config_dir)
        config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path = config_dir / 'settings.json'

        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        self.load()

    def load(self):
        """설정 파일 로드"""
        try:
            if self.config_path.exists():
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    saved = json.load(f)
                self.settings.update(saved)
                _logger.info(f"설정 로드: {self.config_path}")
        except (OSError, ValueError) as e:
            _logger.warning(f"설정 로드 실패: {e}")

    def save(self):
        """설정 파일 저장"""
        try:
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.settings, f, indent=2, ensure_ascii=False)
            _logger.info(f"설정 저장: {self.config_path}")
        except (OSError, TypeError) as e:
            _logger.warning(f"설정 저장 실패: {e}")

    def get(self, key: str, default=None):
        """설정값 가져오기"""
        return self.settings.get(key, default)

    def set(self, key: str, value):
        """설정값 설정"""
        self.settings[key] = value

    def update(self, params: Dict[str, Any]):
        """여러 설정값 업데이트"""
        self.settings.update(params)

    def reset(self):
        """기본값으로 복원"""
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)

    def get_reader_params(self) -> Dict[str, Any]:
        """Raw 리더 파라미터만 반환"""
        keys = ['width', 'height', 'rotate']
        return {k: self.settings.get(k) for k in keys}

    def get_segment_params(self) -> Dict[str, Any]:
        """세그멘테이션 파라미터만 반환"""
        keys = ['method', 'keep_largest', 'morphology', 'brush_size',
                'connectivity']
        return {k: self.settings.get(k) for k in keys}

    def get_batch_params(self) -> Dict[str, Any]:
        """배치 파라미터만 반환"""
        keys = ['reader', 'pattern', 'recursive', 'n_workers', 'segment',
                'use_processed']
        return {k: self.settings.get(k) for k in keys}
