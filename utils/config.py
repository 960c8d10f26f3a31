"""애플리케이션 설정 관리 모듈"""

import copy
import json
import os
from typing import Dict, Any, Optional


DEFAULT_CONFIG: Dict[str, Any] = {
    "app": {
        "name": "Production Worker",
        "version": "v1.0.0",
        "description": "Tank line production terminal"
    },
    "api": {
        "base_url": "http://localhost:5000/api",
        "timeout_sec": 10,
        "token": ""
    },
    "terminal": {
        "work_center_id": "",
        "work_center_name": "",
        "asset_id": None,
        "production_line_id": "",
        "production_line_name": "",
        "plant_id": "",
        "material_queue_for_wc_id": None
    },
    "scanner": {
        "mode": "wedge",
        "device_path": "",
        "start_automatic": True,
        "focus_poll_ms": 0,
        "dispatch_poll_ms": 50
    },
    "workflow": {
        "fitup_auto_reset_sec": 30,
        "result_display_ms": 1800
    },
    "ui": {
        "window_title": "Production Worker",
        "window_geometry": "1400x800"
    },
    "logging": {
        "enabled": True,
        "log_dir": "logs",
        "log_file": ""
    },
    "sound": {
        "enabled": True
    }
}


class ConfigManager:
    """애플리케이션 설정을 관리하는 클래스"""

    def __init__(self, config_file: str = "config.json", base_dir: Optional[str] = None):
        self.config_file = config_file
        # 기본 위치는 애플리케이션 루트 (utils/ 의 상위 디렉토리)
        self.base_dir = base_dir or os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.config = self._load_config()

    @property
    def config_path(self) -> str:
        return os.path.join(self.base_dir, self.config_file)

    def _load_config(self) -> Dict[str, Any]:
        """설정 파일을 로드합니다."""
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                if not isinstance(loaded, dict):
                    raise ValueError("config root must be an object")
                return self._merge_defaults(loaded)
            else:
                # 기본 설정 생성
                return self._create_default_config()
        except (OSError, ValueError) as e:
            # json.JSONDecodeError 는 ValueError 의 하위 클래스
            print(f"Config load error: {e}")
            return copy.deepcopy(DEFAULT_CONFIG)

    def _merge_defaults(self, loaded: Dict[str, Any]) -> Dict[str, Any]:
        """누락된 섹션/키를 기본값으로 채웁니다."""
        merged = copy.deepcopy(DEFAULT_CONFIG)
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(values)
            else:
                merged[section] = values
        return merged

    def _create_default_config(self) -> Dict[str, Any]:
        """기본 설정을 생성합니다."""
        default_config = copy.deepcopy(DEFAULT_CONFIG)
        self.save_config(default_config)
        return default_config

    def get(self, key_path: str, default=None):
        """점 표기법으로 설정값을 가져옵니다. 예: 'api.base_url'"""
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key_path: str, value):
        """점 표기법으로 설정값을 설정합니다."""
        keys = key_path.split('.')
        config = self.config

        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value

    def save_config(self, config_data=None):
        """설정을 파일로 저장합니다."""
        try:
            data = config_data if config_data is not None else self.config

            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=4)
        except OSError as e:
            print(f"Config save error: {e}")
