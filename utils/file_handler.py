"""파일 처리 유틸리티 모듈"""

import datetime
import os
import re
import sys


def resource_path(relative_path: str) -> str:
    """ PyInstaller로 패키징했을 때의 리소스 경로를 가져옵니다. """
    try:
        base_path = sys._MEIPASS
    except AttributeError:
        # 메인 스크립트의 디렉토리를 기준으로 설정
        base_path = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(base_path, relative_path)


def ensure_directory_exists(directory_path: str) -> bool:
    """디렉토리가 없으면 생성합니다."""
    try:
        if not os.path.exists(directory_path):
            os.makedirs(directory_path, exist_ok=True)
        return True
    except OSError as e:
        print(f"Failed to create directory: {e}")
        return False


def get_safe_filename(filename: str) -> str:
    """파일명에서 안전하지 않은 문자를 제거합니다."""
    # 파일명에 사용할 수 없는 문자들을 언더스코어로 대체
    safe_name = re.sub(r'[<>:"/\\|?*]', '_', filename)
    return safe_name.strip()


def daily_log_path(log_dir: str, work_center_name: str, day: datetime.date = None) -> str:
    """작업장별 일일 로그 파일 경로를 만듭니다."""
    day = day or datetime.date.today()
    name = get_safe_filename(work_center_name or "terminal").replace(' ', '_').lower()
    return os.path.join(log_dir, f"{day.strftime('%Y%m%d')}_{name}_events.csv")
