"""파일 핸들러 유틸리티 테스트"""

import unittest
import datetime
import tempfile
import shutil
import os
import sys
from unittest.mock import patch

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.file_handler import daily_log_path, ensure_directory_exists, get_safe_filename, resource_path


class TestFileHandler(unittest.TestCase):
    """파일 핸들러 유틸리티 함수 테스트"""

    def setUp(self):
        """테스트 시작 전 설정"""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """테스트 종료 후 정리"""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_resource_path_uses_app_root(self):
        """리소스 경로는 애플리케이션 루트 기준입니다."""
        app_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.assertEqual(resource_path(os.path.join('assets', 'success.wav')),
                         os.path.join(app_root, 'assets', 'success.wav'))

    def test_resource_path_in_bundle(self):
        """PyInstaller 번들에서는 _MEIPASS 기준입니다."""
        with patch.object(sys, '_MEIPASS', self.temp_dir, create=True):
            self.assertEqual(resource_path('assets'), os.path.join(self.temp_dir, 'assets'))

    def test_ensure_directory_exists_nested_directory(self):
        """중첩 디렉토리 생성 테스트"""
        nested_dir = os.path.join(self.temp_dir, "level1", "level2")
        self.assertFalse(os.path.exists(nested_dir))

        self.assertTrue(ensure_directory_exists(nested_dir))
        self.assertTrue(os.path.isdir(nested_dir))
        self.assertTrue(ensure_directory_exists(nested_dir))

    def test_get_safe_filename_unsafe_characters(self):
        """안전하지 않은 문자 포함 파일명 테스트"""
        self.assertEqual(get_safe_filename("file<>:\"/\\|?*.txt"), "file_________.txt")
        self.assertEqual(get_safe_filename("  normal.txt  "), "normal.txt")

    def test_daily_log_path(self):
        """작업장별 일일 로그 파일명"""
        path = daily_log_path(self.temp_dir, "Long Seam/Insp 1", datetime.date(2026, 1, 2))
        self.assertEqual(path, os.path.join(self.temp_dir, "20260102_long_seam_insp_1_events.csv"))

    def test_daily_log_path_without_work_center(self):
        path = daily_log_path(self.temp_dir, "", datetime.date(2026, 1, 2))
        self.assertEqual(os.path.basename(path), "20260102_terminal_events.csv")


if __name__ == '__main__':
    unittest.main()
