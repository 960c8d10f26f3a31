"""테스트 실행 스크립트"""

import unittest
import sys
import os

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# 테스트 모듈들 import
from test_barcode import TestParse, TestShellLabel, TestFullDefect
from test_models import TestPendingDefectEntry, TestReferenceModels, TestSessionModels
from test_config import TestConfigManager
from test_file_handler import TestFileHandler
from test_logger import TestEventLogger
from test_api_client import TestMesApiClient
from test_dispatch import TestInputDispatcher, TestRunners, TestTkScheduler
from test_scan_input import TestScannerInputComponent, TestResultOverlay, TestLineAssembler
from test_rolls import TestRollsMachine
from test_seams import TestSeamHelpers, TestLongSeamMachine, TestRoundSeamMachine
from test_inspection import TestLongSeamInspection, TestRoundSeamInspection
from test_fitup import TestShellCount, TestFitupMachine
from test_hydro import TestHydroMachine
from test_queues_nameplate import (
    TestMaterialQueueMachine, TestHeadsQueueMachine, TestXrayQueueMachine, TestNameplateMachine,
)
from test_registry import TestMachineRouting, TestPrefixClassification
from test_coordinator import TestSessionCoordinator
from test_end_to_end import TestProductionLine


TEST_GROUPS = {
    'barcode': [TestParse, TestShellLabel, TestFullDefect],
    'models': [TestPendingDefectEntry, TestReferenceModels, TestSessionModels],
    'config': [TestConfigManager],
    'file_handler': [TestFileHandler],
    'logger': [TestEventLogger],
    'api': [TestMesApiClient],
    'dispatch': [TestInputDispatcher, TestRunners, TestTkScheduler],
    'scan_input': [TestScannerInputComponent, TestResultOverlay, TestLineAssembler],
    'rolls': [TestRollsMachine],
    'seams': [TestSeamHelpers, TestLongSeamMachine, TestRoundSeamMachine],
    'inspection': [TestLongSeamInspection, TestRoundSeamInspection],
    'fitup': [TestShellCount, TestFitupMachine],
    'hydro': [TestHydroMachine],
    'queues': [TestMaterialQueueMachine, TestHeadsQueueMachine, TestXrayQueueMachine, TestNameplateMachine],
    'registry': [TestMachineRouting, TestPrefixClassification],
    'coordinator': [TestSessionCoordinator],
    'line': [TestProductionLine],
}


def build_suite(test_cases):
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()
    for test_case in test_cases:
        suite.addTests(loader.loadTestsFromTestCase(test_case))
    return suite


def run_groups(group_names=None):
    """지정한 그룹(없으면 전체)의 테스트를 실행합니다. 알 수 없는 그룹이 있으면 None."""
    names = group_names or list(TEST_GROUPS)
    unknown = [name for name in names if name not in TEST_GROUPS]
    if unknown:
        print(f"알 수 없는 테스트: {', '.join(unknown)}")
        print(f"사용 가능한 테스트: {', '.join(TEST_GROUPS)}")
        return None

    test_cases = [tc for name in names for tc in TEST_GROUPS[name]]
    return unittest.TextTestRunner(verbosity=2).run(build_suite(test_cases))


def print_summary(result):
    passed = result.testsRun - len(result.failures) - len(result.errors) - len(result.skipped)
    print("\n" + "-" * 60)
    print(f"실행 {result.testsRun} / 성공 {passed} / 실패 {len(result.failures)} / "
          f"오류 {len(result.errors)} / 건너뜀 {len(result.skipped)}")
    for label, entries in (("실패", result.failures), ("오류", result.errors)):
        for test, _ in entries:
            print(f"  [{label}] {test.id()}")
    print("-" * 60)


if __name__ == '__main__':
    # 예) python tests/run_tests.py rolls seams
    result = run_groups(sys.argv[1:])
    if result is None:
        sys.exit(2)
    print_summary(result)
    sys.exit(0 if result.wasSuccessful() else 1)
