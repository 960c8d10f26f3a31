"""작업장 이름 -> 상태 머신 매핑 테스트"""

import unittest
import sys
import os

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fakes import FakeCoordinator
from core.barcode import Prefix
from core.dispatch import ImmediateRunner
from workcenters.base import WorkCenterMachine
from workcenters.fitup import FitupMachine
from workcenters.hydro import HydroMachine
from workcenters.inspection import LongSeamInspectionMachine, RoundSeamInspectionMachine
from workcenters.nameplate import NameplateMachine
from workcenters.queues import HeadsQueueMachine, MaterialQueueMachine, XrayQueueMachine
from workcenters.registry import ROUTES, create_machine, machine_class_for
from workcenters.rolls import RollsMachine
from workcenters.seams import LongSeamMachine, RoundSeamMachine


class TestMachineRouting(unittest.TestCase):
    """작업장 이름 라우팅 테스트"""

    def test_routes(self):
        cases = {
            "Rolls Material Queue": MaterialQueueMachine,
            "Rolls": RollsMachine,
            "Long Seam Inspection": LongSeamInspectionMachine,
            "Long Seam": LongSeamMachine,
            "Fitup Queue": HeadsQueueMachine,
            "Fit-Up Heads Queue": HeadsQueueMachine,
            "Fit Up": FitupMachine,
            "Round Seam Inspection": RoundSeamInspectionMachine,
            "Round Seam": RoundSeamMachine,
            "RT Xray Queue": XrayQueueMachine,
            "Real Time X-ray": XrayQueueMachine,
            "RT X-ray Queue": XrayQueueMachine,
            "Rolls Mat Queue": MaterialQueueMachine,
            "Nameplate": NameplateMachine,
            "Data Plate": NameplateMachine,
            "Hydro Test": HydroMachine,
        }
        for name, expected in cases.items():
            with self.subTest(name=name):
                self.assertIs(machine_class_for(name), expected)

    def test_case_insensitive(self):
        self.assertIs(machine_class_for("LONG SEAM INSPECTION 2"), LongSeamInspectionMachine)

    def test_unknown_work_center(self):
        self.assertIsNone(machine_class_for("Paint Booth"))
        self.assertIsNone(machine_class_for(""))
        self.assertIsNone(machine_class_for(None))

    def test_create_machine(self):
        coordinator = FakeCoordinator()
        machine = create_machine("Long Seam", coordinator, object(), ImmediateRunner())
        self.assertIsInstance(machine, LongSeamMachine)
        self.assertIs(machine.coordinator, coordinator)
        self.assertIsNone(create_machine("Paint", coordinator, object(), ImmediateRunner()))


class TestPrefixClassification(unittest.TestCase):
    """모든 작업장이 모든 접두사를 분류하는지 확인합니다."""

    def test_every_route_classifies_every_prefix(self):
        for _, machine_class in ROUTES:
            with self.subTest(machine=machine_class.__name__):
                self.assertEqual(machine_class.HANDLES | machine_class.REJECTS, frozenset(Prefix))
                self.assertFalse(machine_class.HANDLES & machine_class.REJECTS)
                self.assertIn(Prefix.FAULT, machine_class.HANDLES)

    def test_unclassified_prefix_fails_at_definition(self):
        with self.assertRaises(TypeError):
            class Incomplete(WorkCenterMachine):
                HANDLES = frozenset({Prefix.SCAN, Prefix.FAULT})
                REJECTS = frozenset({Prefix.DEFECT})

    def test_overlapping_classification_fails(self):
        with self.assertRaises(TypeError):
            class Overlapping(WorkCenterMachine):
                HANDLES = frozenset(Prefix)
                REJECTS = frozenset({Prefix.SCAN})


if __name__ == '__main__':
    unittest.main()
