"""Long Seam / Round Seam 작업장 상태 머신 테스트"""

import unittest
import sys
import os

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fakes import make_machine, scan
from core.models import AssemblyLookup, ProductionRecordResult, RoundSeamSetup
from utils.exceptions import ApiError, NetworkError
from workcenters.base import INVALID_IN_CONTEXT
from workcenters.seams import (
    LongSeamMachine, RoundSeamMachine, SetupComplete, SetupRequired,
    parse_tank_size, seam_count_for_size, tank_bracket,
)


class TestSeamHelpers(unittest.TestCase):
    """탱크 용량 관련 함수 테스트"""

    def test_seam_count(self):
        self.assertEqual(seam_count_for_size(120), 2)
        self.assertEqual(seam_count_for_size(500), 2)
        self.assertEqual(seam_count_for_size(1000), 3)
        self.assertEqual(seam_count_for_size(1500), 4)

    def test_tank_bracket(self):
        self.assertEqual(tank_bracket(250), tank_bracket(500))
        self.assertNotEqual(tank_bracket(500), tank_bracket(1000))
        self.assertNotEqual(tank_bracket(1000), tank_bracket(1500))

    def test_parse_tank_size(self):
        self.assertEqual(parse_tank_size(" 1000 "), 1000)
        self.assertIsNone(parse_tank_size("abc"))
        self.assertIsNone(parse_tank_size("0"))


class TestLongSeamMachine(unittest.TestCase):
    """Long Seam 테스트"""

    def setUp(self):
        self.machine, self.api, self.coordinator = make_machine(LongSeamMachine)
        self.api.create_production_record.return_value = ProductionRecordResult(id="r1")

    def test_scan_creates_record_immediately(self):
        scan(self.machine, "SC;000123/L2")
        kwargs = self.api.create_production_record.call_args.kwargs
        self.assertEqual(kwargs['serial_number'], "000123")
        self.assertEqual(kwargs['welder_ids'], ["w-1"])
        self.assertEqual(self.coordinator.last_message, "Shell 000123 recorded")
        self.assertEqual(self.coordinator.history_refreshes, 1)

    def test_warning_is_shown(self):
        self.api.create_production_record.return_value = ProductionRecordResult(id="r1", warning="Rolls skipped")
        self.machine.submit_manual("000124")
        self.assertEqual(self.coordinator.last_message, "Shell 000124 recorded (Rolls skipped)")

    def test_failure_surfaces_reason(self):
        self.api.create_production_record.side_effect = NetworkError("Unable to reach server")
        scan(self.machine, "SC;000123")
        self.assertFalse(self.coordinator.last_result.is_success)
        self.assertIn("Unable to reach server", self.coordinator.last_message)
        self.assertEqual(self.coordinator.history_refreshes, 0)

    def test_other_prefixes_are_rejected(self):
        scan(self.machine, "INP;3")
        self.assertEqual(self.coordinator.last_message, INVALID_IN_CONTEXT)
        self.api.create_production_record.assert_not_called()


class TestRoundSeamMachine(unittest.TestCase):
    """Round Seam 셋업 / 기록 테스트"""

    def mounted(self, setup):
        machine, api, coordinator = make_machine(RoundSeamMachine)
        api.get_round_seam_setup.return_value = setup
        api.lookup_assembly_by_shell.return_value = AssemblyLookup(alpha_code="AB", tank_size=500)
        api.save_round_seam_setup.side_effect = lambda wc_id, s: s
        machine.on_mount()
        return machine, api, coordinator

    def test_missing_setup_opens_setup_form(self):
        machine, api, coordinator = self.mounted(None)
        self.assertIsInstance(machine.state, SetupRequired)
        self.assertIsNotNone(machine.form())

        scan(machine, "SC;S1")
        api.create_round_seam_record.assert_not_called()
        self.assertEqual(coordinator.last_message, "Complete Roundseam Setup before scanning")

    def test_complete_setup_records_scan(self):
        machine, api, coordinator = self.mounted(RoundSeamSetup(500, ("w-1", "w-1"), True))
        self.assertIsInstance(machine.state, SetupComplete)

        scan(machine, "SC;S1/L1")
        api.create_round_seam_record.assert_called_once()
        self.assertEqual(api.create_round_seam_record.call_args.kwargs['serial_number'], "S1")
        self.assertEqual(coordinator.last_message, "Assembly recorded at Round Seam")

    def test_setup_requires_one_welder_per_seam(self):
        machine, api, coordinator = self.mounted(None)
        machine.form().on_submit({'tank_size': "1000", 'rs1': "w-1", 'rs2': "w-1", 'rs3': ""})
        api.save_round_seam_setup.assert_not_called()
        self.assertEqual(coordinator.last_message, "Assign a welder to each of the 3 round seams")

        machine.form().on_submit({'tank_size': "1000", 'rs1': "w-1", 'rs2': "w-1", 'rs3': "w-1"})
        saved = api.save_round_seam_setup.call_args.args[1]
        self.assertEqual(saved.tank_size, 1000)
        self.assertEqual(saved.welder_ids, ("w-1", "w-1", "w-1"))
        self.assertIsInstance(machine.state, SetupComplete)

    def test_bracket_change_holds_scan_until_setup_saved(self):
        machine, api, coordinator = self.mounted(RoundSeamSetup(500, ("w-1", "w-1"), True))
        api.lookup_assembly_by_shell.return_value = AssemblyLookup(alpha_code="AB", tank_size=1000)

        scan(machine, "SC;S9")
        self.assertIsInstance(machine.state, SetupRequired)
        self.assertEqual(machine.state.pending_serial, "S9")
        self.assertEqual(machine.state.tank_size, 1000)
        api.create_round_seam_record.assert_not_called()

        machine.form().on_submit({'tank_size': "1000", 'rs1': "w-1", 'rs2': "w-1", 'rs3': "w-1"})
        self.assertIsInstance(machine.state, SetupComplete)
        self.assertEqual(api.create_round_seam_record.call_args.kwargs['serial_number'], "S9")

    def test_assembly_lookup_failure_uses_current_setup(self):
        machine, api, coordinator = self.mounted(RoundSeamSetup(500, ("w-1", "w-1"), True))
        api.lookup_assembly_by_shell.side_effect = ApiError("Not found")

        scan(machine, "SC;S1")
        api.create_round_seam_record.assert_called_once()

    def test_tank_size_scan_reopens_setup(self):
        machine, api, coordinator = self.mounted(RoundSeamSetup(500, ("w-1", "w-1"), True))

        scan(machine, "TS;1500")
        self.assertIsInstance(machine.state, SetupRequired)
        self.assertEqual(machine.state.seam_count, 4)

        machine.cancel_setup()
        self.assertIsInstance(machine.state, SetupComplete)
        self.assertEqual(machine.state.setup.tank_size, 500)

    def test_invalid_tank_size(self):
        machine, api, coordinator = self.mounted(RoundSeamSetup(500, ("w-1", "w-1"), True))
        scan(machine, "TS;big")
        self.assertEqual(coordinator.last_message, "Invalid tank size")
        self.assertIsInstance(machine.state, SetupComplete)

    def test_setup_load_failure_requires_setup(self):
        machine, api, coordinator = make_machine(RoundSeamMachine)
        api.get_round_seam_setup.side_effect = NetworkError("down")
        machine.on_mount()
        self.assertIsInstance(machine.state, SetupRequired)


if __name__ == '__main__':
    unittest.main()
