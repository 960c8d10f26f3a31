"""세션 코디네이터 테스트"""

import unittest
import sys
import os
from unittest.mock import MagicMock

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fakes import make_session
from core.coordinator import (
    EVENT_HISTORY, EVENT_MODE, EVENT_RESULT, EVENT_STATE, EVENT_WELDERS, WELDER_REQUIRED_MESSAGE,
    SessionCoordinator,
)
from core.dispatch import ImmediateRunner
from core.models import HistoryData, HistoryEntry, ProductionRecordResult, Welder
from utils.exceptions import NetworkError
from workcenters.base import UNKNOWN_BARCODE
from workcenters.seams import LongSeamMachine


def make_api():
    api = MagicMock()
    api.get_welders.return_value = [Welder("w-2", "Lee", "2002")]
    api.get_history.return_value = HistoryData(day_count=4, recent_records=[HistoryEntry("h-1", "08:00", "S1", 120)])
    api.create_production_record.return_value = ProductionRecordResult(id="r1")
    return api


class TestSessionCoordinator(unittest.TestCase):
    """SessionCoordinator 테스트"""

    def setUp(self):
        self.api = make_api()
        self.logger = MagicMock()
        self.coordinator = SessionCoordinator(self.api, ImmediateRunner(), make_session(welders=()),
                                              logger=self.logger)
        self.events = []
        for event in (EVENT_STATE, EVENT_RESULT, EVENT_HISTORY, EVENT_MODE, EVENT_WELDERS):
            self.coordinator.add_listener(event, lambda *args, event=event: self.events.append((event, args)))

    def logged_types(self):
        return [c.args[0] for c in self.logger.log_event.call_args_list]

    def test_mount_loads_welders_and_history(self):
        machine = self.coordinator.mount("Long Seam")

        self.assertIsInstance(machine, LongSeamMachine)
        self.assertTrue(self.coordinator.requires_welder)
        self.assertEqual(self.coordinator.session.welder_ids, ["w-2"])
        self.assertEqual(self.coordinator.history.day_count, 4)
        self.assertIn("MOUNT", self.logged_types())
        self.assertIn(EVENT_HISTORY, [e for e, _ in self.events])

    def test_operator_welder_is_added(self):
        coordinator = SessionCoordinator(self.api, ImmediateRunner(), make_session(welders=()),
                                         operator_welder=Welder("w-1", "Kim", "1001"))
        coordinator.mount("Long Seam")
        self.assertEqual(coordinator.session.welder_ids, ["w-2", "w-1"])

    def test_unknown_work_center(self):
        self.assertIsNone(self.coordinator.mount("Paint Booth"))
        self.coordinator.handle_line("SC;S1")

        self.assertEqual(self.coordinator.last_result.message, UNKNOWN_BARCODE)
        self.assertIn("MOUNT_FAILED", self.logged_types())

    def test_handle_line_routes_to_machine(self):
        self.coordinator.mount("Long Seam")
        self.coordinator.handle_line("  SC;S1/L1  ")

        self.api.create_production_record.assert_called_once()
        self.assertEqual(self.coordinator.last_result.message, "Shell S1 recorded")
        self.logger.log_event.assert_any_call("SCAN", {'raw': "SC;S1/L1"})
        self.assertIn((EVENT_RESULT, (self.coordinator.last_result,)), self.events)

    def test_blank_line_is_ignored(self):
        self.coordinator.mount("Long Seam")
        self.logger.reset_mock()
        self.coordinator.handle_line("   ")
        self.logger.log_event.assert_not_called()

    def test_unknown_barcode(self):
        self.coordinator.mount("Long Seam")
        self.coordinator.handle_line("garbage")
        self.assertEqual(self.coordinator.last_result.message, UNKNOWN_BARCODE)
        self.assertFalse(self.coordinator.last_result.is_success)

    def test_unmount_tears_down_machine(self):
        machine = self.coordinator.mount("Long Seam")
        self.coordinator.unmount()

        self.assertIsNone(self.coordinator.machine)
        self.assertFalse(self.coordinator.requires_welder)
        self.assertTrue(machine._torn_down)
        self.assertIn("UNMOUNT", self.logged_types())

    def test_remount_replaces_machine(self):
        first = self.coordinator.mount("Long Seam")
        second = self.coordinator.mount("Hydro")
        self.assertTrue(first._torn_down)
        self.assertIs(self.coordinator.machine, second)
        self.assertFalse(self.coordinator.requires_welder)

    def test_welder_warning(self):
        self.api.get_welders.return_value = []
        self.coordinator.mount("Long Seam")
        self.assertEqual(self.coordinator.welder_warning, WELDER_REQUIRED_MESSAGE)

        self.api.add_welder.return_value = Welder("w-3", "Park", "3003")
        self.coordinator.add_welder(" 3003 ")
        self.api.add_welder.assert_called_once_with("wc-1", "3003")
        self.assertIsNone(self.coordinator.welder_warning)

        self.coordinator.remove_welder("w-3")
        self.assertEqual(self.coordinator.session.welders, ())
        self.assertIn((EVENT_WELDERS, ((),)), self.events)

    def test_add_welder_failure(self):
        self.coordinator.mount("Long Seam")
        self.api.add_welder.side_effect = NetworkError("down")
        self.coordinator.add_welder("3003")
        self.assertEqual(self.coordinator.last_result.message, "Failed to add welder")
        self.assertIn("API_ERROR", self.logged_types())

    def test_set_external_input_emits_only_on_change(self):
        self.coordinator.set_external_input(True)
        self.assertNotIn(EVENT_MODE, [e for e, _ in self.events])

        self.coordinator.set_external_input(False)
        self.coordinator.set_external_input(False)
        self.assertEqual([a for e, a in self.events if e == EVENT_MODE], [(False,)])
        self.assertFalse(self.coordinator.session.external_input)

    def test_report_fault_does_not_wait_for_result(self):
        self.coordinator.mount("Long Seam")
        self.api.report_fault.side_effect = NetworkError("down")

        self.coordinator.handle_line("FLT;Wire feeder jam")

        self.assertEqual(self.coordinator.last_result.message, "Fault: Wire feeder jam")
        self.api.report_fault.assert_called_once_with("wc-1", "Wire feeder jam")
        self.assertIn("API_ERROR", self.logged_types())

    def test_history_failure_keeps_previous_history(self):
        self.coordinator.mount("Long Seam")
        self.api.get_history.side_effect = NetworkError("down")
        self.coordinator.refresh_history()
        self.assertEqual(self.coordinator.history.day_count, 4)


if __name__ == '__main__':
    unittest.main()
