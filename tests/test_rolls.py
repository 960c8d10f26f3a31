"""Rolls 작업장 상태 머신 테스트"""

import unittest
import sys
import os
from unittest.mock import MagicMock

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fakes import DeferredRunner, make_machine, scan
from core.models import MaterialLot, ProductionRecordResult, QueueItem
from utils.exceptions import ApiError
from workcenters.base import INVALID_IN_CONTEXT, PLEASE_WAIT
from workcenters.rolls import (
    AdvanceQueueConfirm, AwaitingLabel1, AwaitingLabel2, Idle, RollsMachine, ThicknessInspection,
)


def make_api(quantity=10):
    api = MagicMock()
    api.advance_material_queue.return_value = MaterialLot(shell_size="120", heat_number="H1", coil_number="C1",
                                                          quantity=quantity)
    api.create_production_record.return_value = ProductionRecordResult(id="r1", warning=None)
    api.get_material_queue.return_value = []
    return api


class TestRollsMachine(unittest.TestCase):
    """Rolls 라벨 대조 / 두께 검사 / 자재 큐 테스트"""

    def setUp(self):
        self.machine, self.api, self.coordinator = make_machine(RollsMachine, api=make_api())

    def advance(self):
        scan(self.machine, "INP;2")

    def test_scan_before_queue_advance_is_rejected(self):
        scan(self.machine, "SC;A/L1")
        self.assertIsInstance(self.machine.state, Idle)
        self.assertEqual(self.coordinator.last_message, "Advance the material queue first")

    def test_advance_queue_resets_to_label1(self):
        self.advance()
        self.assertIsInstance(self.machine.state, AwaitingLabel1)
        self.assertEqual(self.machine.material.heat_number, "H1")
        self.assertTrue(self.machine.thickness_required)

    def test_empty_queue_keeps_state(self):
        self.api.advance_material_queue.side_effect = ApiError("Queue is empty")
        self.advance()
        self.assertIsInstance(self.machine.state, Idle)
        self.assertFalse(self.coordinator.last_result.is_success)
        self.assertIn("No material in queue", self.coordinator.last_message)

    def test_matching_labels_with_thickness_pass_create_one_record(self):
        self.advance()
        scan(self.machine, "SC;A/L1")
        self.assertEqual(self.machine.state, AwaitingLabel2("A"))

        scan(self.machine, "SC;A/L2")
        self.assertEqual(self.machine.state, ThicknessInspection("A"))
        self.api.create_production_record.assert_not_called()

        scan(self.machine, "INP;3")
        self.api.create_production_record.assert_called_once()
        kwargs = self.api.create_production_record.call_args.kwargs
        self.assertEqual(kwargs['serial_number'], "A")
        self.assertEqual(kwargs['inspection_result'], 'pass')
        self.assertEqual(kwargs['heat_number'], "H1")
        self.assertEqual(kwargs['welder_ids'], ["w-1"])
        self.assertIsInstance(self.machine.state, AwaitingLabel1)
        self.assertFalse(self.machine.thickness_required)
        self.assertEqual(self.coordinator.history_refreshes, 1)

    def test_thickness_is_not_asked_after_a_pass(self):
        self.advance()
        for line in ("SC;A/L1", "SC;A/L2", "INP;3", "SC;B/L1", "SC;B/L2"):
            scan(self.machine, line)
        self.assertEqual(self.api.create_production_record.call_count, 2)
        self.assertIsNone(self.api.create_production_record.call_args.kwargs['inspection_result'])

    def test_thickness_fail_keeps_inspection_required(self):
        self.advance()
        for line in ("SC;A/L1", "SC;A/L2", "INP;4"):
            scan(self.machine, line)
        self.assertEqual(self.api.create_production_record.call_args.kwargs['inspection_result'], 'fail')
        self.assertTrue(self.machine.thickness_required)

    def test_mismatched_labels_create_nothing(self):
        self.advance()
        scan(self.machine, "SC;A/L1")
        scan(self.machine, "SC;B/L2")
        self.api.create_production_record.assert_not_called()
        self.assertIsInstance(self.machine.state, AwaitingLabel1)
        self.assertEqual(self.coordinator.last_message, "Labels do not match")

    def test_unsuffixed_different_serial_is_a_mismatch(self):
        self.advance()
        scan(self.machine, "SC;A")
        scan(self.machine, "SC;B")
        self.assertIsInstance(self.machine.state, AwaitingLabel1)
        self.api.create_production_record.assert_not_called()

    def test_label1_rescan_replaces_serial(self):
        self.advance()
        scan(self.machine, "SC;A/L1")
        scan(self.machine, "SC;B/L1")
        self.assertEqual(self.machine.state, AwaitingLabel2("B"))

    def test_label2_first_is_rejected(self):
        self.advance()
        scan(self.machine, "SC;A/L2")
        self.assertIsInstance(self.machine.state, AwaitingLabel1)
        self.assertEqual(self.coordinator.last_message, "Scan Label 1 first")

    def test_prompt_accepts_only_its_responses(self):
        self.advance()
        scan(self.machine, "SC;A/L1")
        scan(self.machine, "SC;A/L2")
        scan(self.machine, "SC;C/L1")
        self.assertEqual(self.machine.state, ThicknessInspection("A"))
        self.assertEqual(self.coordinator.last_message, INVALID_IN_CONTEXT)

    def test_unhandled_prefix_is_rejected(self):
        self.advance()
        scan(self.machine, "D;042")
        self.assertEqual(self.coordinator.last_message, INVALID_IN_CONTEXT)
        self.assertIsInstance(self.machine.state, AwaitingLabel1)

    def test_lot_exhaustion_prompts_queue_advance(self):
        machine, api, coordinator = make_machine(RollsMachine, api=make_api(quantity=1))
        scan(machine, "INP;2")
        for line in ("SC;A/L1", "SC;A/L2", "INP;3"):
            scan(machine, line)
        self.assertIsInstance(machine.state, AdvanceQueueConfirm)

        scan(machine, "INP;4")
        self.assertIsInstance(machine.state, AwaitingLabel1)

    def test_lot_exhaustion_yes_advances_queue(self):
        machine, api, coordinator = make_machine(RollsMachine, api=make_api(quantity=1))
        scan(machine, "INP;2")
        for line in ("SC;A/L1", "SC;A/L2", "INP;3", "INP;3"):
            scan(machine, line)
        self.assertEqual(api.advance_material_queue.call_count, 2)
        self.assertIsInstance(machine.state, AwaitingLabel1)
        self.assertEqual(machine.material.remaining, 1)

    def test_record_failure_keeps_state_for_retry(self):
        self.advance()
        self.api.create_production_record.side_effect = ApiError("Duplicate serial")
        for line in ("SC;A/L1", "SC;A/L2", "INP;3"):
            scan(self.machine, line)
        self.assertEqual(self.machine.state, ThicknessInspection("A"))
        self.assertEqual(self.machine.material.remaining, 10)
        self.assertIn("Duplicate serial", self.coordinator.last_message)

        self.api.create_production_record.side_effect = None
        scan(self.machine, "INP;3")
        self.assertIsInstance(self.machine.state, AwaitingLabel1)

    def test_manual_serial_skips_label_matching(self):
        self.advance()
        self.machine.submit_manual("  M1 ")
        self.assertEqual(self.machine.state, ThicknessInspection("M1"))

    def test_busy_machine_asks_to_wait(self):
        runner = DeferredRunner()
        machine, api, coordinator = make_machine(RollsMachine, api=make_api(), runner=runner)
        scan(machine, "INP;2")
        self.assertTrue(machine.busy)

        scan(machine, "SC;A/L1")
        self.assertEqual(coordinator.last_message, PLEASE_WAIT)

        scan(machine, "FLT;Roller jammed")
        self.assertEqual(coordinator.faults, ["Roller jammed"])

        runner.complete()
        self.assertFalse(machine.busy)
        self.assertIsInstance(machine.state, AwaitingLabel1)

    def test_queue_reload_after_advance_replaces_mount_load(self):
        runner = DeferredRunner()
        api = make_api()
        api.get_material_queue.side_effect = [
            [QueueItem("old", status='queued')],
            [QueueItem("new", status='queued')],
        ]
        machine, api, coordinator = make_machine(RollsMachine, api=api, runner=runner)
        machine.on_mount()
        scan(machine, "INP;2")

        runner.complete(1)  # 자재 큐 진행 완료 -> 목록 재조회
        self.assertEqual(len(runner.pending), 2)
        runner.complete(0)  # 먼저 보낸 조회가 늦게 도착
        runner.complete(0)

        self.assertEqual(api.get_material_queue.call_count, 2)
        self.assertEqual([item.id for item in machine.queue], ["new"])


if __name__ == '__main__':
    unittest.main()
