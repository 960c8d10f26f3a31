"""테스트용 가짜 객체 (코디네이터, 실행기, 세션)"""

import os
import sys
from unittest.mock import MagicMock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.barcode import parse
from core.dispatch import ImmediateRunner
from core.models import Welder, WorkCenterSession


def make_session(**overrides) -> WorkCenterSession:
    values = dict(
        work_center_id="wc-1",
        work_center_name="Test Work Center",
        production_line_id="line-1",
        production_line_name="Line 1",
        plant_id="plant-1",
        operator_id="op-1",
        operator_name="Operator",
        welders=(Welder(user_id="w-1", display_name="Kim", employee_number="1001"),),
    )
    values.update(overrides)
    return WorkCenterSession(**values)


class FakeCoordinator:
    """상태 머신이 사용하는 코디네이터 기능만 기록합니다."""

    def __init__(self, session=None):
        self.session = session or make_session()
        self.results = []
        self.state_changes = 0
        self.history_refreshes = 0
        self.api_errors = []
        self.faults = []
        self.external_input_calls = []

    def show_result(self, result):
        self.results.append(result)

    def notify_state_changed(self):
        self.state_changes += 1

    def refresh_history(self):
        self.history_refreshes += 1

    def log_api_error(self, operation, exc):
        self.api_errors.append((operation, exc))

    def report_fault(self, description):
        self.faults.append(description)

    def set_external_input(self, flag):
        self.external_input_calls.append(flag)
        self.session = self.session.with_external_input(flag)

    @property
    def last_result(self):
        return self.results[-1] if self.results else None

    @property
    def last_message(self):
        return self.results[-1].message if self.results else None


class DeferredRunner:
    """서버 호출을 보류했다가 테스트가 원할 때 완료시킵니다."""

    def __init__(self):
        self.pending = []

    def run(self, call, on_success, on_error):
        self.pending.append((call, on_success, on_error))

    def complete(self, index: int = 0):
        call, on_success, on_error = self.pending.pop(index)
        try:
            result = call()
        except Exception as e:
            on_error(e)
            return
        on_success(result)

    def fail(self, exc: Exception, index: int = 0):
        _, _, on_error = self.pending.pop(index)
        on_error(exc)


def make_machine(machine_class, api=None, coordinator=None, runner=None, scheduler=None, options=None):
    """상태 머신을 가짜 협력 객체와 함께 생성합니다. (machine, api, coordinator) 를 반환합니다."""
    api = api or MagicMock()
    coordinator = coordinator or FakeCoordinator()
    machine = machine_class(coordinator, api, runner or ImmediateRunner(), scheduler, options)
    return machine, api, coordinator


def scan(machine, line: str):
    """스캐너 한 줄을 상태 머신에 전달합니다."""
    machine.handle(parse(line), line)
