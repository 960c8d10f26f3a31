"""세션 코디네이터 모듈

작업자/작업장 정보(WorkCenterSession), 현재 작업장 상태 머신, 용접사 명단, 당일 이력,
자동 스캔 모드를 관리하고 상태 머신에 결과 표시/이력 갱신 기능을 제공합니다.
"""

from typing import Callable, Dict, List, Optional

from core.barcode import Command, parse
from core.models import HistoryData, ScanResult, Welder, WorkCenterSession
from utils.logger import EventLogger
from workcenters.base import UNKNOWN_BARCODE, WorkCenterMachine, describe_error
from workcenters.registry import create_machine


WELDER_REQUIRED_MESSAGE = "A welder must be signed in before logging data."

EVENT_STATE = 'state'
EVENT_RESULT = 'result'
EVENT_HISTORY = 'history'
EVENT_MODE = 'mode'
EVENT_WELDERS = 'welders'


class SessionCoordinator:
    """상태 머신과 UI 사이의 연결 지점"""

    def __init__(self, api, runner, session: WorkCenterSession, scheduler=None,
                 logger: Optional[EventLogger] = None, options: Optional[dict] = None,
                 operator_welder: Optional[Welder] = None):
        self.api = api
        self.runner = runner
        self.session = session
        self.scheduler = scheduler
        self.logger = logger
        self.options = options or {}
        self.operator_welder = operator_welder
        self.machine: Optional[WorkCenterMachine] = None
        self.requires_welder = False
        self.history = HistoryData()
        self.last_result: Optional[ScanResult] = None
        self._listeners: Dict[str, List[Callable]] = {}

    # #################################################################
    # # 리스너
    # #################################################################

    def add_listener(self, event: str, callback: Callable):
        self._listeners.setdefault(event, []).append(callback)

    def _emit(self, event: str, *args):
        for callback in list(self._listeners.get(event, [])):
            callback(*args)

    def _log(self, event_type: str, detail: Optional[dict] = None):
        if self.logger is not None:
            self.logger.log_event(event_type, detail)

    # #################################################################
    # # 작업장 진입 / 이탈
    # #################################################################

    def mount(self, work_center_name: Optional[str] = None) -> Optional[WorkCenterMachine]:
        """작업장 화면에 진입합니다. 이름에 해당하는 작업장이 없으면 None 을 반환합니다."""
        self.unmount()
        name = work_center_name or self.session.work_center_name
        machine = create_machine(name, self, self.api, self.runner, self.scheduler, self.options)
        if machine is None:
            self._log("MOUNT_FAILED", {'work_center': name})
            self.notify_state_changed()
            return None

        self.machine = machine
        # 작업장 진입 시 한 번만 설정합니다.
        self.requires_welder = machine.REQUIRES_WELDER
        self._log("MOUNT", {'work_center': name, 'machine': machine.TITLE})
        machine.on_mount()
        self.load_welders()
        self.refresh_history()
        self.notify_state_changed()
        return machine

    def unmount(self):
        if self.machine is None:
            return
        self.machine.teardown()
        self._log("UNMOUNT", {'machine': self.machine.TITLE})
        self.machine = None
        self.requires_welder = False
        self.notify_state_changed()

    # #################################################################
    # # 스캔 입력
    # #################################################################

    def handle_line(self, line: str):
        """스캐너 한 줄을 파싱하여 처리합니다."""
        line = (line or "").strip()
        if not line:
            return
        self._log("SCAN", {'raw': line})
        self.handle_scan(parse(line), line)

    def handle_scan(self, command: Optional[Command], raw_line: str):
        if self.machine is None:
            self.show_result(ScanResult.error(UNKNOWN_BARCODE))
            return
        self.machine.handle(command, raw_line)

    def submit_manual(self, text: str):
        if self.machine is not None:
            self.machine.submit_manual(text)

    # #################################################################
    # # 상태 머신에 제공하는 기능
    # #################################################################

    def show_result(self, result: ScanResult):
        self.last_result = result
        self._log("RESULT_SUCCESS" if result.is_success else "RESULT_ERROR", {'message': result.message})
        self._emit(EVENT_RESULT, result)

    def notify_state_changed(self):
        self._emit(EVENT_STATE)

    def refresh_history(self):
        session = self.session

        def loaded(history: HistoryData):
            self.history = history
            self._emit(EVENT_HISTORY, history)

        self.runner.run(
            lambda: self.api.get_history(session.work_center_id, session.plant_id,
                                         asset_id=session.asset_id),
            loaded, lambda exc: self.log_api_error('history', exc))

    def log_api_error(self, operation: str, exc: Exception):
        self._log("API_ERROR", {'operation': operation, 'error': describe_error(exc)})

    def set_external_input(self, flag: bool):
        """자동 스캔 모드(True) / 수동 입력 모드(False) 전환"""
        if self.session.external_input == flag:
            return
        self.session = self.session.with_external_input(flag)
        self._log("MODE", {'external_input': flag})
        self._emit(EVENT_MODE, flag)

    def report_fault(self, description: str):
        """고장 신고. 결과를 기다리지 않습니다."""
        self.show_result(ScanResult.error(f"Fault: {description}"))
        self._log("FAULT", {'description': description})
        wc_id = self.session.work_center_id
        self.runner.run(lambda: self.api.report_fault(wc_id, description),
                        lambda _: None, lambda exc: self.log_api_error('report_fault', exc))

    # #################################################################
    # # 용접사
    # #################################################################

    @property
    def welder_warning(self) -> Optional[str]:
        if self.requires_welder and not self.session.welders:
            return WELDER_REQUIRED_MESSAGE
        return None

    def _set_welders(self, welders):
        self.session = self.session.with_welders(welders)
        self._emit(EVENT_WELDERS, self.session.welders)
        self.notify_state_changed()

    def load_welders(self):
        def loaded(welders):
            welders = list(welders)
            # 로그인한 작업자가 용접사이면 명단에 자동으로 포함합니다.
            me = self.operator_welder
            if me is not None and all(w.user_id != me.user_id for w in welders):
                welders.append(me)
            self._set_welders(welders)

        self.runner.run(lambda: self.api.get_welders(self.session.work_center_id),
                        loaded, lambda exc: self.log_api_error('welders', exc))

    def add_welder(self, employee_number: str):
        employee_number = (employee_number or "").strip()
        if not employee_number:
            return

        def added(welder: Welder):
            others = [w for w in self.session.welders if w.user_id != welder.user_id]
            self._set_welders(others + [welder])
            self._log("WELDER_ADDED", {'user_id': welder.user_id})

        def failed(exc):
            self.log_api_error('add_welder', exc)
            self.show_result(ScanResult.error("Failed to add welder"))

        self.runner.run(lambda: self.api.add_welder(self.session.work_center_id, employee_number),
                        added, failed)

    def remove_welder(self, user_id: str):
        def removed(_):
            self._set_welders([w for w in self.session.welders if w.user_id != user_id])
            self._log("WELDER_REMOVED", {'user_id': user_id})

        def failed(exc):
            self.log_api_error('remove_welder', exc)
            self.show_result(ScanResult.error("Failed to remove welder"))

        self.runner.run(lambda: self.api.remove_welder(self.session.work_center_id, user_id),
                        removed, failed)
