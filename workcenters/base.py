"""작업장 상태 머신 공통 기반 모듈

모든 작업장은 handle(command, raw_line) 하나로 스캔 입력을 받습니다. 수동 버튼과
수동 입력도 같은 명령(또는 같은 도메인 함수)을 거치므로 입력 경로와 무관하게 동작이 같습니다.
"""

from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, List, Optional, Tuple

from core.barcode import Command, Prefix
from core.models import ScanResult
from utils.exceptions import MesError


UNKNOWN_BARCODE = "Unknown barcode"
INVALID_IN_CONTEXT = "Invalid barcode in this context"
PLEASE_WAIT = "Please wait, still processing the previous scan"


@dataclass(frozen=True)
class Action:
    """수동 조작 버튼"""
    label: str
    callback: Callable[[], None]


@dataclass(frozen=True)
class FormField:
    key: str
    label: str
    options: Tuple[Tuple[str, str], ...] = ()  # (값, 표시 이름)
    value: str = ""
    required: bool = False


@dataclass(frozen=True)
class FormSpec:
    """여러 항목을 입력받는 수동 입력 양식"""
    title: str
    fields: Tuple[FormField, ...]
    on_submit: Callable[[dict], None]
    on_cancel: Optional[Callable[[], None]] = None
    note: str = ""


@dataclass(frozen=True)
class ListView:
    """목록 표시 (불량 목록, 큐 항목 등). 항목별 선택/삭제 콜백은 선택 사항입니다."""
    title: str
    items: Tuple[Tuple[str, Optional[Callable[[], None]]], ...] = ()
    empty_text: str = ""
    item_action_label: str = "Remove"


def describe_error(exc: Exception) -> str:
    """서버 호출 실패를 작업자에게 보여줄 문장으로 바꿉니다."""
    if isinstance(exc, MesError):
        return str(exc) or exc.__class__.__name__
    return f"{exc.__class__.__name__}: {exc}"


class WorkCenterMachine:
    """작업장 상태 머신 기반 클래스

    하위 클래스는 HANDLES / REJECTS 로 모든 접두사를 명시적으로 분류해야 합니다.
    새로운 접두사가 추가되면 분류하지 않은 클래스는 정의 시점에 TypeError 가 납니다.
    """

    TITLE = ""
    HANDLES: FrozenSet[Prefix] = frozenset()
    REJECTS: FrozenSet[Prefix] = frozenset()
    REQUIRES_WELDER = False
    ABSTRACT = True

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.__dict__.get('ABSTRACT', False):
            return
        overlap = cls.HANDLES & cls.REJECTS
        if overlap:
            raise TypeError(f"{cls.__name__}: prefixes both handled and rejected: "
                            f"{sorted(p.value for p in overlap)}")
        missing = set(Prefix) - (cls.HANDLES | cls.REJECTS)
        if missing:
            raise TypeError(f"{cls.__name__}: unclassified prefixes: {sorted(p.value for p in missing)}")

    def __init__(self, coordinator, api, runner, scheduler=None, options: Optional[dict] = None):
        self.coordinator = coordinator
        self.api = api
        self.runner = runner
        self.scheduler = scheduler
        self.options = options or {}
        self._pending_calls = set()
        self._load_generations = {}
        self._torn_down = False
        self.state = self.initial_state()

    # #################################################################
    # # 상태 / 세션
    # #################################################################

    def initial_state(self) -> Any:
        raise NotImplementedError

    def _set_state(self, state):
        self.state = state
        self.coordinator.notify_state_changed()

    @property
    def session(self):
        return self.coordinator.session

    @property
    def busy(self) -> bool:
        return bool(self._pending_calls)

    # #################################################################
    # # 결과 표시
    # #################################################################

    def success(self, message: str):
        self.coordinator.show_result(ScanResult.success(message))

    def error(self, message: str):
        self.coordinator.show_result(ScanResult.error(message))

    def reject(self, message: str = INVALID_IN_CONTEXT):
        self.error(message)

    def history_changed(self):
        self.coordinator.refresh_history()

    # #################################################################
    # # 입력 처리
    # #################################################################

    def handle(self, command: Optional[Command], raw_line: str):
        """스캔 한 줄을 처리합니다."""
        if command is None:
            self.on_unparsed(raw_line)
            return
        if command.prefix in self.REJECTS:
            self.reject()
            return
        if self.busy and command.prefix is not Prefix.FAULT:
            self.error(PLEASE_WAIT)
            return
        if command.prefix is Prefix.FAULT:
            self.coordinator.report_fault(command.value)
            return
        self.dispatch(command)

    def on_unparsed(self, raw_line: str):
        self.error(UNKNOWN_BARCODE)

    def dispatch(self, command: Command):
        raise NotImplementedError

    def inject(self, prefix: Prefix, value: str):
        """수동 버튼: 스캔과 같은 명령을 만들어 handle 로 보냅니다."""
        raw = f"{prefix.value};{value}"
        self.handle(Command(prefix=prefix, value=value, raw=raw), raw)

    def submit_manual(self, text: str):
        """수동 입력란의 값을 처리합니다."""
        text = (text or "").strip()
        if not text:
            return
        if self.busy:
            self.error(PLEASE_WAIT)
            return
        self.manual_entry(text)

    def manual_entry(self, text: str):
        self.error("Manual entry is not available here")

    # #################################################################
    # # 서버 호출
    # #################################################################

    def _call(self, key: str, call: Callable[[], Any], on_success: Callable[[Any], None],
              failure_message: str = "Request failed",
              on_error: Optional[Callable[[Exception], None]] = None) -> bool:
        """서버 호출을 실행합니다. 같은 key 의 호출이 진행 중이면 다시 보내지 않습니다.

        호출이 끝날 때까지 머신은 busy 상태이며, 실패 시 상태는 호출 전 그대로 두고
        실패 사유를 표시합니다.
        """
        if key in self._pending_calls:
            self.error(PLEASE_WAIT)
            return False
        return self._run(key, self._pending_calls, call, on_success, failure_message, on_error)

    def _load(self, key: str, call: Callable[[], Any], on_success: Callable[[Any], None]) -> bool:
        """기준 정보/목록 조회. busy 로 만들지 않으며 실패하면 기존 값을 유지합니다.

        같은 key 로 다시 조회하면 먼저 보낸 조회의 결과는 버립니다.
        """
        generation = self._load_generations.get(key, 0) + 1
        self._load_generations[key] = generation

        def succeeded(result):
            if self._torn_down or self._load_generations.get(key) != generation:
                return
            on_success(result)

        def failed(exc):
            if self._torn_down:
                return
            self.coordinator.log_api_error(key, exc)

        self.runner.run(call, succeeded, failed)
        return True

    def _run(self, key, tracker, call, on_success, failure_message, on_error) -> bool:
        tracker.add(key)

        def succeeded(result):
            tracker.discard(key)
            if self._torn_down:
                return
            on_success(result)

        def failed(exc):
            tracker.discard(key)
            if self._torn_down:
                return
            self.coordinator.log_api_error(key, exc)
            if on_error is not None:
                on_error(exc)
            else:
                self.error(f"{failure_message} ({describe_error(exc)})")

        self.runner.run(call, succeeded, failed)
        return True

    # #################################################################
    # # 수명 주기 / 화면 정보
    # #################################################################

    def on_mount(self):
        """작업장 화면 진입 시 호출됩니다."""
        pass

    def teardown(self):
        """화면을 떠날 때 호출됩니다. 이후 도착하는 호출 결과는 무시합니다."""
        self._torn_down = True

    def status_text(self) -> str:
        return ""

    def details(self) -> List[Tuple[str, str]]:
        return []

    def manual_actions(self) -> List[Action]:
        return []

    def entry_prompt(self) -> Optional[str]:
        """수동 입력란의 안내 문구. None 이면 입력란을 표시하지 않습니다."""
        return None

    def choices(self) -> Optional[Tuple[str, List[Action]]]:
        return None

    def form(self) -> Optional[FormSpec]:
        return None

    def list_view(self) -> Optional[ListView]:
        return None
