"""Rolls (쉘 성형) 작업장 상태 머신

쉘 하나에는 같은 시리얼의 라벨 두 장(/L1, /L2)이 붙습니다. 두 라벨을 모두 스캔해
시리얼이 일치해야 생산 기록을 생성합니다.
"""

from dataclasses import dataclass
from typing import List, Optional

from core.barcode import Command, InputValue, LABEL_1, LABEL_2, Prefix, parse_shell_label
from core.models import MaterialLot, QueueItem
from workcenters.base import Action, ListView, WorkCenterMachine


@dataclass(frozen=True)
class Idle:
    """자재가 아직 없음"""


@dataclass(frozen=True)
class AwaitingLabel1:
    pass


@dataclass(frozen=True)
class AwaitingLabel2:
    serial: str


@dataclass(frozen=True)
class AdvanceQueueConfirm:
    """자재 잔량 0 - 다음 자재로 넘어갈지 확인"""


@dataclass(frozen=True)
class ThicknessInspection:
    serial: str


PROMPT_STATES = (AdvanceQueueConfirm, ThicknessInspection)


class RollsMachine(WorkCenterMachine):
    TITLE = "Rolls"
    HANDLES = frozenset({Prefix.SCAN, Prefix.INPUT, Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)
    REQUIRES_WELDER = True

    def __init__(self, *args, **kwargs):
        self.material: Optional[MaterialLot] = None
        self.shell_count = 0
        self.thickness_required = False
        self.queue: List[QueueItem] = []
        super().__init__(*args, **kwargs)

    def initial_state(self):
        return Idle()

    def on_mount(self):
        self.load_queue()

    def load_queue(self):
        def loaded(items):
            self.queue = [i for i in items if i.status == 'queued']
            self.coordinator.notify_state_changed()

        self._load('material_queue',
                   lambda: self.api.get_material_queue(self.session.work_center_id), loaded)

    # #################################################################
    # # 명령 처리
    # #################################################################

    def dispatch(self, command: Command):
        state = self.state
        is_input = command.prefix is Prefix.INPUT

        if isinstance(state, AdvanceQueueConfirm):
            if is_input and command.value == InputValue.YES:
                self.advance_queue()
            elif is_input and command.value == InputValue.NO:
                self._set_state(AwaitingLabel1())
            else:
                self.reject()
            return

        if isinstance(state, ThicknessInspection):
            if is_input and command.value == InputValue.PASS:
                self._create_record(state.serial, 'pass')
            elif is_input and command.value == InputValue.FAIL:
                self._create_record(state.serial, 'fail')
            else:
                self.reject()
            return

        if is_input and command.value == InputValue.ADVANCE:
            self.advance_queue()
            return

        if command.prefix is Prefix.SCAN:
            self._scan_label(command.value)
            return

        self.reject()

    def _scan_label(self, value: str):
        if self.material is None:
            self.error("Advance the material queue first")
            return

        label = parse_shell_label(value)
        state = self.state

        if isinstance(state, AwaitingLabel2):
            if label.label_suffix == LABEL_1:
                # 1번 라벨 재스캔은 허용 (잘못 스캔한 경우 교체)
                self._set_state(AwaitingLabel2(label.serial_number))
                self.success("Label 1 replaced - Scan Label 2")
                return
            if label.serial_number == state.serial:
                self._labels_matched(label.serial_number)
            else:
                self._set_state(AwaitingLabel1())
                self.error("Labels do not match")
            return

        if label.label_suffix == LABEL_2:
            self.error("Scan Label 1 first")
            return
        self._set_state(AwaitingLabel2(label.serial_number))
        self.success("Label 1 scanned - Scan Label 2")

    def _labels_matched(self, serial: str):
        if self.thickness_required:
            self._set_state(ThicknessInspection(serial))
        else:
            self._create_record(serial, None)

    def manual_entry(self, text: str):
        """수동 시리얼 입력: 라벨 대조 없이 두께 검사 확인 단계부터 진행합니다."""
        if self.material is None:
            self.error("Advance the material queue first")
            return
        if isinstance(self.state, PROMPT_STATES):
            self.reject()
            return
        self._labels_matched(text)

    # #################################################################
    # # 서버 호출
    # #################################################################

    def advance_queue(self):
        def advanced(lot: MaterialLot):
            self.material = lot
            self.shell_count = 0
            self.thickness_required = True
            self._set_state(AwaitingLabel1())
            self.success("Queue advanced")
            self.load_queue()

        self._call('advance_queue',
                   lambda: self.api.advance_material_queue(self.session.work_center_id),
                   advanced, "No material in queue. Contact Material Handling.")

    def _create_record(self, serial: str, inspection_result: Optional[str]):
        session = self.session
        material = self.material

        def created(resp):
            if inspection_result == 'pass':
                self.thickness_required = False
            self.material = material.consumed_one()
            self.shell_count += 1
            if resp.warning:
                self.success(f"Shell {serial} recorded ({resp.warning})")
            else:
                self.success(f"Shell {serial} recorded")
            self.history_changed()
            if self.material.remaining <= 0:
                self._set_state(AdvanceQueueConfirm())
            else:
                self._set_state(AwaitingLabel1())

        self._call(
            'production_record',
            lambda: self.api.create_production_record(
                serial_number=serial,
                work_center_id=session.work_center_id,
                production_line_id=session.production_line_id,
                operator_id=session.operator_id,
                welder_ids=session.welder_ids,
                asset_id=session.asset_id,
                inspection_result=inspection_result,
                shell_size=material.shell_size,
                heat_number=material.heat_number,
                coil_number=material.coil_number,
            ),
            created, "Failed to save production record")

    # #################################################################
    # # 화면 정보
    # #################################################################

    def status_text(self) -> str:
        state = self.state
        if isinstance(state, Idle):
            return "Advance the material queue to begin"
        if isinstance(state, AwaitingLabel1):
            return "Scan Label 1"
        if isinstance(state, AwaitingLabel2):
            return f"Scan Label 2 (Label 1: {state.serial})"
        if isinstance(state, AdvanceQueueConfirm):
            return "Material remaining has reached zero. Advance to the next material?"
        if isinstance(state, ThicknessInspection):
            return f"Thickness inspection for {state.serial}: did it pass?"
        return ""

    def details(self):
        if self.material is None:
            return []
        m = self.material
        return [
            ("Shell Count", f"{self.shell_count} of {m.quantity}"),
            ("Shell Size", m.shell_size),
            ("Heat Number", m.heat_number),
            ("Coil Number", m.coil_number),
            ("Queue Quantity", str(m.quantity)),
            ("Material Remaining", str(m.remaining)),
        ]

    def entry_prompt(self) -> Optional[str]:
        return "Shell serial number"

    def manual_actions(self):
        if isinstance(self.state, AdvanceQueueConfirm):
            return [Action("Yes", lambda: self.inject(Prefix.INPUT, InputValue.YES)),
                    Action("No", lambda: self.inject(Prefix.INPUT, InputValue.NO))]
        if isinstance(self.state, ThicknessInspection):
            return [Action("Pass", lambda: self.inject(Prefix.INPUT, InputValue.PASS)),
                    Action("Fail", lambda: self.inject(Prefix.INPUT, InputValue.FAIL))]
        return [Action("Advance Queue", lambda: self.inject(Prefix.INPUT, InputValue.ADVANCE)),
                Action("Refresh Queue", self.load_queue)]

    def list_view(self):
        items = tuple((f"{item.product_description}  x{item.quantity}", None) for item in self.queue)
        return ListView("Material Queue", items, empty_text="No material in queue")
