"""Fit-up (조립) 작업장 상태 머신

쉘 여러 개와 좌/우 헤드를 하나의 조립체로 묶어 알파 코드를 발급받습니다.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from core.barcode import Command, InputValue, Prefix, parse_shell_label
from core.models import AssemblyResult, KanbanCard, QueueItem, SerialContext
from workcenters.base import Action, FormField, FormSpec, ListView, WorkCenterMachine
from workcenters.seams import TANK_SIZE_OPTIONS, parse_tank_size


DEFAULT_AUTO_RESET_SEC = 30


def shell_count_for_size(tank_size: int) -> int:
    """탱크 용량별 쉘 개수"""
    if tank_size >= 1500:
        return 3
    if tank_size >= 1000:
        return 2
    return 1


def resize_slots(slots: Tuple[Optional[str], ...], tank_size: int) -> Tuple[Optional[str], ...]:
    count = shell_count_for_size(tank_size)
    return tuple(slots[i] if i < len(slots) else None for i in range(count))


@dataclass(frozen=True)
class Building:
    """조립 진행 중. tank_size 가 0 이면 아직 첫 쉘을 스캔하지 않은 상태입니다."""
    tank_size: int = 0
    shells: Tuple[Optional[str], ...] = ()
    left_head: Optional[KanbanCard] = None
    right_head: Optional[KanbanCard] = None
    head_scans: int = 0
    reassembly_of: Optional[str] = None

    @property
    def all_shells_filled(self) -> bool:
        return bool(self.shells) and all(self.shells)

    @property
    def filled_shells(self) -> List[str]:
        return [s for s in self.shells if s]


@dataclass(frozen=True)
class ReassemblyConfirm:
    alpha_code: str
    serial: str
    tank_size: int


@dataclass(frozen=True)
class Saved:
    alpha_code: str


class FitupMachine(WorkCenterMachine):
    TITLE = "Fit-up"
    HANDLES = frozenset({Prefix.SCAN, Prefix.KANBAN_CARD, Prefix.INPUT, Prefix.TANK_SIZE, Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)
    REQUIRES_WELDER = True

    def __init__(self, *args, **kwargs):
        self.heads_queue: List[QueueItem] = []
        self._reset_job = None
        super().__init__(*args, **kwargs)

    def initial_state(self):
        return Building()

    def on_mount(self):
        self.load_heads_queue()

    def teardown(self):
        self._cancel_auto_reset()
        super().teardown()

    def load_heads_queue(self):
        def loaded(items):
            self.heads_queue = [i for i in items if i.status == 'queued']
            self.coordinator.notify_state_changed()

        self._load('heads_queue',
                   lambda: self.api.get_material_queue(self.session.work_center_id, 'heads'), loaded)

    # #################################################################
    # # 명령 처리
    # #################################################################

    def dispatch(self, command: Command):
        state = self.state
        prefix = command.prefix
        value = command.value

        if isinstance(state, ReassemblyConfirm):
            if prefix is Prefix.INPUT and value == InputValue.YES:
                self.start_reassembly()
            elif prefix is Prefix.INPUT and value == InputValue.NO:
                self.reset()
            else:
                self.reject()
            return

        if isinstance(state, Saved):
            if prefix is Prefix.SCAN:
                self.reset(silent=True)
                self.add_shell(parse_shell_label(value).serial_number)
            elif prefix is Prefix.INPUT and value == InputValue.RESET:
                self.reset()
            else:
                self.reject()
            return

        if prefix is Prefix.SCAN:
            self.add_shell(parse_shell_label(value).serial_number)
        elif prefix is Prefix.KANBAN_CARD:
            self.apply_head_lot(value)
        elif prefix is Prefix.TANK_SIZE:
            size = parse_tank_size(value)
            if size is None:
                self.error("Invalid tank size")
            else:
                self.set_tank_size(size)
        elif prefix is Prefix.INPUT and value == InputValue.SWAP:
            self.swap_heads()
        elif prefix is Prefix.INPUT and value == InputValue.RESET:
            self.reset()
        elif prefix is Prefix.INPUT and value == InputValue.SAVE:
            self.save()
        else:
            self.reject()

    def manual_entry(self, text: str):
        state = self.state
        if isinstance(state, ReassemblyConfirm):
            self.reject()
            return
        if isinstance(state, Saved):
            self.reset(silent=True)
        self.add_shell(text)

    # #################################################################
    # # 쉘 / 헤드
    # #################################################################

    def add_shell(self, serial: str):
        def looked_up(ctx: SerialContext):
            self._apply_shell(serial, ctx)

        self._call('serial_context', lambda: self.api.lookup_serial_context(serial),
                   looked_up, "Failed to look up shell")

    def _apply_shell(self, serial: str, ctx: SerialContext):
        state = self.state
        existing = ctx.existing_assembly
        if existing is not None and existing.alpha_code != state.reassembly_of:
            self._set_state(ReassemblyConfirm(existing.alpha_code, serial, existing.tank_size or ctx.tank_size))
            self.error(f"Shell {serial} is part of assembly {existing.alpha_code}. Reassemble?")
            return

        if not ctx.tank_size:
            self.error(f"Shell {serial} has no tank size on record")
            return
        if state.tank_size == 0:
            shells = (serial,) + (None,) * (shell_count_for_size(ctx.tank_size) - 1)
            self._set_state(replace(state, tank_size=ctx.tank_size, shells=shells))
            self.success(f"Shell {serial} added")
            return

        if ctx.tank_size != state.tank_size:
            self.error("Shell size does not match the assembly")
            return
        if serial in state.shells:
            self.error("This shell has already been added to this assembly")
            return
        if None not in state.shells:
            self.error("All shell slots are filled")
            return
        shells = list(state.shells)
        shells[shells.index(None)] = serial
        self._set_state(replace(state, shells=tuple(shells)))
        self.success(f"Shell {serial} added")

    def set_tank_size(self, tank_size: int):
        state = self.state
        if not isinstance(state, Building):
            self.reject()
            return
        self._set_state(replace(state, tank_size=tank_size, shells=resize_slots(state.shells, tank_size)))
        self.success(f"Tank size changed to {tank_size}")

    def apply_head_lot(self, card_id: str):
        state = self.state
        if not isinstance(state, Building):
            self.reject()
            return
        applied = state.right_head if state.head_scans else None
        if applied is not None and applied.card_id == card_id:
            self.success("Head lot already applied")
            return

        def looked_up(card: KanbanCard):
            current = self.state
            if current.head_scans == 0:
                self._set_state(replace(current, left_head=card, right_head=card, head_scans=1))
                self.success("Head lot applied to both heads")
            else:
                self._set_state(replace(current, right_head=card, head_scans=2))
                self.success("Right head lot updated")

        self._call('kanban_card', lambda: self.api.lookup_kanban_card(card_id), looked_up,
                   on_error=lambda exc: self.error(
                       "Kanban card not found or not associated with any queued material"))

    def swap_heads(self):
        state = self.state
        if state.left_head is None:
            self.error("Scan a kanban card for head material first")
            return
        self._set_state(replace(state, left_head=state.right_head, right_head=state.left_head))
        self.success("Heads swapped")

    # #################################################################
    # # 재조립 / 저장 / 초기화
    # #################################################################

    def start_reassembly(self):
        state = self.state
        if not isinstance(state, ReassemblyConfirm):
            self.reject()
            return
        shells = (state.serial,) + (None,) * (shell_count_for_size(state.tank_size) - 1)
        self._set_state(Building(tank_size=state.tank_size, shells=shells, reassembly_of=state.alpha_code))
        self.success(f"Reassembling {state.alpha_code}")

    def save(self):
        state = self.state
        if not isinstance(state, Building):
            self.reject()
            return
        if not state.all_shells_filled:
            self.error("Scan all required shells before saving")
            return
        if state.left_head is None and state.reassembly_of is None:
            self.error("Scan a kanban card for head material before saving")
            return

        session = self.session
        right_head = state.right_head or state.left_head

        if state.reassembly_of is not None:
            call = lambda: self.api.reassemble(
                alpha_code=state.reassembly_of,
                shells=state.filled_shells,
                operator_id=session.operator_id,
                welder_ids=session.welder_ids,
                left_head=state.left_head,
                right_head=right_head,
            )
        else:
            call = lambda: self.api.create_assembly(
                shells=state.filled_shells,
                left_head=state.left_head,
                right_head=right_head,
                tank_size=state.tank_size,
                work_center_id=session.work_center_id,
                production_line_id=session.production_line_id,
                operator_id=session.operator_id,
                welder_ids=session.welder_ids,
                asset_id=session.asset_id,
            )

        def saved(result: AssemblyResult):
            alpha_code = result.alpha_code or state.reassembly_of or ""
            self._set_state(Saved(alpha_code))
            self.success(f"Assembly {alpha_code} saved")
            self.history_changed()
            self.load_heads_queue()
            self._schedule_auto_reset()

        self._call('assembly', call, saved, "Failed to save assembly")

    def reset(self, silent: bool = False):
        self._cancel_auto_reset()
        self._set_state(Building())
        if not silent:
            self.success("Reset")

    def _schedule_auto_reset(self):
        self._cancel_auto_reset()
        if self.scheduler is None:
            return
        delay_ms = int(self.options.get('fitup_auto_reset_sec', DEFAULT_AUTO_RESET_SEC) * 1000)
        self._reset_job = self.scheduler.schedule(delay_ms, self._auto_reset)

    def _cancel_auto_reset(self):
        if self._reset_job and self.scheduler is not None:
            self.scheduler.cancel(self._reset_job)
        self._reset_job = None

    def _auto_reset(self):
        self._reset_job = None
        if self._torn_down:
            return
        if isinstance(self.state, Saved):
            self._set_state(Building())

    # #################################################################
    # # 화면 정보
    # #################################################################

    def status_text(self) -> str:
        state = self.state
        if isinstance(state, Saved):
            return f"Assembly {state.alpha_code}"
        if isinstance(state, ReassemblyConfirm):
            return f"This shell is part of assembly {state.alpha_code}. Are you reassembling?"
        if state.reassembly_of:
            return f"Reassembling {state.reassembly_of}"
        if state.tank_size == 0:
            return "Scan a shell to start an assembly"
        if not state.all_shells_filled:
            return "Scan the next shell"
        if state.left_head is None:
            return "Scan a kanban card for head material"
        return "Ready to save"

    def details(self):
        state = self.state
        if not isinstance(state, Building):
            return []

        def head_text(head: Optional[KanbanCard]) -> str:
            if head is None:
                return ""
            return f"{head.product_description} H: {head.heat_number} / C: {head.coil_number}"

        rows = [("Tank Size", str(state.tank_size) if state.tank_size else "")]
        rows.append(("Left Head", head_text(state.left_head)))
        for i, serial in enumerate(state.shells, start=1):
            rows.append((f"Shell {i}", serial or ""))
        rows.append(("Right Head", head_text(state.right_head)))
        return rows

    def entry_prompt(self) -> Optional[str]:
        return None if isinstance(self.state, ReassemblyConfirm) else "Shell serial number"

    def choices(self):
        state = self.state
        if not isinstance(state, ReassemblyConfirm):
            return None
        return (f"This shell is part of assembly {state.alpha_code}. Are you reassembling?",
                [Action("Yes", lambda: self.inject(Prefix.INPUT, InputValue.YES)),
                 Action("No", lambda: self.inject(Prefix.INPUT, InputValue.NO))])

    def manual_actions(self):
        if isinstance(self.state, ReassemblyConfirm):
            return []
        if isinstance(self.state, Saved):
            return [Action("New Assembly", lambda: self.inject(Prefix.INPUT, InputValue.RESET))]
        return [
            Action("Swap Heads", lambda: self.inject(Prefix.INPUT, InputValue.SWAP)),
            Action("Reset", lambda: self.inject(Prefix.INPUT, InputValue.RESET)),
            Action("Save", lambda: self.inject(Prefix.INPUT, InputValue.SAVE)),
            Action("Refresh Queue", self.load_heads_queue),
        ]

    def form(self) -> Optional[FormSpec]:
        state = self.state
        if not isinstance(state, Building):
            return None
        field = FormField('tank_size', "Tank Size", tuple((str(s), str(s)) for s in TANK_SIZE_OPTIONS),
                          str(state.tank_size) if state.tank_size else "")
        return FormSpec("Tank Size", (field,),
                        lambda values: self.inject(Prefix.TANK_SIZE, values.get('tank_size', '')))

    def list_view(self):
        items = []
        for item in self.heads_queue:
            label = f"{item.product_description}  H: {item.heat_number} / C: {item.coil_number}"
            callback = (lambda card=item.card_id: self.inject(Prefix.KANBAN_CARD, card)) if item.card_id else None
            items.append((label, callback))
        return ListView("Heads Queue", tuple(items), empty_text="No heads in queue", item_action_label="Use")
