"""Long Seam / Round Seam 용접 작업장 상태 머신"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from core.barcode import Command, Prefix, parse_shell_label
from core.models import AssemblyLookup, RoundSeamSetup
from workcenters.base import PLEASE_WAIT, Action, FormField, FormSpec, WorkCenterMachine


TANK_SIZE_OPTIONS = (120, 250, 320, 500, 1000, 1500)
MAX_ROUND_SEAMS = 4


def seam_count_for_size(tank_size: int) -> int:
    """탱크 용량별 원주 용접(round seam) 개수"""
    if tank_size <= 500:
        return 2
    if tank_size <= 1000:
        return 3
    return 4


def tank_bracket(tank_size: int) -> int:
    if tank_size <= 500:
        return 500
    if tank_size <= 1000:
        return 1000
    return 1001


def parse_tank_size(value: str) -> Optional[int]:
    try:
        size = int(value.strip())
    except ValueError:
        return None
    return size if size > 0 else None


# #####################################################################
# # Long Seam
# #####################################################################

@dataclass(frozen=True)
class ReadyForShell:
    pass


class LongSeamMachine(WorkCenterMachine):
    """쉘 라벨을 스캔하면 즉시 생산 기록을 생성합니다."""
    TITLE = "Long Seam"
    HANDLES = frozenset({Prefix.SCAN, Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)
    REQUIRES_WELDER = True

    def initial_state(self):
        return ReadyForShell()

    def dispatch(self, command: Command):
        self.record_shell(parse_shell_label(command.value).serial_number)

    def manual_entry(self, text: str):
        self.record_shell(text)

    def record_shell(self, serial: str):
        session = self.session

        def created(resp):
            if resp.warning:
                self.success(f"Shell {serial} recorded ({resp.warning})")
            else:
                self.success(f"Shell {serial} recorded")
            self.history_changed()

        self._call(
            'production_record',
            lambda: self.api.create_production_record(
                serial_number=serial,
                work_center_id=session.work_center_id,
                production_line_id=session.production_line_id,
                operator_id=session.operator_id,
                welder_ids=session.welder_ids,
                asset_id=session.asset_id or None,
            ),
            created, "Failed to save record")

    def status_text(self) -> str:
        return "Scan a shell label to record"

    def entry_prompt(self) -> Optional[str]:
        return "Serial number"


# #####################################################################
# # Round Seam
# #####################################################################

@dataclass(frozen=True)
class LoadingSetup:
    pass


@dataclass(frozen=True)
class SetupRequired:
    """셋업 입력 중. pending_serial 이 있으면 셋업 저장 후 이어서 기록합니다."""
    tank_size: int = 500
    welder_ids: Tuple[Optional[str], ...] = (None,) * MAX_ROUND_SEAMS
    pending_serial: Optional[str] = None
    previous: Optional[RoundSeamSetup] = None
    note: str = ""

    @property
    def seam_count(self) -> int:
        return seam_count_for_size(self.tank_size)


@dataclass(frozen=True)
class SetupComplete:
    setup: RoundSeamSetup


def _padded(welder_ids) -> Tuple[Optional[str], ...]:
    ids = tuple(welder_ids)[:MAX_ROUND_SEAMS]
    return ids + (None,) * (MAX_ROUND_SEAMS - len(ids))


class RoundSeamMachine(WorkCenterMachine):
    """셋업(탱크 용량, 용접부별 용접사)이 완료되어야 쉘 스캔을 받습니다."""
    TITLE = "Round Seam"
    HANDLES = frozenset({Prefix.SCAN, Prefix.TANK_SIZE, Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)
    REQUIRES_WELDER = True

    def initial_state(self):
        return LoadingSetup()

    def on_mount(self):
        def loaded(setup: Optional[RoundSeamSetup]):
            if setup is not None and setup.is_complete:
                self._set_state(SetupComplete(setup))
            elif setup is not None:
                self._set_state(SetupRequired(tank_size=setup.tank_size or 500,
                                              welder_ids=_padded(setup.welder_ids)))
            else:
                self._set_state(SetupRequired())

        self._call('load_setup', lambda: self.api.get_round_seam_setup(self.session.work_center_id),
                   loaded, on_error=lambda exc: self._set_state(SetupRequired()))

    # #################################################################
    # # 명령 처리
    # #################################################################

    def dispatch(self, command: Command):
        if command.prefix is Prefix.TANK_SIZE:
            size = parse_tank_size(command.value)
            if size is None:
                self.error("Invalid tank size")
                return
            self.open_setup(size)
            return
        self.submit_shell(parse_shell_label(command.value).serial_number)

    def manual_entry(self, text: str):
        self.submit_shell(text)

    def submit_shell(self, serial: str):
        state = self.state
        if not isinstance(state, SetupComplete):
            self.error("Complete Roundseam Setup before scanning")
            return
        setup = state.setup

        def looked_up(assembly: AssemblyLookup):
            if tank_bracket(assembly.tank_size) != tank_bracket(setup.tank_size):
                # 탱크 용량 구간이 바뀌면 셋업을 다시 확인한 뒤 보류한 스캔을 기록합니다.
                self._set_state(SetupRequired(
                    tank_size=assembly.tank_size,
                    welder_ids=_padded(setup.welder_ids),
                    pending_serial=serial,
                    previous=setup,
                    note="Tank size bracket changed. Please verify welder assignments before continuing.",
                ))
                self.error(f"Tank size changed to {assembly.tank_size} - verify round seam setup")
                return
            self._create_record(serial)

        # 조립 정보 조회에 실패하면 현재 셋업으로 진행합니다.
        self._call('assembly_lookup', lambda: self.api.lookup_assembly_by_shell(serial),
                   looked_up, on_error=lambda exc: self._create_record(serial))

    def _create_record(self, serial: str):
        session = self.session

        def created(resp):
            self.success("Assembly recorded at Round Seam")
            self.history_changed()

        self._call(
            'round_seam_record',
            lambda: self.api.create_round_seam_record(
                serial_number=serial,
                work_center_id=session.work_center_id,
                asset_id=session.asset_id,
                production_line_id=session.production_line_id,
                operator_id=session.operator_id,
            ),
            created, "Failed to record")

    # #################################################################
    # # 셋업
    # #################################################################

    def open_setup(self, tank_size: Optional[int] = None):
        state = self.state
        if isinstance(state, SetupComplete):
            setup = state.setup
            self._set_state(SetupRequired(tank_size=tank_size or setup.tank_size,
                                          welder_ids=_padded(setup.welder_ids), previous=setup))
        elif isinstance(state, SetupRequired):
            if tank_size:
                self._set_state(replace(state, tank_size=tank_size))
        else:
            self.reject()
            return
        if tank_size:
            self.success(f"Tank size changed to {tank_size}")

    def set_setup_tank_size(self, tank_size: int):
        if isinstance(self.state, SetupRequired):
            self._set_state(replace(self.state, tank_size=tank_size))

    def assign_seam_welder(self, index: int, user_id: Optional[str]):
        state = self.state
        if not isinstance(state, SetupRequired) or not 0 <= index < MAX_ROUND_SEAMS:
            return
        ids = list(state.welder_ids)
        ids[index] = user_id or None
        self._set_state(replace(state, welder_ids=tuple(ids)))

    def cancel_setup(self):
        state = self.state
        if isinstance(state, SetupRequired) and state.previous is not None and not state.pending_serial:
            self._set_state(SetupComplete(state.previous))
        else:
            self.error("Round seam setup must be completed")

    def save_setup(self):
        state = self.state
        if not isinstance(state, SetupRequired):
            self.reject()
            return
        if self.busy:
            self.error(PLEASE_WAIT)
            return

        count = state.seam_count
        welder_ids = state.welder_ids[:count]
        if not all(welder_ids):
            self.error(f"Assign a welder to each of the {count} round seams")
            return

        setup = RoundSeamSetup(tank_size=state.tank_size, welder_ids=tuple(welder_ids), is_complete=True)

        def saved(result: RoundSeamSetup):
            self._set_state(SetupComplete(replace(result, is_complete=True)))
            if state.pending_serial:
                self._create_record(state.pending_serial)
            else:
                self.success("Round seam setup saved")

        self._call('save_setup',
                   lambda: self.api.save_round_seam_setup(self.session.work_center_id, setup),
                   saved, "Failed to save setup")

    # #################################################################
    # # 화면 정보
    # #################################################################

    def status_text(self) -> str:
        state = self.state
        if isinstance(state, LoadingSetup):
            return "Loading round seam setup..."
        if isinstance(state, SetupRequired):
            return "WARNING: Roundseam setup hasn't been completed!"
        return "Scan a shell barcode"

    def details(self):
        state = self.state
        if isinstance(state, SetupComplete):
            setup = state.setup
            names = {w.user_id: w.display_name for w in self.session.welders}
            rows = [("Tank Size", str(setup.tank_size))]
            for i, welder_id in enumerate(setup.welder_ids, start=1):
                rows.append((f"Round Seam {i}", names.get(welder_id, welder_id or "")))
            return rows
        return []

    def entry_prompt(self) -> Optional[str]:
        return "Serial number" if isinstance(self.state, SetupComplete) else None

    def manual_actions(self):
        if isinstance(self.state, SetupComplete):
            return [Action("Roundseam Setup", self.open_setup)]
        return []

    def form(self) -> Optional[FormSpec]:
        state = self.state
        if not isinstance(state, SetupRequired):
            return None
        welder_options = tuple((w.user_id, w.display_name or w.employee_number) for w in self.session.welders)
        fields = [FormField('tank_size', "Tank Size",
                            tuple((str(s), str(s)) for s in TANK_SIZE_OPTIONS), str(state.tank_size), True)]
        for i in range(state.seam_count):
            fields.append(FormField(f'rs{i + 1}', f"Round Seam {i + 1} Welder", welder_options,
                                    state.welder_ids[i] or "", True))

        def submit(values: dict):
            size = parse_tank_size(values.get('tank_size', '')) or state.tank_size
            self.set_setup_tank_size(size)
            for i in range(seam_count_for_size(size)):
                self.assign_seam_welder(i, values.get(f'rs{i + 1}'))
            self.save_setup()

        cancel = self.cancel_setup if state.previous is not None and not state.pending_serial else None
        return FormSpec("Roundseam Setup", tuple(fields), submit, cancel, note=state.note)
