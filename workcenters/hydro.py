"""Hydro (수압 시험) 작업장 상태 머신

쉘(조립체)과 명판 두 가지를 순서와 무관하게 스캔합니다. 두 쪽이 모두 확인되고
탱크 용량이 일치하면 검사 단계로 넘어갑니다.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from core.barcode import Command, InputValue, Prefix, parse_shell_label
from core.models import AssemblyLookup, Characteristic, DefectCode, DefectEntry, DefectLocation, NameplateInfo
from workcenters.base import PLEASE_WAIT, UNKNOWN_BARCODE, Action, ListView, WorkCenterMachine
from workcenters.inspection import find_characteristic, find_defect_code, find_location


ACCEPTED = 'ACCEPTED'

STEP_DEFECT = 'defect'
STEP_CHARACTERISTIC = 'characteristic'
STEP_LOCATION = 'location'


@dataclass(frozen=True)
class ScanSides:
    """쉘 쪽과 명판 쪽의 스캔 결과"""
    shell_serial: str = ""
    alpha_code: str = ""
    assembly_tank_size: Optional[int] = None
    shells: Tuple[str, ...] = ()
    no_shell: bool = False
    nameplate_serial: str = ""
    nameplate_tank_size: Optional[int] = None

    @property
    def shell_known(self) -> bool:
        return bool(self.alpha_code) or self.no_shell

    @property
    def nameplate_known(self) -> bool:
        return bool(self.nameplate_serial)

    @property
    def size_mismatch(self) -> bool:
        if self.no_shell or self.assembly_tank_size is None or self.nameplate_tank_size is None:
            return False
        return self.assembly_tank_size != self.nameplate_tank_size


@dataclass(frozen=True)
class WaitingForScans:
    sides: ScanSides = ScanSides()


@dataclass(frozen=True)
class ReadyForInspection:
    sides: ScanSides
    defects: Tuple[DefectEntry, ...] = ()


@dataclass(frozen=True)
class DefectEntryStep:
    """불량 입력 마법사: 불량 -> 특성 -> 위치"""
    sides: ScanSides
    defects: Tuple[DefectEntry, ...] = ()
    step: str = STEP_DEFECT
    defect_code: Optional[DefectCode] = None
    characteristic: Optional[Characteristic] = None


class HydroMachine(WorkCenterMachine):
    TITLE = "Hydro"
    HANDLES = frozenset({Prefix.SCAN, Prefix.NO_SHELL, Prefix.SAVE, Prefix.INPUT, Prefix.CLEAR,
                         Prefix.DEFECT, Prefix.CHARACTERISTIC, Prefix.LOCATION, Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)

    def __init__(self, *args, **kwargs):
        self.defect_codes: List[DefectCode] = []
        self.characteristics: List[Characteristic] = []
        self.locations: List[DefectLocation] = []
        super().__init__(*args, **kwargs)

    def initial_state(self):
        return WaitingForScans()

    def on_mount(self):
        wc_id = self.session.work_center_id
        self._load('defect_codes', lambda: self.api.get_defect_codes(wc_id),
                   lambda items: self._set_reference('defect_codes', items))
        self._load('characteristics', lambda: self.api.get_characteristics(wc_id),
                   lambda items: self._set_reference('characteristics', items))

    def _set_reference(self, attr: str, items):
        setattr(self, attr, list(items))
        self.coordinator.notify_state_changed()

    @property
    def available_characteristics(self) -> List[Characteristic]:
        """조립체 탱크 용량에 해당하는 특성만 제공합니다."""
        tank_size = self.state.sides.assembly_tank_size
        return [c for c in self.characteristics if c.applies_to(tank_size)]

    # #################################################################
    # # 명령 처리
    # #################################################################

    def on_unparsed(self, raw_line: str):
        # 접두사 없는 스캔만 시리얼로 간주합니다. 알 수 없는 접두사는 그대로 거부합니다.
        text = raw_line.strip()
        if ';' in text or not isinstance(self.state, WaitingForScans):
            super().on_unparsed(raw_line)
            return
        if self.busy:
            self.error(PLEASE_WAIT)
            return
        if not text:
            self.error(UNKNOWN_BARCODE)
            return
        self.scan_plain_serial(text)

    def dispatch(self, command: Command):
        state = self.state
        prefix = command.prefix
        value = command.value

        if prefix is Prefix.CLEAR and value == "1":
            self.reset(announce=True)
            return

        if isinstance(state, WaitingForScans):
            if prefix is Prefix.SCAN:
                self.scan_shell(parse_shell_label(value).serial_number)
            elif prefix is Prefix.NO_SHELL and value == "0":
                self.mark_no_shell()
            else:
                self.reject()
            return

        if isinstance(state, ReadyForInspection):
            is_accept = ((prefix is Prefix.SAVE and value == "1")
                         or (prefix is Prefix.INPUT and value == InputValue.YES))
            if is_accept:
                self.accept()
            elif prefix is Prefix.DEFECT:
                self.open_wizard()
                self.select_defect_code(value)
            else:
                self.reject()
            return

        if prefix is Prefix.DEFECT and state.step == STEP_DEFECT:
            self.select_defect_code(value)
        elif prefix is Prefix.CHARACTERISTIC and state.step == STEP_CHARACTERISTIC:
            self.select_characteristic(value)
        elif prefix is Prefix.LOCATION and state.step == STEP_LOCATION:
            self.select_location(value)
        else:
            self.reject()

    def manual_entry(self, text: str):
        if not isinstance(self.state, WaitingForScans):
            self.reject()
            return
        if text.upper().startswith(f"{Prefix.SCAN.value};"):
            self.scan_shell(parse_shell_label(text[3:].strip()).serial_number)
        else:
            self.scan_plain_serial(text)

    def scan_plain_serial(self, serial: str):
        if self.state.sides.shell_known:
            self.scan_nameplate(serial)
        else:
            self.scan_shell(serial)

    # #################################################################
    # # 쉘 / 명판 스캔
    # #################################################################

    def scan_shell(self, serial: str):
        def found(assembly: AssemblyLookup):
            sides = replace(self.state.sides, shell_serial=serial, alpha_code=assembly.alpha_code,
                            assembly_tank_size=assembly.tank_size or None,
                            shells=tuple(assembly.shells), no_shell=False)
            self.success(f"Assembly {assembly.alpha_code} found")
            self._sides_updated(sides)

        self._call('assembly_lookup', lambda: self.api.lookup_assembly_by_shell(serial), found,
                   "Shell not found in any assembly")

    def mark_no_shell(self):
        sides = replace(self.state.sides, shell_serial="", alpha_code="", assembly_tank_size=None,
                        shells=(), no_shell=True)
        self.success("No shell mode")
        self._sides_updated(sides)

    def scan_nameplate(self, serial: str):
        def found(nameplate: NameplateInfo):
            sides = replace(self.state.sides, nameplate_serial=serial,
                            nameplate_tank_size=nameplate.tank_size)
            self.success(f"Nameplate {serial} found")
            self._sides_updated(sides)

        self._call('nameplate_lookup', lambda: self.api.get_nameplate_by_serial(serial), found,
                   on_error=lambda exc: self.error("Nameplate serial number not found"))

    def _sides_updated(self, sides: ScanSides):
        self._set_state(WaitingForScans(sides))
        if not (sides.shell_known and sides.nameplate_known):
            return
        if sides.size_mismatch:
            # 두 쪽 모두 유지하여 잘못된 쪽만 다시 스캔할 수 있게 합니다.
            self.error(f"Tank size mismatch: shell assembly is {sides.assembly_tank_size} gal "
                       f"but nameplate is {sides.nameplate_tank_size} gal")
            return
        self._set_state(ReadyForInspection(sides))
        self.coordinator.set_external_input(False)

    # #################################################################
    # # 불량 입력 마법사
    # #################################################################

    def open_wizard(self):
        state = self.state
        if not isinstance(state, ReadyForInspection):
            self.reject()
            return
        self._set_state(DefectEntryStep(state.sides, state.defects))

    def cancel_wizard(self):
        state = self.state
        if isinstance(state, DefectEntryStep):
            self._set_state(ReadyForInspection(state.sides, state.defects))

    def wizard_back(self):
        state = self.state
        if not isinstance(state, DefectEntryStep):
            return
        if state.step == STEP_LOCATION:
            self._set_state(replace(state, step=STEP_CHARACTERISTIC, characteristic=None))
        elif state.step == STEP_CHARACTERISTIC:
            self._set_state(replace(state, step=STEP_DEFECT, defect_code=None))

    def select_defect_code(self, token: str):
        state = self.state
        code = find_defect_code(self.defect_codes, token)
        if code is None:
            self.error("Defect code not applicable at this work center")
            return
        self._set_state(replace(state, step=STEP_CHARACTERISTIC, defect_code=code))

    def select_characteristic(self, token: str):
        state = self.state
        char = find_characteristic(self.available_characteristics, token)
        if char is None:
            self.error("Characteristic not applicable to this tank")
            return
        self.locations = []
        self._set_state(replace(state, step=STEP_LOCATION, characteristic=char))

        def loaded(items):
            current = self.state
            if isinstance(current, DefectEntryStep) and current.characteristic == char:
                self._set_reference('locations', items)

        self._load('locations', lambda: self.api.get_locations_by_characteristic(char.id), loaded)

    def select_location(self, token: str):
        state = self.state
        loc = find_location(self.locations, token)
        if loc is None:
            self.error("Location not applicable to this characteristic")
            return
        entry = DefectEntry(
            defect_code_id=state.defect_code.id,
            characteristic_id=state.characteristic.id,
            location_id=loc.id,
            defect_code_name=state.defect_code.name,
            characteristic_name=state.characteristic.name,
            location_name=loc.name,
        )
        self._set_state(ReadyForInspection(state.sides, state.defects + (entry,)))
        self.success(f"Defect added: {entry.defect_code_name} @ {entry.location_name}")

    def remove_defect(self, index: int):
        state = self.state
        if isinstance(state, ReadyForInspection) and 0 <= index < len(state.defects):
            self._set_state(replace(state, defects=state.defects[:index] + state.defects[index + 1:]))

    # #################################################################
    # # 저장 / 초기화
    # #################################################################

    def accept(self):
        state = self.state
        if not isinstance(state, ReadyForInspection):
            self.reject()
            return
        session = self.session
        sides = state.sides
        defects = state.defects

        def saved(result):
            if defects:
                self.success(f"Accepted with {len(defects)} defect(s)")
            else:
                self.success("Accepted - no defects")
            self.history_changed()
            self.reset()

        self._call(
            'hydro_record',
            lambda: self.api.create_hydro_record(
                assembly_alpha_code=None if sides.no_shell else sides.alpha_code,
                nameplate_serial=sides.nameplate_serial,
                result=ACCEPTED,
                work_center_id=session.work_center_id,
                production_line_id=session.production_line_id,
                operator_id=session.operator_id,
                defects=list(defects),
                asset_id=session.asset_id,
            ),
            saved, "Failed to save hydro record")

    def reset(self, announce: bool = False):
        self.locations = []
        self._set_state(WaitingForScans())
        self.coordinator.set_external_input(True)
        if announce:
            self.success("Screen reset")

    # #################################################################
    # # 화면 정보
    # #################################################################

    def status_text(self) -> str:
        state = self.state
        if isinstance(state, ReadyForInspection):
            return "Accept, or add defects"
        if isinstance(state, DefectEntryStep):
            if state.step == STEP_DEFECT:
                return "Step 1: Select Defect"
            if state.step == STEP_CHARACTERISTIC:
                return f"{state.defect_code.name} > Step 2: Select Characteristic"
            return f"{state.defect_code.name} > {state.characteristic.name} > Step 3: Select Location"
        sides = state.sides
        if sides.shell_known and not sides.nameplate_known:
            return "Scan the nameplate"
        if sides.nameplate_known and not sides.shell_known:
            return "Scan a shell"
        return "Scan a shell and the nameplate"

    def details(self):
        sides = self.state.sides
        if sides.no_shell:
            shell_rows = [("Shell", "No shell")]
        else:
            shell_rows = [
                ("Shell", sides.shell_serial),
                ("Assembly", sides.alpha_code),
                ("Assembly Tank Size", str(sides.assembly_tank_size or "")),
                ("Shells", ", ".join(sides.shells)),
            ]
        return shell_rows + [
            ("Nameplate", sides.nameplate_serial),
            ("Nameplate Tank Size", str(sides.nameplate_tank_size or "")),
        ]

    def entry_prompt(self) -> Optional[str]:
        if isinstance(self.state, WaitingForScans):
            return "Enter Shell or Nameplate Serial"
        return None

    def manual_actions(self):
        state = self.state
        if isinstance(state, ReadyForInspection):
            accept_label = "Save Defect(s)" if state.defects else "No Defects - Accept"
            return [Action(accept_label, lambda: self.inject(Prefix.SAVE, "1")),
                    Action("Add Defect", self.open_wizard),
                    Action("Reset", lambda: self.inject(Prefix.CLEAR, "1"))]
        if isinstance(state, DefectEntryStep):
            actions = [Action("Cancel", self.cancel_wizard)]
            if state.step != STEP_DEFECT:
                actions.insert(0, Action("Back", self.wizard_back))
            return actions
        return [Action("No Shell", lambda: self.inject(Prefix.NO_SHELL, "0")),
                Action("Reset", lambda: self.inject(Prefix.CLEAR, "1"))]

    def choices(self):
        state = self.state
        if not isinstance(state, DefectEntryStep):
            return None
        if state.step == STEP_DEFECT:
            return (self.status_text(), [Action(c.name or c.code, lambda c=c: self.select_defect_code(c.id))
                                         for c in self.defect_codes])
        if state.step == STEP_CHARACTERISTIC:
            return (self.status_text(), [Action(c.name, lambda c=c: self.select_characteristic(c.id))
                                         for c in self.available_characteristics])
        return (self.status_text(), [Action(l.name or l.code, lambda l=l: self.select_location(l.id))
                                     for l in self.locations])

    def list_view(self):
        state = self.state
        if not isinstance(state, ReadyForInspection):
            return None
        items = tuple(
            (f"{d.defect_code_name} / {d.characteristic_name} / {d.location_name}",
             lambda i=index: self.remove_defect(i))
            for index, d in enumerate(state.defects))
        return ListView("Defects", items, empty_text="No defects")
