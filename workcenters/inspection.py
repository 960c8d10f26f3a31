"""Long Seam / Round Seam 검사 작업장 상태 머신

불량 코드, 위치(, 특성) 스캔은 순서와 무관하게 PendingDefectEntry 를 채우며,
필요한 항목이 모두 채워지는 즉시 불량 목록에 확정됩니다.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from core.barcode import Command, Prefix, parse_full_defect, parse_shell_label
from core.models import Characteristic, DefectCode, DefectEntry, DefectLocation, PendingDefectEntry
from workcenters.base import Action, FormField, FormSpec, ListView, WorkCenterMachine


CLEAN_PASS_MESSAGE = "Inspection saved - clean pass"

FIELD_LABELS = {
    'defect_code_id': "defect code",
    'characteristic_id': "characteristic",
    'location_id': "location",
}


@dataclass(frozen=True)
class WaitingForShell:
    pass


@dataclass(frozen=True)
class AwaitingDefects:
    record_key: str  # 검사 기록의 대상 (쉘 시리얼 또는 조립 알파 코드)
    tank_size: Optional[int]
    defects: Tuple[DefectEntry, ...] = ()
    pending: PendingDefectEntry = PendingDefectEntry()


def find_defect_code(codes: Sequence[DefectCode], token: str) -> Optional[DefectCode]:
    return next((c for c in codes if token in (c.id, c.code)), None)


def find_location(locations: Sequence[DefectLocation], token: str) -> Optional[DefectLocation]:
    return next((l for l in locations if token in (l.id, l.code)), None)


def find_characteristic(characteristics: Sequence[Characteristic], token: str) -> Optional[Characteristic]:
    return next((c for c in characteristics if token in (c.id, c.code, c.name)), None)


class InspectionMachine(WorkCenterMachine):
    """검사 작업장 공통 로직"""
    ABSTRACT = True
    REQUIRED_FIELDS: Tuple[str, ...] = ('defect_code_id', 'location_id')
    SUBJECT = "shell"

    def __init__(self, *args, **kwargs):
        self.defect_codes: List[DefectCode] = []
        self.locations: List[DefectLocation] = []
        self.characteristics: List[Characteristic] = []
        super().__init__(*args, **kwargs)

    def initial_state(self):
        return WaitingForShell()

    def on_mount(self):
        wc_id = self.session.work_center_id
        self._load('defect_codes', lambda: self.api.get_defect_codes(wc_id),
                   lambda items: self._set_reference('defect_codes', items))
        self._load('defect_locations', lambda: self.api.get_defect_locations(wc_id),
                   lambda items: self._set_reference('locations', items))
        self._load('characteristics', lambda: self.api.get_characteristics(wc_id),
                   lambda items: self._set_reference('characteristics', items))

    def _set_reference(self, attr: str, items):
        setattr(self, attr, list(items))
        self.coordinator.notify_state_changed()

    @property
    def assumed_characteristic(self) -> Optional[Characteristic]:
        return None

    # #################################################################
    # # 명령 처리
    # #################################################################

    def dispatch(self, command: Command):
        state = self.state
        prefix = command.prefix

        if isinstance(state, WaitingForShell):
            if prefix is Prefix.SCAN:
                self.load_subject(parse_shell_label(command.value).serial_number)
            else:
                self.error("Scan a shell label to begin")
            return

        if prefix is Prefix.SCAN:
            self.error(f"Save or clear current {self.SUBJECT} before scanning a new one")
        elif prefix is Prefix.SAVE and command.value == "1":
            self.save()
        elif prefix is Prefix.CLEAR and command.value == "1":
            self.clear_defects()
        elif prefix is Prefix.DEFECT:
            self.apply_defect_code(command.value)
        elif prefix is Prefix.LOCATION:
            self.apply_location(command.value)
        elif prefix is Prefix.CHARACTERISTIC:
            self.apply_characteristic(command.value)
        elif prefix is Prefix.FULL_DEFECT:
            self.apply_full_defect(command.value)
        else:
            self.reject()

    def manual_entry(self, text: str):
        if isinstance(self.state, WaitingForShell):
            self.load_subject(text)
        else:
            self.error(f"Save or clear current {self.SUBJECT} before scanning a new one")

    def _update_pending(self, pending: PendingDefectEntry):
        """미완성 불량 입력을 새 값으로 교체하고, 완성되었으면 목록에 확정합니다."""
        state = self.state
        if pending.is_complete:
            entry = pending.finalize(self.assumed_characteristic)
            self._set_state(replace(state, defects=state.defects + (entry,), pending=pending.cleared()))
            self.success(f"Defect added: {entry.defect_code_name} @ {entry.location_name}")
        else:
            self._set_state(replace(state, pending=pending))

    def apply_defect_code(self, token: str):
        code = find_defect_code(self.defect_codes, token)
        if code is None:
            self.error("Defect code not applicable at this work center")
            return
        self._update_pending(self.state.pending.with_defect_code(code.id, code.name))

    def apply_location(self, token: str):
        loc = find_location(self.locations, token)
        if loc is None:
            self.error("Location not applicable at this work center")
            return
        self._update_pending(self.state.pending.with_location(loc.id, loc.name))

    def apply_characteristic(self, token: str):
        self.reject()

    def _resolve_full_defect_characteristic(self, token: str) -> Optional[Characteristic]:
        return find_characteristic(self.characteristics, token)

    def apply_full_defect(self, value: str):
        fd = parse_full_defect(value)
        if fd is None:
            self.error("Invalid full defect format")
            return
        code = find_defect_code(self.defect_codes, fd.defect_code)
        loc = find_location(self.locations, fd.location)
        char = self._resolve_full_defect_characteristic(fd.characteristic)
        if code is None or loc is None or char is None:
            self.error("Invalid defect or location in full defect barcode")
            return
        entry = DefectEntry(defect_code_id=code.id, characteristic_id=char.id, location_id=loc.id,
                            defect_code_name=code.name, characteristic_name=char.name,
                            location_name=loc.name)
        state = self.state
        self._set_state(replace(state, defects=state.defects + (entry,)))
        self.success(f"Defect added: {code.name} @ {loc.name}")

    def clear_defects(self):
        state = self.state
        if not isinstance(state, AwaitingDefects):
            self.reject()
            return
        self._set_state(replace(state, defects=(), pending=state.pending.cleared()))
        self.success("Defects cleared")

    def remove_defect(self, index: int):
        state = self.state
        if isinstance(state, AwaitingDefects) and 0 <= index < len(state.defects):
            defects = state.defects[:index] + state.defects[index + 1:]
            self._set_state(replace(state, defects=defects))

    def add_manual_defect(self, defect_code_id: str, location_id: str, characteristic_id: str = ""):
        """수동 불량 입력도 스캔과 같은 미완성 입력 완성 과정을 거칩니다."""
        state = self.state
        if not isinstance(state, AwaitingDefects):
            self.reject()
            return
        code = find_defect_code(self.defect_codes, defect_code_id)
        loc = find_location(self.locations, location_id)
        pending = state.pending
        if code is not None:
            pending = pending.with_defect_code(code.id, code.name)
        if loc is not None:
            pending = pending.with_location(loc.id, loc.name)
        if characteristic_id:
            char = find_characteristic(self.characteristics, characteristic_id)
            if char is not None:
                pending = pending.with_characteristic(char.id, char.name)
        self._update_pending(pending)

    # #################################################################
    # # 서버 호출
    # #################################################################

    def load_subject(self, serial: str):
        raise NotImplementedError

    def _enter_defects(self, record_key: str, tank_size: Optional[int], message: str):
        self._set_state(AwaitingDefects(record_key=record_key, tank_size=tank_size,
                                        pending=PendingDefectEntry(required=self.REQUIRED_FIELDS)))
        self.success(message)

    def save(self):
        state = self.state
        if not isinstance(state, AwaitingDefects):
            self.reject()
            return
        pending = state.pending
        if pending.is_partial:
            missing = [FIELD_LABELS[f] for f in pending.required if not getattr(pending, f)]
            self.error(f"Incomplete defect entry - add {' and '.join(missing)} or clear")
            return

        session = self.session
        defects = state.defects

        def saved(record_id):
            if defects:
                self.success(f"Inspection saved with {len(defects)} defect(s)")
            else:
                self.success(CLEAN_PASS_MESSAGE)
            self.history_changed()
            self._set_state(WaitingForShell())

        self._call('inspection_record',
                   lambda: self.api.create_inspection_record(
                       serial_number=state.record_key,
                       work_center_id=session.work_center_id,
                       operator_id=session.operator_id,
                       defects=list(defects)),
                   saved, "Failed to save inspection record")

    # #################################################################
    # # 화면 정보
    # #################################################################

    def status_text(self) -> str:
        state = self.state
        if isinstance(state, WaitingForShell):
            return "Scan a shell label to begin"
        pending = state.pending
        if pending.is_partial:
            have = [f"{FIELD_LABELS[f]}: {getattr(pending, f.replace('_id', '_name')) or getattr(pending, f)}"
                    for f in pending.required if getattr(pending, f)]
            return "Pending defect - " + ", ".join(have)
        return "Scan defects, then Save (S;1). Save with no defects is a clean pass."

    def entry_prompt(self) -> Optional[str]:
        return "Shell serial number" if isinstance(self.state, WaitingForShell) else None

    def manual_actions(self):
        if not isinstance(self.state, AwaitingDefects):
            return []
        return [Action("Save", lambda: self.inject(Prefix.SAVE, "1")),
                Action("Clear", lambda: self.inject(Prefix.CLEAR, "1"))]

    def list_view(self):
        state = self.state
        if not isinstance(state, AwaitingDefects):
            return None
        items = []
        for index, d in enumerate(state.defects):
            label = f"{d.defect_code_name} / {d.characteristic_name} / {d.location_name}"
            items.append((label, lambda i=index: self.remove_defect(i)))
        return ListView("Defects", tuple(items), empty_text="No defects")

    def _defect_form_fields(self) -> List[FormField]:
        return [
            FormField('defect_code_id', "Defect Code",
                      tuple((c.id, f"{c.code} {c.name}") for c in self.defect_codes), required=True),
            FormField('location_id', "Location",
                      tuple((l.id, f"{l.code} {l.name}") for l in self.locations), required=True),
        ]

    def form(self) -> Optional[FormSpec]:
        if not isinstance(self.state, AwaitingDefects):
            return None

        def submit(values: dict):
            self.add_manual_defect(values.get('defect_code_id', ''), values.get('location_id', ''),
                                   values.get('characteristic_id', ''))

        return FormSpec("Add Defect", tuple(self._defect_form_fields()), submit)


class LongSeamInspectionMachine(InspectionMachine):
    """Long Seam 검사: 특성을 스캔하지 않으면 작업장의 첫 번째 특성으로 간주합니다."""
    TITLE = "Long Seam Inspection"
    ABSTRACT = False
    HANDLES = frozenset({Prefix.SCAN, Prefix.DEFECT, Prefix.LOCATION, Prefix.FULL_DEFECT,
                         Prefix.SAVE, Prefix.CLEAR, Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)
    REQUIRED_FIELDS = ('defect_code_id', 'location_id')
    SUBJECT = "shell"

    @property
    def assumed_characteristic(self) -> Optional[Characteristic]:
        return self.characteristics[0] if self.characteristics else None

    def _resolve_full_defect_characteristic(self, token: str) -> Optional[Characteristic]:
        return find_characteristic(self.characteristics, token) or self.assumed_characteristic

    def load_subject(self, serial: str):
        self._call('serial_context', lambda: self.api.lookup_serial_context(serial),
                   lambda ctx: self._enter_defects(serial, ctx.tank_size, f"Shell {serial} loaded"),
                   "Failed to load shell")

    def details(self):
        state = self.state
        if isinstance(state, AwaitingDefects):
            return [("Serial Number", state.record_key), ("Tank Size", str(state.tank_size or ""))]
        return []


class RoundSeamInspectionMachine(InspectionMachine):
    """Round Seam 검사: 불량 코드, 특성, 위치가 모두 필요합니다. 기록 대상은 조립 알파 코드입니다."""
    TITLE = "Round Seam Inspection"
    ABSTRACT = False
    HANDLES = frozenset({Prefix.SCAN, Prefix.DEFECT, Prefix.LOCATION, Prefix.CHARACTERISTIC,
                         Prefix.FULL_DEFECT, Prefix.SAVE, Prefix.CLEAR, Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)
    REQUIRED_FIELDS = ('defect_code_id', 'characteristic_id', 'location_id')
    SUBJECT = "assembly"
    LOCATION_CHARACTERISTIC_SEPARATOR = ';C;'

    def apply_location(self, token: str):
        # L;LOC;C;CHAR 형식은 위치와 특성을 함께 지정합니다.
        location_token, _, char_token = token.partition(self.LOCATION_CHARACTERISTIC_SEPARATOR)
        loc = find_location(self.locations, location_token)
        if loc is None:
            self.error("Location not applicable at this work center")
            return
        pending = self.state.pending.with_location(loc.id, loc.name)
        if char_token:
            char = find_characteristic(self.characteristics, char_token)
            if char is not None:
                pending = pending.with_characteristic(char.id, char.name)
        self._update_pending(pending)

    def apply_characteristic(self, token: str):
        char = find_characteristic(self.characteristics, token)
        if char is None:
            self.error("Characteristic not applicable at this work center")
            return
        self._update_pending(self.state.pending.with_characteristic(char.id, char.name))

    def load_subject(self, serial: str):
        def loaded(assembly):
            self._enter_defects(assembly.alpha_code, assembly.tank_size,
                                f"Assembly {assembly.alpha_code} loaded")

        self._call('assembly_lookup', lambda: self.api.lookup_assembly_by_shell(serial),
                   loaded, "Shell is not part of any assembly")

    def details(self):
        state = self.state
        if isinstance(state, AwaitingDefects):
            return [("Assembly", state.record_key), ("Tank Size", str(state.tank_size or ""))]
        return []

    def _defect_form_fields(self) -> List[FormField]:
        fields = super()._defect_form_fields()
        fields.insert(1, FormField('characteristic_id', "Characteristic",
                                   tuple((c.id, c.name) for c in self.characteristics), required=True))
        return fields
