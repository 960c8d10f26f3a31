"""Nameplate (명판) 작업장: 판매 제품과 시리얼을 입력해 명판 기록을 생성합니다."""

from dataclasses import dataclass
from typing import List, Optional

from core.barcode import Command, Prefix
from core.models import Product
from workcenters.base import Action, FormField, FormSpec, WorkCenterMachine


@dataclass(frozen=True)
class ReadyForEntry:
    pass


class NameplateMachine(WorkCenterMachine):
    TITLE = "Nameplate"
    HANDLES = frozenset({Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)

    def __init__(self, *args, **kwargs):
        self.products: List[Product] = []
        super().__init__(*args, **kwargs)

    def initial_state(self):
        return ReadyForEntry()

    def on_mount(self):
        self.load_products()

    def load_products(self):
        def loaded(items):
            self.products = list(items)
            self.coordinator.notify_state_changed()

        self._load('products', lambda: self.api.get_products('sellable'), loaded)

    def dispatch(self, command: Command):
        self.reject()

    def save_nameplate(self, product_id: str, serial_number: str):
        serial_number = (serial_number or "").strip()
        if not product_id or not serial_number:
            self.error("Please fill all fields")
            return
        session = self.session

        def saved(result):
            self.success(f"Serial {serial_number} saved. Label printing.")
            self.history_changed()
            self.coordinator.notify_state_changed()

        self._call(
            'nameplate_record',
            lambda: self.api.create_nameplate_record(
                serial_number=serial_number,
                product_id=product_id,
                work_center_id=session.work_center_id,
                production_line_id=session.production_line_id,
                operator_id=session.operator_id,
            ),
            saved, "Failed to save nameplate record")

    def status_text(self) -> str:
        return "Select the tank size/type and enter the serial number"

    def manual_actions(self):
        return [Action("Refresh Products", self.load_products)]

    def form(self) -> Optional[FormSpec]:
        options = tuple((p.id, f"{p.tank_size} {p.tank_type}".strip()) for p in self.products)
        fields = (
            FormField('product_id', "Tank Size/Type", options, required=True),
            FormField('serial_number', "Serial Number", required=True),
        )
        return FormSpec("Nameplate", fields,
                        lambda values: self.save_nameplate(values.get('product_id', ''),
                                                           values.get('serial_number', '')))
