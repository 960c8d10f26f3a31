"""자재 투입 큐 작업장 (Rolls 자재, Fit-up 헤드, RT X-ray)

큐 화면은 용접사가 필요 없으며, 대부분 수동 입력으로 동작합니다.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from core.barcode import Command, Prefix, parse_shell_label
from core.models import Product, QueueItem, Vendor
from workcenters.base import Action, FormField, FormSpec, ListView, WorkCenterMachine


@dataclass(frozen=True)
class QueueField:
    """큐 입력 양식 항목. key 는 서버 요청 본문의 키와 같습니다."""
    key: str
    label: str
    required: bool = False
    source: Optional[str] = None  # 'product' 또는 업체 유형
    numeric: bool = False


@dataclass(frozen=True)
class FormClosed:
    pass


@dataclass(frozen=True)
class FormOpen:
    editing_id: Optional[str] = None
    values: Tuple[Tuple[str, str], ...] = ()

    def get(self, key: str) -> str:
        return dict(self.values).get(key, "")

    def with_value(self, key: str, value: str) -> 'FormOpen':
        values = dict(self.values)
        values[key] = value
        return replace(self, values=tuple(values.items()))


class IntakeQueueMachine(WorkCenterMachine):
    """자재/헤드 큐 공통: 목록 조회, 항목 추가/수정/삭제"""
    ABSTRACT = True
    QUEUE_TYPE: Optional[str] = None
    PRODUCT_TYPE = ""
    VENDOR_TYPES: Tuple[str, ...] = ()
    FIELDS: Tuple[QueueField, ...] = ()
    ADDED_MESSAGE = "Item added to queue"
    REMOVED_MESSAGE = "Item removed"

    def __init__(self, *args, **kwargs):
        self.queue: List[QueueItem] = []
        self.products: List[Product] = []
        self.vendors: Dict[str, List[Vendor]] = {}
        super().__init__(*args, **kwargs)

    def initial_state(self):
        return FormClosed()

    @property
    def target_work_center_id(self) -> str:
        """다른 작업장의 큐를 관리하도록 설정된 경우 그 작업장 ID"""
        session = self.session
        return session.material_queue_for_wc_id or session.work_center_id

    def on_mount(self):
        self.load_queue()
        self.load_lookups()

    def load_queue(self):
        def loaded(items):
            self.queue = [i for i in items if i.status == 'queued']
            self.coordinator.notify_state_changed()

        self._load('queue', lambda: self.api.get_material_queue(self.target_work_center_id, self.QUEUE_TYPE),
                   loaded)

    def load_lookups(self):
        plant_id = self.session.plant_id or None

        def products_loaded(items):
            self.products = list(items)
            self.coordinator.notify_state_changed()

        self._load('products', lambda: self.api.get_products(self.PRODUCT_TYPE, plant_id), products_loaded)
        for vendor_type in self.VENDOR_TYPES:
            def vendors_loaded(items, vendor_type=vendor_type):
                self.vendors[vendor_type] = list(items)
                self.coordinator.notify_state_changed()

            self._load(f'vendors_{vendor_type}',
                       lambda vendor_type=vendor_type: self.api.get_vendors(vendor_type, plant_id),
                       vendors_loaded)

    def dispatch(self, command: Command):
        self.reject()

    # #################################################################
    # # 양식
    # #################################################################

    def open_add(self):
        self._set_state(FormOpen())

    def open_edit(self, item: QueueItem):
        self._set_state(FormOpen(editing_id=item.id, values=tuple(self._values_from_item(item).items())))

    def close_form(self):
        self._set_state(FormClosed())

    def _values_from_item(self, item: QueueItem) -> Dict[str, str]:
        raise NotImplementedError

    def submit_form(self, values: Dict[str, str]):
        state = self.state
        if not isinstance(state, FormOpen):
            self.reject()
            return
        for key, value in values.items():
            state = state.with_value(key, (value or "").strip())
        self._set_state(state)

        if any(f.required and not state.get(f.key) for f in self.FIELDS):
            self.error("Please fill all required fields")
            return

        payload = {}
        for f in self.FIELDS:
            value = state.get(f.key)
            if not value:
                continue
            if f.numeric:
                try:
                    payload[f.key] = int(value)
                except ValueError:
                    self.error(f"{f.label} must be a whole number")
                    return
            else:
                payload[f.key] = value

        target = self.target_work_center_id
        editing_id = state.editing_id

        def saved(item):
            self.success("Queue item updated" if editing_id else self.ADDED_MESSAGE)
            self._set_state(FormClosed())
            self.load_queue()
            self.history_changed()

        if editing_id:
            call = lambda: self._update_item(target, editing_id, payload)
        else:
            call = lambda: self._add_item(target, payload)
        self._call('save_item', call, saved, "Failed to save queue item")

    def remove_item(self, item_id: str):
        target = self.target_work_center_id

        def removed(_):
            self.success(self.REMOVED_MESSAGE)
            if isinstance(self.state, FormOpen) and self.state.editing_id == item_id:
                self._set_state(FormClosed())
            self.load_queue()
            self.history_changed()

        self._call('remove_item', lambda: self._delete_item(target, item_id), removed, "Failed to remove item")

    def _add_item(self, work_center_id: str, payload: dict):
        raise NotImplementedError

    def _update_item(self, work_center_id: str, item_id: str, payload: dict):
        raise NotImplementedError

    def _delete_item(self, work_center_id: str, item_id: str):
        raise NotImplementedError

    # #################################################################
    # # 화면 정보
    # #################################################################

    def _options_for(self, source: Optional[str]) -> Tuple[Tuple[str, str], ...]:
        if source is None:
            return ()
        if source == 'product':
            return tuple((p.id, f"({p.tank_size}) {p.product_number}") for p in self.products)
        return tuple((v.id, v.name) for v in self.vendors.get(source, []))

    def form(self) -> Optional[FormSpec]:
        state = self.state
        if not isinstance(state, FormOpen):
            return None
        fields = tuple(FormField(f.key, f.label, self._options_for(f.source), state.get(f.key), f.required)
                       for f in self.FIELDS)
        title = "Edit Queue Item" if state.editing_id else "Add to Queue"
        return FormSpec(title, fields, self.submit_form, self.close_form)

    def manual_actions(self):
        state = self.state
        if isinstance(state, FormOpen):
            if state.editing_id:
                return [Action("Remove Item", lambda: self.remove_item(state.editing_id))]
            return []
        return [Action("Add", self.open_add), Action("Refresh", self.load_queue)]

    def _item_label(self, item: QueueItem) -> str:
        return f"{item.product_description}  H: {item.heat_number} / C: {item.coil_number}"

    def list_view(self):
        items = tuple((self._item_label(item), lambda item=item: self.open_edit(item)) for item in self.queue)
        return ListView(self.TITLE, items, empty_text="Queue is empty", item_action_label="Edit")


class MaterialQueueMachine(IntakeQueueMachine):
    """Rolls 자재 투입 (강판 코일)"""
    TITLE = "Rolls Material Queue"
    ABSTRACT = False
    HANDLES = frozenset({Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)
    PRODUCT_TYPE = 'plate'
    VENDOR_TYPES = ('mill', 'processor')
    FIELDS = (
        QueueField('productId', "Product", required=True, source='product'),
        QueueField('vendorMillId', "Plate Mill", source='mill'),
        QueueField('vendorProcessorId', "Plate Processor", source='processor'),
        QueueField('heatNumber', "Heat Number", required=True),
        QueueField('coilNumber', "Coil Number", required=True),
        QueueField('lotNumber', "Lot Number"),
        QueueField('quantity', "Quantity", required=True, numeric=True),
    )
    ADDED_MESSAGE = "Material added to queue"
    REMOVED_MESSAGE = "Item removed from queue"

    def _values_from_item(self, item: QueueItem) -> Dict[str, str]:
        return {
            'productId': item.product_id or "",
            'vendorMillId': item.vendor_mill_id or "",
            'vendorProcessorId': item.vendor_processor_id or "",
            'heatNumber': item.heat_number,
            'coilNumber': item.coil_number,
            'lotNumber': item.lot_number or "",
            'quantity': str(item.quantity),
        }

    def _add_item(self, work_center_id, payload):
        return self.api.add_material_queue_item(work_center_id, payload)

    def _update_item(self, work_center_id, item_id, payload):
        return self.api.update_material_queue_item(work_center_id, item_id, payload)

    def _delete_item(self, work_center_id, item_id):
        return self.api.delete_material_queue_item(work_center_id, item_id)

    def _item_label(self, item: QueueItem) -> str:
        return f"{super()._item_label(item)}  Qty: {item.quantity}"


class HeadsQueueMachine(IntakeQueueMachine):
    """Fit-up 헤드 자재 투입. 양식이 열려 있을 때 칸반 카드를 스캔하면 카드 코드가 입력됩니다."""
    TITLE = "Heads Queue"
    ABSTRACT = False
    HANDLES = frozenset({Prefix.KANBAN_CARD, Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)
    QUEUE_TYPE = 'heads'
    PRODUCT_TYPE = 'head'
    VENDOR_TYPES = ('head',)
    FIELDS = (
        QueueField('productId', "Product", required=True, source='product'),
        QueueField('vendorHeadId', "Head Vendor", required=True, source='head'),
        QueueField('lotNumber', "Lot Number"),
        QueueField('heatNumber', "Heat Number"),
        QueueField('coilSlabNumber', "Coil/Slab Number"),
        QueueField('cardCode', "Kanban Card", required=True),
    )
    ADDED_MESSAGE = "Head material added to queue"
    REMOVED_MESSAGE = "Item removed"

    def dispatch(self, command: Command):
        state = self.state
        if command.prefix is Prefix.KANBAN_CARD and isinstance(state, FormOpen):
            self._set_state(state.with_value('cardCode', command.value))
            self.success(f"Card {command.value} scanned")
            return
        self.reject()

    def _values_from_item(self, item: QueueItem) -> Dict[str, str]:
        return {
            'productId': item.product_id or "",
            'lotNumber': item.lot_number or "",
            'heatNumber': item.heat_number,
            'coilSlabNumber': item.coil_number,
            'cardCode': item.card_id or "",
        }

    def _add_item(self, work_center_id, payload):
        return self.api.add_fitup_queue_item(work_center_id, payload)

    def _update_item(self, work_center_id, item_id, payload):
        return self.api.update_fitup_queue_item(work_center_id, item_id, payload)

    def _delete_item(self, work_center_id, item_id):
        return self.api.delete_fitup_queue_item(work_center_id, item_id)

    def status_text(self) -> str:
        if isinstance(self.state, FormOpen):
            return "Scan the kanban card for this head material"
        return ""


# #####################################################################
# # RT X-ray
# #####################################################################

SCAN_SHELL_HINT = "Scan a shell barcode to add to queue"


@dataclass(frozen=True)
class XrayReady:
    pass


class XrayQueueMachine(WorkCenterMachine):
    TITLE = "RT X-ray Queue"
    HANDLES = frozenset({Prefix.SCAN, Prefix.FAULT})
    REJECTS = frozenset(set(Prefix) - HANDLES)

    def __init__(self, *args, **kwargs):
        self.queue: List[QueueItem] = []
        super().__init__(*args, **kwargs)

    def initial_state(self):
        return XrayReady()

    def on_mount(self):
        self.load_queue()

    def load_queue(self):
        def loaded(items):
            self.queue = list(items)
            self.coordinator.notify_state_changed()

        self._load('xray_queue', lambda: self.api.get_xray_queue(self.session.work_center_id), loaded)

    def reject(self, message: str = SCAN_SHELL_HINT):
        super().reject(message)

    def dispatch(self, command: Command):
        self.add_to_queue(parse_shell_label(command.value).serial_number)

    def manual_entry(self, text: str):
        self.add_to_queue(text)

    def add_to_queue(self, serial: str):
        session = self.session

        def added(item):
            self.success(f"Shell {serial} added to queue")
            self.load_queue()

        self._call('add_item',
                   lambda: self.api.add_xray_queue_item(session.work_center_id, serial, session.operator_id),
                   added, "Failed to add to queue")

    def remove_item(self, item_id: str):
        def removed(_):
            self.success("Removed from queue")
            self.load_queue()

        self._call('remove_item',
                   lambda: self.api.remove_xray_queue_item(self.session.work_center_id, item_id),
                   removed, "Failed to remove")

    def status_text(self) -> str:
        return SCAN_SHELL_HINT

    def entry_prompt(self) -> Optional[str]:
        return "Serial number"

    def manual_actions(self):
        return [Action("Refresh", self.load_queue)]

    def list_view(self):
        items = tuple((item.serial_number, lambda item_id=item.id: self.remove_item(item_id))
                      for item in self.queue)
        return ListView("X-ray Queue", items, empty_text="Queue is empty")
