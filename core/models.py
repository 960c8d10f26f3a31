"""데이터 모델 정의 모듈"""

from dataclasses import dataclass, field, replace
from typing import List, Dict, Optional, Any, Tuple


# #####################################################################
# # 세션 / 결과
# #####################################################################

@dataclass(frozen=True)
class Welder:
    """작업장에 등록된 용접사"""
    user_id: str
    display_name: str = ""
    employee_number: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Welder':
        return cls(
            user_id=data.get('userId', ''),
            display_name=data.get('displayName', ''),
            employee_number=data.get('employeeNumber', ''),
        )


@dataclass(frozen=True)
class WorkCenterSession:
    """상태 머신에 제공되는 작업 환경 정보 (읽기 전용)"""
    work_center_id: str = ""
    work_center_name: str = ""
    asset_id: Optional[str] = None
    production_line_id: str = ""
    production_line_name: str = ""
    plant_id: str = ""
    operator_id: str = ""
    operator_name: str = ""
    material_queue_for_wc_id: Optional[str] = None
    welders: Tuple[Welder, ...] = ()
    external_input: bool = True

    @property
    def welder_ids(self) -> List[str]:
        return [w.user_id for w in self.welders]

    def with_welders(self, welders) -> 'WorkCenterSession':
        return replace(self, welders=tuple(welders))

    def with_external_input(self, flag: bool) -> 'WorkCenterSession':
        return replace(self, external_input=flag)


@dataclass(frozen=True)
class ScanResult:
    """작업자에게 표시되는 처리 결과"""
    kind: str
    message: str

    SUCCESS = 'success'
    ERROR = 'error'

    @property
    def is_success(self) -> bool:
        return self.kind == self.SUCCESS

    @classmethod
    def success(cls, message: str) -> 'ScanResult':
        return cls(cls.SUCCESS, message)

    @classmethod
    def error(cls, message: str) -> 'ScanResult':
        return cls(cls.ERROR, message)


# #####################################################################
# # 불량 입력
# #####################################################################

@dataclass(frozen=True)
class DefectEntry:
    """확정된 불량 관측 기록"""
    defect_code_id: str
    characteristic_id: str
    location_id: str
    defect_code_name: str = ""
    characteristic_name: str = ""
    location_name: str = ""

    def to_payload(self) -> Dict[str, str]:
        return {
            'defectCodeId': self.defect_code_id,
            'characteristicId': self.characteristic_id,
            'locationId': self.location_id,
        }


@dataclass(frozen=True)
class PendingDefectEntry:
    """스캔 순서와 무관하게 채워지는 미완성 불량 입력.

    필드를 직접 바꾸지 않고 with_* 메서드로 새 값을 만들어 통째로 교체합니다.
    required 는 완성에 필요한 필드 이름 목록입니다.
    """
    required: Tuple[str, ...] = ('defect_code_id', 'location_id')
    defect_code_id: Optional[str] = None
    defect_code_name: str = ""
    characteristic_id: Optional[str] = None
    characteristic_name: str = ""
    location_id: Optional[str] = None
    location_name: str = ""

    def with_defect_code(self, code_id: str, name: str = "") -> 'PendingDefectEntry':
        return replace(self, defect_code_id=code_id, defect_code_name=name)

    def with_characteristic(self, char_id: str, name: str = "") -> 'PendingDefectEntry':
        return replace(self, characteristic_id=char_id, characteristic_name=name)

    def with_location(self, location_id: str, name: str = "") -> 'PendingDefectEntry':
        return replace(self, location_id=location_id, location_name=name)

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, f) for f in self.required)

    @property
    def is_complete(self) -> bool:
        return all(getattr(self, f) for f in self.required)

    @property
    def is_partial(self) -> bool:
        return not self.is_empty and not self.is_complete

    def finalize(self, fallback_characteristic: Optional['Characteristic'] = None) -> DefectEntry:
        """완성된 입력을 DefectEntry 로 변환합니다."""
        char_id = self.characteristic_id
        char_name = self.characteristic_name
        if not char_id and fallback_characteristic is not None:
            char_id = fallback_characteristic.id
            char_name = fallback_characteristic.name
        return DefectEntry(
            defect_code_id=self.defect_code_id or "",
            characteristic_id=char_id or "",
            location_id=self.location_id or "",
            defect_code_name=self.defect_code_name,
            characteristic_name=char_name,
            location_name=self.location_name,
        )

    def cleared(self) -> 'PendingDefectEntry':
        return PendingDefectEntry(required=self.required)


# #####################################################################
# # 기준 정보
# #####################################################################

@dataclass(frozen=True)
class DefectCode:
    id: str
    code: str
    name: str = ""
    severity: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'DefectCode':
        return cls(id=data.get('id', ''), code=data.get('code', ''),
                   name=data.get('name', ''), severity=data.get('severity'))


@dataclass(frozen=True)
class DefectLocation:
    id: str
    code: str
    name: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'DefectLocation':
        return cls(id=data.get('id', ''), code=data.get('code', ''), name=data.get('name', ''))


@dataclass(frozen=True)
class Characteristic:
    id: str
    code: str
    name: str = ""
    min_tank_size: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Characteristic':
        return cls(id=data.get('id', ''), code=data.get('code', ''),
                   name=data.get('name', ''), min_tank_size=data.get('minTankSize'))

    def applies_to(self, tank_size: Optional[int]) -> bool:
        if tank_size is None or self.min_tank_size is None:
            return True
        return tank_size >= self.min_tank_size


@dataclass(frozen=True)
class Product:
    id: str
    product_number: str
    tank_size: int = 0
    tank_type: str = ""
    nameplate_number: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Product':
        return cls(
            id=data.get('id', ''),
            product_number=data.get('productNumber', ''),
            tank_size=data.get('tankSize') or 0,
            tank_type=data.get('tankType', ''),
            nameplate_number=data.get('nameplateNumber'),
        )


# #####################################################################
# # 협력 서비스 응답
# #####################################################################

@dataclass(frozen=True)
class ExistingAssembly:
    alpha_code: str
    tank_size: int
    shells: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SerialContext:
    """시리얼 번호 조회 결과"""
    serial_number: str
    tank_size: int
    shell_size: Optional[str] = None
    existing_assembly: Optional[ExistingAssembly] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'SerialContext':
        existing = data.get('existingAssembly')
        return cls(
            serial_number=data.get('serialNumber', ''),
            tank_size=data.get('tankSize') or 0,
            shell_size=data.get('shellSize'),
            existing_assembly=ExistingAssembly(
                alpha_code=existing.get('alphaCode', ''),
                tank_size=existing.get('tankSize') or 0,
                shells=tuple(existing.get('shells') or ()),
            ) if existing else None,
        )


@dataclass(frozen=True)
class MaterialLot:
    """큐에서 꺼낸 현재 작업 자재 (Rolls)"""
    shell_size: str = ""
    heat_number: str = ""
    coil_number: str = ""
    quantity: int = 0
    quantity_completed: int = 0
    product_description: str = ""

    @property
    def remaining(self) -> int:
        return self.quantity - self.quantity_completed

    def consumed_one(self) -> 'MaterialLot':
        return replace(self, quantity_completed=self.quantity_completed + 1)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'MaterialLot':
        return cls(
            shell_size=data.get('shellSize') or "",
            heat_number=data.get('heatNumber', ''),
            coil_number=data.get('coilNumber', ''),
            quantity=data.get('quantity') or 0,
            quantity_completed=data.get('quantityCompleted') or 0,
            product_description=data.get('productDescription', ''),
        )


@dataclass(frozen=True)
class KanbanCard:
    """칸반 카드 조회 결과 (헤드 로트)"""
    card_id: str
    heat_number: str = ""
    coil_number: str = ""
    lot_number: Optional[str] = None
    product_description: str = ""
    card_color: Optional[str] = None
    tank_size: Optional[int] = None

    @classmethod
    def from_api(cls, card_id: str, data: Dict[str, Any]) -> 'KanbanCard':
        return cls(
            card_id=card_id,
            heat_number=data.get('heatNumber', ''),
            coil_number=data.get('coilNumber', ''),
            lot_number=data.get('lotNumber'),
            product_description=data.get('productDescription', ''),
            card_color=data.get('cardColor'),
            tank_size=data.get('tankSize'),
        )


@dataclass(frozen=True)
class ProductionRecordResult:
    id: str
    serial_number: str = ""
    timestamp: str = ""
    warning: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ProductionRecordResult':
        return cls(id=data.get('id', ''), serial_number=data.get('serialNumber', ''),
                   timestamp=data.get('timestamp', ''), warning=data.get('warning'))


@dataclass(frozen=True)
class AssemblyResult:
    id: str
    alpha_code: str
    timestamp: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'AssemblyResult':
        return cls(id=data.get('id', ''), alpha_code=data.get('alphaCode', ''),
                   timestamp=data.get('timestamp', ''))


@dataclass(frozen=True)
class AssemblyLookup:
    alpha_code: str
    tank_size: int
    round_seam_count: int = 0
    shells: Tuple[str, ...] = ()

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'AssemblyLookup':
        return cls(
            alpha_code=data.get('alphaCode', ''),
            tank_size=data.get('tankSize') or 0,
            round_seam_count=data.get('roundSeamCount') or 0,
            shells=tuple(data.get('shells') or ()),
        )


@dataclass(frozen=True)
class RoundSeamSetup:
    tank_size: int
    welder_ids: Tuple[Optional[str], ...] = ()
    is_complete: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'RoundSeamSetup':
        welders = tuple(data.get(f'rs{i}WelderId') for i in range(1, 5))
        # 뒤쪽의 빈 용접사 슬롯은 잘라냅니다.
        while welders and not welders[-1]:
            welders = welders[:-1]
        return cls(tank_size=data.get('tankSize') or 0, welder_ids=welders,
                   is_complete=bool(data.get('isComplete')))

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'tankSize': self.tank_size}
        for i, welder_id in enumerate(self.welder_ids[:4], start=1):
            if welder_id:
                payload[f'rs{i}WelderId'] = welder_id
        return payload


@dataclass(frozen=True)
class NameplateInfo:
    id: str
    serial_number: str
    product_id: str = ""
    tank_size: Optional[int] = None
    timestamp: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'NameplateInfo':
        return cls(id=data.get('id', ''), serial_number=data.get('serialNumber', ''),
                   product_id=data.get('productId', ''), tank_size=data.get('tankSize'),
                   timestamp=data.get('timestamp', ''))


@dataclass(frozen=True)
class HydroRecordResult:
    id: str
    assembly_alpha_code: Optional[str] = None
    nameplate_serial_number: str = ""
    result: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'HydroRecordResult':
        return cls(id=data.get('id', ''), assembly_alpha_code=data.get('assemblyAlphaCode'),
                   nameplate_serial_number=data.get('nameplateSerialNumber', ''),
                   result=data.get('result', ''))


@dataclass(frozen=True)
class QueueItem:
    """자재/헤드/X-ray 큐 항목"""
    id: str
    position: int = 0
    status: str = ""
    product_description: str = ""
    serial_number: str = ""
    heat_number: str = ""
    coil_number: str = ""
    lot_number: Optional[str] = None
    quantity: int = 0
    card_id: Optional[str] = None
    card_color: Optional[str] = None
    product_id: Optional[str] = None
    vendor_mill_id: Optional[str] = None
    vendor_processor_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'QueueItem':
        return cls(
            id=data.get('id', ''),
            position=data.get('position') or 0,
            status=data.get('status', ''),
            product_description=data.get('productDescription', ''),
            serial_number=data.get('serialNumber', ''),
            heat_number=data.get('heatNumber', ''),
            coil_number=data.get('coilNumber', ''),
            lot_number=data.get('lotNumber'),
            quantity=data.get('quantity') or 0,
            card_id=data.get('cardId'),
            card_color=data.get('cardColor'),
            product_id=data.get('productId'),
            vendor_mill_id=data.get('vendorMillId'),
            vendor_processor_id=data.get('vendorProcessorId'),
        )


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    timestamp: str
    serial_or_identifier: str
    tank_size: Optional[int] = None


@dataclass
class HistoryData:
    """작업장의 당일 생산 이력"""
    day_count: int = 0
    recent_records: List[HistoryEntry] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'HistoryData':
        return cls(
            day_count=data.get('dayCount') or 0,
            recent_records=[
                HistoryEntry(
                    id=r.get('id', ''),
                    timestamp=r.get('timestamp', ''),
                    serial_or_identifier=r.get('serialOrIdentifier', ''),
                    tank_size=r.get('tankSize'),
                )
                for r in data.get('recentRecords') or []
            ],
        )


@dataclass(frozen=True)
class Vendor:
    id: str
    name: str
    vendor_type: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Vendor':
        return cls(id=data.get('id', ''), name=data.get('name', ''), vendor_type=data.get('vendorType', ''))
