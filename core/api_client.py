"""MES 서버 HTTP 클라이언트 모듈

모든 협력 서비스 호출은 이 클래스를 거칩니다. 서버가 요청을 거부하면 ApiError,
서버에 도달하지 못하면 NetworkError 를 발생시킵니다.
"""

import datetime
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import requests

from core.models import (
    AssemblyLookup, AssemblyResult, Characteristic, DefectCode, DefectEntry,
    DefectLocation, HistoryData, HydroRecordResult, KanbanCard, MaterialLot,
    NameplateInfo, Product, ProductionRecordResult, QueueItem, RoundSeamSetup,
    SerialContext, Vendor, Welder,
)
from utils.exceptions import ApiError, NetworkError


def _seg(value: str) -> str:
    """URL 경로 조각을 인코딩합니다."""
    return quote(str(value), safe='')


class MesApiClient:
    """MES 서버와 JSON 으로 통신하는 클라이언트"""

    def __init__(self, base_url: str, token: str = "", timeout: float = 10,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        self.set_token(token)

    def set_token(self, token: Optional[str]):
        """인증 토큰을 설정합니다. 빈 값이면 헤더를 제거합니다."""
        if token:
            self.session.headers['Authorization'] = f"Bearer {token}"
        else:
            self.session.headers.pop('Authorization', None)

    # #################################################################
    # # 공통 요청 처리
    # #################################################################

    def _request(self, method: str, path: str, body: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Unable to reach server: {e}") from e

        if not response.ok:
            raise self._error_from_response(response)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError("Invalid response from server", status=response.status_code) from e

    @staticmethod
    def _error_from_response(response: requests.Response) -> ApiError:
        fallback = f"Request failed with status {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            return ApiError(fallback, status=response.status_code)

        if not isinstance(body, dict):
            return ApiError(fallback, status=response.status_code)
        message = body.get('message') or body.get('title') or fallback
        code = body.get('code')
        if code is None and body.get('status') is not None:
            code = str(body['status'])
        return ApiError(message, status=response.status_code, code=code)

    def _get(self, path: str) -> Any:
        return self._request('GET', path)

    def _post(self, path: str, body: Any = None) -> Any:
        return self._request('POST', path, body)

    def _put(self, path: str, body: Any = None) -> Any:
        return self._request('PUT', path, body)

    def _delete(self, path: str) -> Any:
        return self._request('DELETE', path)

    # #################################################################
    # # 시리얼 / 자재
    # #################################################################

    def lookup_serial_context(self, serial: str) -> SerialContext:
        return SerialContext.from_api(self._get(f"/serial-numbers/{_seg(serial)}/context"))

    def lookup_kanban_card(self, card_id: str) -> KanbanCard:
        return KanbanCard.from_api(card_id, self._get(f"/material-queue/card/{_seg(card_id)}"))

    def advance_material_queue(self, work_center_id: str) -> MaterialLot:
        return MaterialLot.from_api(self._post(f"/workcenters/{work_center_id}/queue/advance"))

    def get_material_queue(self, work_center_id: str, queue_type: Optional[str] = None) -> List[QueueItem]:
        path = f"/workcenters/{work_center_id}/material-queue"
        if queue_type:
            path += f"?type={_seg(queue_type)}"
        return [QueueItem.from_api(item) for item in self._get(path) or []]

    def add_material_queue_item(self, work_center_id: str, item: Dict[str, Any]) -> QueueItem:
        return QueueItem.from_api(self._post(f"/workcenters/{work_center_id}/material-queue", item))

    def update_material_queue_item(self, work_center_id: str, item_id: str, changes: Dict[str, Any]) -> QueueItem:
        return QueueItem.from_api(
            self._put(f"/workcenters/{work_center_id}/material-queue/{item_id}", changes))

    def delete_material_queue_item(self, work_center_id: str, item_id: str):
        self._delete(f"/workcenters/{work_center_id}/material-queue/{item_id}")

    def add_fitup_queue_item(self, work_center_id: str, item: Dict[str, Any]) -> QueueItem:
        return QueueItem.from_api(self._post(f"/workcenters/{work_center_id}/fitup-queue", item))

    def update_fitup_queue_item(self, work_center_id: str, item_id: str, changes: Dict[str, Any]) -> QueueItem:
        return QueueItem.from_api(
            self._put(f"/workcenters/{work_center_id}/fitup-queue/{item_id}", changes))

    def delete_fitup_queue_item(self, work_center_id: str, item_id: str):
        self._delete(f"/workcenters/{work_center_id}/fitup-queue/{item_id}")

    def get_xray_queue(self, work_center_id: str) -> List[QueueItem]:
        return [QueueItem.from_api(item) for item in self._get(f"/workcenters/{work_center_id}/xray-queue") or []]

    def add_xray_queue_item(self, work_center_id: str, serial_number: str, operator_id: str) -> QueueItem:
        body = {'serialNumber': serial_number, 'operatorId': operator_id}
        return QueueItem.from_api(self._post(f"/workcenters/{work_center_id}/xray-queue", body))

    def remove_xray_queue_item(self, work_center_id: str, item_id: str):
        self._delete(f"/workcenters/{work_center_id}/xray-queue/{item_id}")

    def get_products(self, product_type: Optional[str] = None, plant_id: Optional[str] = None) -> List[Product]:
        params = []
        if product_type:
            params.append(f"type={_seg(product_type)}")
        if plant_id:
            params.append(f"plantId={_seg(plant_id)}")
        query = f"?{'&'.join(params)}" if params else ""
        return [Product.from_api(p) for p in self._get(f"/products{query}") or []]

    def get_vendors(self, vendor_type: Optional[str] = None, plant_id: Optional[str] = None) -> List[Vendor]:
        params = []
        if vendor_type:
            params.append(f"type={_seg(vendor_type)}")
        if plant_id:
            params.append(f"plantId={_seg(plant_id)}")
        query = f"?{'&'.join(params)}" if params else ""
        return [Vendor.from_api(v) for v in self._get(f"/vendors{query}") or []]

    # #################################################################
    # # 생산 / 검사 기록
    # #################################################################

    def create_production_record(self, serial_number: str, work_center_id: str, production_line_id: str,
                                 operator_id: str, welder_ids: Sequence[str], asset_id: Optional[str] = None,
                                 inspection_result: Optional[str] = None, shell_size: Optional[str] = None,
                                 heat_number: Optional[str] = None,
                                 coil_number: Optional[str] = None) -> ProductionRecordResult:
        body: Dict[str, Any] = {
            'serialNumber': serial_number,
            'workCenterId': work_center_id,
            'productionLineId': production_line_id,
            'operatorId': operator_id,
            'welderIds': list(welder_ids),
        }
        optional = {
            'assetId': asset_id,
            'inspectionResult': inspection_result,
            'shellSize': shell_size,
            'heatNumber': heat_number,
            'coilNumber': coil_number,
        }
        body.update({k: v for k, v in optional.items() if v is not None})
        return ProductionRecordResult.from_api(self._post("/production-records", body))

    def create_inspection_record(self, serial_number: str, work_center_id: str, operator_id: str,
                                 defects: Sequence[DefectEntry]) -> str:
        body = {
            'serialNumber': serial_number,
            'workCenterId': work_center_id,
            'operatorId': operator_id,
            'defects': [d.to_payload() for d in defects],
        }
        data = self._post("/inspection-records", body) or {}
        return data.get('id', '')

    def create_assembly(self, shells: Sequence[str], left_head: KanbanCard, right_head: KanbanCard,
                        tank_size: int, work_center_id: str, production_line_id: str, operator_id: str,
                        welder_ids: Sequence[str], asset_id: Optional[str] = None) -> AssemblyResult:
        body: Dict[str, Any] = {
            'shells': list(shells),
            'leftHeadLotId': left_head.card_id,
            'rightHeadLotId': right_head.card_id,
            'leftHeadHeatNumber': left_head.heat_number,
            'leftHeadCoilNumber': left_head.coil_number,
            'rightHeadHeatNumber': right_head.heat_number,
            'rightHeadCoilNumber': right_head.coil_number,
            'tankSize': tank_size,
            'workCenterId': work_center_id,
            'productionLineId': production_line_id,
            'operatorId': operator_id,
            'welderIds': list(welder_ids),
        }
        if asset_id:
            body['assetId'] = asset_id
        return AssemblyResult.from_api(self._post("/assemblies", body))

    def reassemble(self, alpha_code: str, shells: Sequence[str], operator_id: str,
                   welder_ids: Sequence[str] = (), left_head: Optional[KanbanCard] = None,
                   right_head: Optional[KanbanCard] = None) -> AssemblyResult:
        body: Dict[str, Any] = {
            'shells': list(shells),
            'operatorId': operator_id,
            'welderIds': list(welder_ids),
        }
        # 헤드를 다시 스캔하지 않았으면 기존 헤드 정보를 유지합니다.
        if left_head is not None:
            body['leftHeadLotId'] = left_head.card_id
            body['rightHeadLotId'] = (right_head or left_head).card_id
        return AssemblyResult.from_api(self._post(f"/assemblies/{_seg(alpha_code)}/reassemble", body))

    def lookup_assembly_by_shell(self, serial: str) -> AssemblyLookup:
        return AssemblyLookup.from_api(self._get(f"/serial-numbers/{_seg(serial)}/assembly"))

    def get_round_seam_setup(self, work_center_id: str) -> Optional[RoundSeamSetup]:
        data = self._get(f"/workcenters/{work_center_id}/round-seam-setup")
        return RoundSeamSetup.from_api(data) if data else None

    def save_round_seam_setup(self, work_center_id: str, setup: RoundSeamSetup) -> RoundSeamSetup:
        data = self._post(f"/workcenters/{work_center_id}/round-seam-setup", setup.to_payload())
        return RoundSeamSetup.from_api(data) if data else setup

    def create_round_seam_record(self, serial_number: str, work_center_id: str, asset_id: Optional[str],
                                 production_line_id: str, operator_id: str) -> ProductionRecordResult:
        body = {
            'serialNumber': serial_number,
            'workCenterId': work_center_id,
            'assetId': asset_id,
            'productionLineId': production_line_id,
            'operatorId': operator_id,
        }
        return ProductionRecordResult.from_api(self._post("/production-records/round-seam", body))

    def get_nameplate_by_serial(self, serial: str) -> NameplateInfo:
        return NameplateInfo.from_api(self._get(f"/nameplate-records/{_seg(serial)}"))

    def create_nameplate_record(self, serial_number: str, product_id: str, work_center_id: str,
                                production_line_id: str, operator_id: str) -> NameplateInfo:
        body = {
            'serialNumber': serial_number,
            'productId': product_id,
            'workCenterId': work_center_id,
            'productionLineId': production_line_id,
            'operatorId': operator_id,
        }
        return NameplateInfo.from_api(self._post("/nameplate-records", body))

    def create_hydro_record(self, assembly_alpha_code: Optional[str], nameplate_serial: str, result: str,
                            work_center_id: str, production_line_id: str, operator_id: str,
                            defects: Sequence[DefectEntry], asset_id: Optional[str] = None) -> HydroRecordResult:
        body: Dict[str, Any] = {
            'assemblyAlphaCode': assembly_alpha_code,
            'nameplateSerialNumber': nameplate_serial,
            'result': result,
            'workCenterId': work_center_id,
            'productionLineId': production_line_id,
            'operatorId': operator_id,
            'defects': [d.to_payload() for d in defects],
        }
        if asset_id:
            body['assetId'] = asset_id
        return HydroRecordResult.from_api(self._post("/hydro-records", body))

    # #################################################################
    # # 기준 정보
    # #################################################################

    def get_defect_codes(self, work_center_id: str) -> List[DefectCode]:
        return [DefectCode.from_api(d) for d in self._get(f"/workcenters/{work_center_id}/defect-codes") or []]

    def get_defect_locations(self, work_center_id: str) -> List[DefectLocation]:
        return [DefectLocation.from_api(d)
                for d in self._get(f"/workcenters/{work_center_id}/defect-locations") or []]

    def get_characteristics(self, work_center_id: str, tank_size: Optional[int] = None) -> List[Characteristic]:
        path = f"/workcenters/{work_center_id}/characteristics"
        if tank_size is not None:
            path += f"?tankSize={tank_size}"
        return [Characteristic.from_api(c) for c in self._get(path) or []]

    def get_locations_by_characteristic(self, characteristic_id: str) -> List[DefectLocation]:
        return [DefectLocation.from_api(d)
                for d in self._get(f"/characteristics/{_seg(characteristic_id)}/locations") or []]

    # #################################################################
    # # 작업장 (용접사, 이력, 고장)
    # #################################################################

    def get_welders(self, work_center_id: str) -> List[Welder]:
        return [Welder.from_api(w) for w in self._get(f"/workcenters/{work_center_id}/welders") or []]

    def add_welder(self, work_center_id: str, employee_number: str) -> Welder:
        return Welder.from_api(
            self._post(f"/workcenters/{work_center_id}/welders", {'employeeNumber': employee_number}))

    def remove_welder(self, work_center_id: str, user_id: str):
        self._delete(f"/workcenters/{work_center_id}/welders/{_seg(user_id)}")

    def get_history(self, work_center_id: str, plant_id: str, date: Optional[datetime.date] = None,
                    asset_id: Optional[str] = None, limit: int = 5) -> HistoryData:
        day = (date or datetime.date.today()).isoformat()
        path = (f"/workcenters/{work_center_id}/history"
                f"?plantId={_seg(plant_id)}&date={day}&limit={limit}")
        if asset_id:
            path += f"&assetId={_seg(asset_id)}"
        return HistoryData.from_api(self._get(path) or {})

    def report_fault(self, work_center_id: str, description: str):
        self._post(f"/workcenters/{work_center_id}/faults", {'description': description})
