"""MES 서버 클라이언트 테스트"""

import unittest
import datetime
import sys
import os
from unittest.mock import MagicMock

import requests

# 상위 디렉토리의 모듈들을 import 하기 위해 경로 추가
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.api_client import MesApiClient
from core.models import DefectEntry
from utils.exceptions import ApiError, NetworkError


BASE_URL = "http://mes.local/api"


def make_response(status_code=200, body=None, content=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if body is not None:
        response.json.return_value = body
        response.content = b'{}' if content is None else content
    else:
        response.json.side_effect = ValueError("no json")
        response.content = b'' if content is None else content
    return response


class TestMesApiClient(unittest.TestCase):
    """MesApiClient 요청/오류 처리 테스트"""

    def setUp(self):
        self.http = MagicMock()
        self.http.headers = {}
        self.client = MesApiClient(BASE_URL + "/", token="secret", timeout=5, session=self.http)

    def test_token_header(self):
        self.assertEqual(self.http.headers['Authorization'], "Bearer secret")
        self.client.set_token("")
        self.assertNotIn('Authorization', self.http.headers)

    def test_lookup_serial_context_encodes_path(self):
        self.http.request.return_value = make_response(body={'serialNumber': "A/1", 'tankSize': 250})

        ctx = self.client.lookup_serial_context("A/1")

        self.http.request.assert_called_once_with(
            'GET', f"{BASE_URL}/serial-numbers/A%2F1/context", json=None, timeout=5)
        self.assertEqual(ctx.tank_size, 250)

    def test_error_message_from_server(self):
        self.http.request.return_value = make_response(404, {'message': "Serial number not found", 'code': "NF"})

        with self.assertRaises(ApiError) as cm:
            self.client.lookup_serial_context("X")
        self.assertEqual(str(cm.exception), "Serial number not found")
        self.assertEqual(cm.exception.status, 404)
        self.assertEqual(cm.exception.code, "NF")

    def test_error_title_fallback(self):
        self.http.request.return_value = make_response(400, {'title': "Bad Request", 'status': 400})

        with self.assertRaises(ApiError) as cm:
            self.client.advance_material_queue("wc-1")
        self.assertEqual(str(cm.exception), "Bad Request")
        self.assertEqual(cm.exception.code, "400")

    def test_error_without_json_body(self):
        self.http.request.return_value = make_response(500, content=b'oops')

        with self.assertRaises(ApiError) as cm:
            self.client.get_welders("wc-1")
        self.assertEqual(str(cm.exception), "Request failed with status 500")

    def test_transport_failure_raises_network_error(self):
        self.http.request.side_effect = requests.exceptions.ConnectionError("refused")

        with self.assertRaises(NetworkError):
            self.client.report_fault("wc-1", "Motor stopped")

    def test_no_content_returns_none(self):
        self.http.request.return_value = make_response(204)

        self.assertIsNone(self.client.delete_material_queue_item("wc-1", "q-1"))
        self.http.request.assert_called_once_with(
            'DELETE', f"{BASE_URL}/workcenters/wc-1/material-queue/q-1", json=None, timeout=5)

    def test_production_record_omits_empty_optional_fields(self):
        self.http.request.return_value = make_response(201, {'id': "r1", 'warning': None})

        result = self.client.create_production_record("S1", "wc-1", "line-1", "op-1", ["w-1"],
                                                      inspection_result='pass')

        body = self.http.request.call_args.kwargs['json']
        self.assertEqual(body['inspectionResult'], 'pass')
        self.assertNotIn('assetId', body)
        self.assertNotIn('heatNumber', body)
        self.assertEqual(body['welderIds'], ["w-1"])
        self.assertIsNone(result.warning)

    def test_inspection_record_sends_defect_list(self):
        self.http.request.return_value = make_response(201, {'id': "ir-1"})

        record_id = self.client.create_inspection_record("S1", "wc-1", "op-1", [])
        self.assertEqual(record_id, "ir-1")
        self.assertEqual(self.http.request.call_args.kwargs['json']['defects'], [])

        self.client.create_inspection_record("S1", "wc-1", "op-1", [DefectEntry("dc", "ch", "loc")])
        self.assertEqual(self.http.request.call_args.kwargs['json']['defects'],
                         [{'defectCodeId': "dc", 'characteristicId': "ch", 'locationId': "loc"}])

    def test_history_query(self):
        self.http.request.return_value = make_response(body={'dayCount': 3, 'recentRecords': []})

        history = self.client.get_history("wc-1", "plant-1", date=datetime.date(2026, 1, 2), asset_id="a-1")

        url = self.http.request.call_args.args[1]
        self.assertEqual(url, f"{BASE_URL}/workcenters/wc-1/history"
                              f"?plantId=plant-1&date=2026-01-02&limit=5&assetId=a-1")
        self.assertEqual(history.day_count, 3)

    def test_material_queue_type_filter(self):
        self.http.request.return_value = make_response(body=[{'id': "q1", 'status': "queued"}])

        items = self.client.get_material_queue("wc-1", 'heads')

        self.assertEqual(self.http.request.call_args.args[1],
                         f"{BASE_URL}/workcenters/wc-1/material-queue?type=heads")
        self.assertEqual(items[0].id, "q1")


if __name__ == '__main__':
    unittest.main()
