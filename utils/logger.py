"""작업 이벤트 로깅 모듈

스캔, 처리 결과, 서버 오류 등 단말기에서 일어난 일을 일자별 CSV 파일에 남깁니다.
파일 쓰기는 큐를 통해 별도 스레드에서 수행되므로 UI 스레드를 막지 않습니다.
"""

import csv
import json
import datetime
import os
import queue
import threading
from typing import Dict, Any, Optional, List, Tuple

from utils.file_handler import daily_log_path, ensure_directory_exists


class EventLogger:
    """이벤트 로깅을 담당하는 클래스

    log_file_path 를 지정하면 그 파일 하나에만 기록합니다. 지정하지 않으면
    log_dir 아래에 작업장 이름과 날짜로 된 파일을 사용하며, 자정이 지나면 새 파일로 넘어갑니다.
    """

    FIELDNAMES = ('timestamp', 'operator', 'event_type', 'detail')
    DEFAULT_OPERATOR = "System"

    def __init__(self, log_dir: str = "logs", work_center_name: str = "",
                 log_file_path: Optional[str] = None):
        self.log_dir = log_dir
        self.work_center_name = work_center_name
        self.fixed_path = log_file_path
        self.operator = ""
        self._pending: "queue.Queue[Optional[Tuple[str, Dict[str, str]]]]" = queue.Queue()
        self._running = True
        self._writer = threading.Thread(target=self._writer_loop, daemon=True)
        self._writer.start()

    def path_for(self, day: datetime.date) -> str:
        if self.fixed_path:
            return self.fixed_path
        return daily_log_path(self.log_dir, self.work_center_name, day)

    @property
    def current_path(self) -> str:
        return self.path_for(datetime.date.today())

    # #################################################################
    # # 기록
    # #################################################################

    def set_operator(self, operator: str):
        """이후 기록되는 로그의 작업자를 설정합니다."""
        self.operator = operator

    def log_event(self, event_type: str, detail: Optional[Dict] = None):
        """이벤트를 로그 큐에 넣습니다."""
        now = datetime.datetime.now()
        row = {
            'timestamp': now.strftime('%Y-%m-%d %H:%M:%S'),
            'operator': self.operator or self.DEFAULT_OPERATOR,
            'event_type': event_type,
            'detail': json.dumps(detail, ensure_ascii=False) if detail else "",
        }
        self._pending.put((self.path_for(now.date()), row))

    def _writer_loop(self):
        """큐에 쌓인 로그를 파일에 쓰는 스레드 함수"""
        while self._running:
            try:
                item = self._pending.get(timeout=1)
            except queue.Empty:
                continue
            try:
                if item is None:
                    break
                self._append_row(*item)
            except OSError as e:
                print(f"Log write error: {e}")
            finally:
                self._pending.task_done()

    def _append_row(self, path: str, row: Dict[str, str]):
        directory = os.path.dirname(path)
        if directory:
            ensure_directory_exists(directory)
        is_new = not os.path.exists(path) or os.path.getsize(path) == 0
        with open(path, mode='a', newline='', encoding='utf-8') as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=self.FIELDNAMES)
            if is_new:
                writer.writeheader()
            writer.writerow(row)

    def flush(self):
        """대기 중인 로그가 모두 기록될 때까지 기다립니다."""
        self._pending.join()

    # #################################################################
    # # 조회 / 종료
    # #################################################################

    def get_todays_logs(self) -> List[Dict[str, Any]]:
        """오늘 기록된 로그를 detail 을 풀어서 반환합니다."""
        today = datetime.date.today().strftime('%Y-%m-%d')
        path = self.current_path
        if not os.path.exists(path):
            return []

        logs = []
        try:
            with open(path, mode='r', encoding='utf-8') as csvfile:
                for row in csv.DictReader(csvfile):
                    if not row['timestamp'].startswith(today):
                        continue
                    try:
                        detail = json.loads(row['detail']) if row['detail'] else {}
                    except json.JSONDecodeError:
                        continue
                    logs.append({
                        'timestamp': row['timestamp'],
                        'operator': row.get('operator', ''),
                        'event_type': row['event_type'],
                        'detail': detail,
                    })
        except OSError as e:
            print(f"Log read error: {e}")
        return logs

    def stop_logger(self):
        """남은 로그를 기록한 뒤 작성 스레드를 종료합니다."""
        self._pending.put(None)  # 종료 신호
        if self._writer.is_alive():
            self._writer.join(timeout=1.0)
        self._running = False
