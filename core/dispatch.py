"""입력 디스패처 및 서버 호출 실행기 모듈

스캐너(키보드 웨지/HID 장치), 수동 UI 조작, 서버 호출 완료 콜백은 모두
InputDispatcher 의 단일 FIFO 에 들어가고 UI 스레드에서 순서대로 하나씩 끝까지 실행됩니다.
"""

import queue
import threading
from typing import Any, Callable, Optional


class InputDispatcher:
    """UI 스레드에서 입력 이벤트를 순서대로 처리하는 디스패처"""

    def __init__(self, scan_handler: Optional[Callable[[str], None]] = None):
        self._queue = queue.Queue()
        self._scan_handler = scan_handler
        self._scheduler = None
        self._pump_job = None
        self._poll_ms = 50

    def set_scan_handler(self, handler: Optional[Callable[[str], None]]):
        self._scan_handler = handler

    def post(self, fn: Callable, *args):
        """실행할 작업을 큐에 넣습니다. 어느 스레드에서나 호출할 수 있습니다."""
        self._queue.put((fn, args))

    def post_scan(self, line: str):
        """스캐너 한 줄을 큐에 넣습니다."""
        self._queue.put((self._deliver_scan, (line,)))

    def _deliver_scan(self, line: str):
        if self._scan_handler is not None:
            self._scan_handler(line)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self) -> int:
        """큐에 쌓인 작업을 모두 실행하고 실행한 개수를 반환합니다."""
        count = 0
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            fn(*args)
            count += 1

    def start_pump(self, scheduler, poll_ms: int = 50):
        """스케줄러(TkScheduler)로 주기적으로 drain 을 실행합니다."""
        self._scheduler = scheduler
        self._poll_ms = max(int(poll_ms), 10)
        self._schedule_pump()

    def _schedule_pump(self):
        self._pump_job = self._scheduler.schedule(self._poll_ms, self._pump)

    def _pump(self):
        try:
            self.drain()
        finally:
            self._schedule_pump()

    def stop_pump(self):
        if self._scheduler is not None and self._pump_job is not None:
            self._scheduler.cancel(self._pump_job)
        self._pump_job = None


class ImmediateRunner:
    """서버 호출을 즉시 동기 실행합니다. (테스트/스크립트용)"""

    def run(self, call: Callable[[], Any], on_success: Callable[[Any], None],
            on_error: Callable[[Exception], None]):
        try:
            result = call()
        except Exception as e:
            on_error(e)
            return
        on_success(result)


class ThreadedRunner:
    """서버 호출을 작업 스레드에서 실행하고 결과 콜백을 디스패처로 전달합니다."""

    def __init__(self, dispatcher: InputDispatcher):
        self.dispatcher = dispatcher

    def run(self, call: Callable[[], Any], on_success: Callable[[Any], None],
            on_error: Callable[[Exception], None]):
        def worker():
            try:
                result = call()
            except Exception as e:
                # 실패도 UI 스레드에서 처리되도록 디스패처로 넘깁니다.
                self.dispatcher.post(on_error, e)
                return
            self.dispatcher.post(on_success, result)

        threading.Thread(target=worker, daemon=True).start()


class TkScheduler:
    """tkinter after/after_cancel 래퍼"""

    def __init__(self, root):
        self.root = root

    def schedule(self, delay_ms: int, callback: Callable[[], None]):
        return self.root.after(int(delay_ms), callback)

    def cancel(self, job):
        if job:
            self.root.after_cancel(job)
