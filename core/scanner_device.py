"""HID 바코드 스캐너 직접 입력 모듈 (evdev)

스캐너 장치를 독점(grab)하여 키 이벤트를 줄 단위 문자열로 조립하고, Enter 마다
한 줄을 디스패처로 보냅니다. 이 방식에서는 화면의 키보드 포커스가 필요하지 않습니다.
"""

import threading
import time
from typing import Callable, Optional

try:
    import evdev
    from evdev import ecodes, InputDevice
    EVDEV_AVAILABLE = True
except ImportError:
    evdev = None
    ecodes = None
    InputDevice = None
    EVDEV_AVAILABLE = False

from utils.exceptions import ConfigurationError


SCANNER_NAME_KEYWORDS = ("scanner", "barcode", "honeywell", "symbol", "zebra", "datalogic")


def _build_key_maps():
    key_map = {f"KEY_{i}": str(i) for i in range(10)}
    key_map.update({
        "KEY_MINUS": "-", "KEY_EQUAL": "=", "KEY_SPACE": " ", "KEY_COMMA": ",",
        "KEY_DOT": ".", "KEY_SLASH": "/", "KEY_SEMICOLON": ";", "KEY_APOSTROPHE": "'",
        "KEY_LEFTBRACE": "[", "KEY_RIGHTBRACE": "]", "KEY_BACKSLASH": "\\",
    })
    key_map.update({f"KEY_{chr(c)}": chr(c + 32) for c in range(ord('A'), ord('Z') + 1)})

    shift_map = dict(zip([f"KEY_{i}" for i in "1234567890"], "!@#$%^&*()"))
    shift_map.update({
        "KEY_MINUS": "_", "KEY_EQUAL": "+", "KEY_LEFTBRACE": "{", "KEY_RIGHTBRACE": "}",
        "KEY_BACKSLASH": "|", "KEY_SEMICOLON": ":", "KEY_APOSTROPHE": '"',
        "KEY_COMMA": "<", "KEY_DOT": ">", "KEY_SLASH": "?",
    })
    shift_map.update({f"KEY_{chr(c)}": chr(c) for c in range(ord('A'), ord('Z') + 1)})
    return key_map, shift_map


class LineAssembler:
    """키 이름 스트림을 스캔 문자열로 조립합니다."""

    KEY_MAP, SHIFT_MAP = _build_key_maps()
    SHIFT_KEY_NAMES = ("KEY_LEFTSHIFT", "KEY_RIGHTSHIFT")

    def __init__(self):
        self.buffer = ""
        self.shift_active = False

    def reset(self):
        self.buffer = ""
        self.shift_active = False

    def feed(self, key_name: str, value: int) -> Optional[str]:
        """키 이벤트 하나를 처리합니다. Enter 로 끝난 비어있지 않은 줄이면 반환합니다.

        value: 1=눌림, 0=뗌, 2=반복
        """
        if key_name in self.SHIFT_KEY_NAMES:
            self.shift_active = value != 0
            return None
        if value != 1:
            return None

        if key_name in ("KEY_ENTER", "KEY_KPENTER"):
            line = self.buffer.strip()
            self.buffer = ""
            return line or None

        table = self.SHIFT_MAP if self.shift_active else self.KEY_MAP
        char = table.get(key_name) or self.KEY_MAP.get(key_name)
        if char:
            self.buffer += char
        return None


class ScannerDeviceSource:
    """evdev 장치에서 스캔 줄을 읽어 콜백(보통 InputDispatcher.post_scan)으로 전달합니다."""

    BACKOFF_START_SEC = 0.25
    BACKOFF_MAX_SEC = 10.0

    def __init__(self, on_line: Callable[[str], None], device_path: str = "", logger=None):
        if not EVDEV_AVAILABLE:
            raise ConfigurationError("evdev is not available; use scanner.mode 'wedge' instead")
        self.on_line = on_line
        self.device_path = device_path
        self.logger = logger
        self.device = None
        self.assembler = LineAssembler()
        self._closed = threading.Event()
        self._thread = None

    def _log(self, event_type: str, detail: dict):
        if self.logger:
            self.logger.log_event(event_type, detail)

    def _auto_detect_device(self) -> str:
        """스캐너로 보이는 키보드형 장치를 찾습니다."""
        preferred, keyboard_like = [], []
        for path in evdev.list_devices():
            dev = InputDevice(path)
            try:
                caps = dev.capabilities().get(ecodes.EV_KEY, [])
                if not caps or ecodes.KEY_ENTER not in caps:
                    continue
                name = (dev.name or "").lower()
                if any(keyword in name for keyword in SCANNER_NAME_KEYWORDS):
                    preferred.append(path)
                else:
                    keyboard_like.append(path)
            finally:
                dev.close()

        if preferred:
            return preferred[0]
        if keyboard_like:
            return keyboard_like[0]
        raise ConfigurationError("No barcode scanner found. Set scanner.device_path in config.json")

    def _open_device(self):
        path = self.device_path or self._auto_detect_device()
        self.device = InputDevice(path)
        try:
            # 스캐너 입력이 다른 창으로 새어나가지 않도록 장치를 독점합니다.
            self.device.grab()
        except OSError:
            self._log('SCANNER_GRAB_FAILED', {'device': path})
        self.assembler.reset()
        self._log('SCANNER_CONNECTED', {'device': path, 'name': self.device.name})

    def _close_device(self):
        if self.device is None:
            return
        try:
            self.device.ungrab()
        except OSError as e:
            self._log('SCANNER_UNGRAB_FAILED', {'error': str(e)})
        try:
            self.device.close()
        finally:
            self.device = None

    def start(self):
        """읽기 스레드를 시작합니다."""
        self._open_device()
        self._closed.clear()
        self._thread = threading.Thread(target=self._read_loop, daemon=True)
        self._thread.start()

    def stop(self):
        self._closed.set()
        self._close_device()

    def _read_loop(self):
        backoff = self.BACKOFF_START_SEC
        while not self._closed.is_set():
            try:
                for event in self.device.read_loop():
                    if self._closed.is_set():
                        return
                    if event.type != ecodes.EV_KEY:
                        continue
                    key_name = ecodes.KEY.get(event.code)
                    if isinstance(key_name, list):
                        key_name = key_name[0]
                    line = self.assembler.feed(key_name or "", event.value)
                    if line:
                        self.on_line(line)
                raise OSError("evdev read_loop ended")
            except (OSError, AttributeError) as exc:
                if self._closed.is_set():
                    return
                self._log('SCANNER_ERROR', {'error': str(exc), 'retry_sec': backoff})
                self._close_device()
                time.sleep(backoff)
                backoff = min(backoff * 2.0, self.BACKOFF_MAX_SEC)
                try:
                    self._open_device()
                    backoff = self.BACKOFF_START_SEC
                except (OSError, ConfigurationError) as reopen_exc:
                    self._log('SCANNER_ERROR', {'error': f"reopen failed: {reopen_exc}"})
