"""바코드 명령 프로토콜 파서 모듈

스캐너 한 줄은 ``PREFIX;VALUE`` 형식입니다. 접두사는 대소문자를 구분하지 않고
고정된 집합(Prefix)에 속해야 하며, 값은 첫 번째 구분자 이후의 문자열 전체입니다.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


SEPARATOR = ';'


class Prefix(str, Enum):
    """바코드 명령 접두사 (닫힌 집합)"""
    SCAN = "SC"
    DEFECT = "D"
    LOCATION = "L"
    FULL_DEFECT = "FD"
    INPUT = "INP"
    KANBAN_CARD = "KC"
    TANK_SIZE = "TS"
    SAVE = "S"
    CLEAR = "CL"
    CHARACTERISTIC = "C"
    OVERRIDE = "O"
    FAULT = "FLT"
    NO_SHELL = "NOSHELL"


_PREFIX_LOOKUP = {p.value: p for p in Prefix}


class InputValue:
    """INP 명령의 응답 값"""
    SWAP = "1"
    ADVANCE = "2"
    RESET = "2"
    YES = "3"
    PASS = "3"
    SAVE = "3"
    NO = "4"
    FAIL = "4"


LABEL_1 = "L1"
LABEL_2 = "L2"


@dataclass(frozen=True)
class Command:
    """파싱된 스캐너 명령"""
    prefix: Prefix
    value: str
    raw: str


@dataclass(frozen=True)
class ShellLabel:
    """쉘 라벨 값 (SERIAL/L1, SERIAL/L2 또는 접미사 없음)"""
    serial_number: str
    label_suffix: Optional[str] = None


@dataclass(frozen=True)
class FullDefect:
    """CODE-CHARACTERISTIC-LOCATION 형식의 복합 불량 값"""
    defect_code: str
    characteristic: str
    location: str


def parse(raw: Optional[str]) -> Optional[Command]:
    """스캐너 원문을 Command 로 변환합니다. 인식할 수 없으면 None 을 반환합니다."""
    if not isinstance(raw, str):
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None

    prefix_text, sep, value = trimmed.partition(SEPARATOR)
    if not sep:
        return None

    prefix = _PREFIX_LOOKUP.get(prefix_text.upper())
    if prefix is None:
        return None
    return Command(prefix=prefix, value=value, raw=trimmed)


def parse_shell_label(value: str) -> ShellLabel:
    """값 끝의 /L1 또는 /L2 접미사를 분리합니다."""
    for suffix in (LABEL_1, LABEL_2):
        marker = "/" + suffix
        if value.endswith(marker):
            return ShellLabel(serial_number=value[:-len(marker)], label_suffix=suffix)
    return ShellLabel(serial_number=value, label_suffix=None)


def parse_full_defect(value: str) -> Optional[FullDefect]:
    """하이픈으로 구분된 세 부분이 아니면 None 을 반환합니다."""
    parts = value.split('-')
    if len(parts) != 3:
        return None
    return FullDefect(defect_code=parts[0], characteristic=parts[1], location=parts[2])
