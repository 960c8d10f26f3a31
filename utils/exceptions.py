"""커스텀 예외 클래스들

작업장 상태 머신은 MesError 계열 예외의 메시지를 그대로 작업자 화면에 표시합니다.
"""

from typing import Optional


class MesError(Exception):
    """생산 라인 단말기의 기본 예외 클래스"""
    pass


class ConfigurationError(MesError):
    """config.json 값이나 스캐너 장치 설정이 잘못되었을 때"""
    pass


class NetworkError(MesError):
    """서버에 도달하지 못함 (연결 실패, 타임아웃, 응답 해석 불가)"""
    pass


class ApiError(MesError):
    """서버가 요청을 거부했을 때 발생하는 오류

    status 는 HTTP 상태 코드, code 는 서버가 돌려준 오류 코드(있을 경우)입니다.
    """

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    def __str__(self):
        return self.message
