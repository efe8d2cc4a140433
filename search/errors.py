"""
Studio Search 예외 클래스
- ES / DB 예외는 감싸지 않고 그대로 전파
- 이 패키지가 직접 감지하는 오류만 정의
"""


class StudioSearchError(Exception):
    """Studio Search 기본 예외"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class IndexNotReadyError(StudioSearchError):
    """검색 가능한 인덱스가 아직 없음"""

    def __init__(self, alias: str = None):
        super().__init__(
            message="Studio index has not been built yet.",
            details={"error_code": "INDEX_NOT_READY", "alias": alias}
        )


class InvalidSliceSizeError(StudioSearchError):
    """잘못된 인덱싱 슬라이스 크기"""

    def __init__(self, slice_size):
        super().__init__(
            message=f"Index slice size must be a positive integer, got {slice_size!r}",
            details={"error_code": "INVALID_SLICE_SIZE", "slice_size": slice_size}
        )
