"""예외 정의"""


class BioThermError(Exception):
    """biotherm 예외 기본 클래스"""


class InvalidInputTypeError(BioThermError, TypeError):
    """레코드 타입 오류 또는 잘못된 행렬 형태"""


class MissingColumnError(BioThermError, KeyError):
    """요청한 컬럼이 테이블에 없음"""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ''


class UnsupportedMethodError(BioThermError, ValueError):
    """지원하지 않는 알고리즘/방법 이름"""


class EmptyInputError(BioThermError, ValueError):
    """유효 픽셀(비결측값)이 없음"""


class DirectoryNotFoundError(BioThermError, FileNotFoundError):
    """디렉토리 없음"""


class SchemaMismatchError(BioThermError, ValueError):
    """배치 통계 컬럼 구성이 서로 다름"""
