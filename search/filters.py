"""
검색 필터 트리 / 정렬 스펙 정의

- FilterNode: Grouping(AND/OR/NOT) 또는 Condition 두 가지 변형
- SortSpec: 정렬 필드, 방향, 값 타입 ("$shuffle"이면 sort_type은 시드)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


SHUFFLE = "$shuffle"


class GroupType(Enum):
    """그룹 연산 유형"""
    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class Operation(Enum):
    """조건 연산자"""
    EQ = "="
    NEQ = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    CONTAINS = "?"  # 배열 포함 여부


class ValueType(Enum):
    """조건/정렬 값 타입"""
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"


@dataclass(frozen=True)
class Condition:
    """단일 필드 조건 (leaf)"""
    operation: Operation
    property: str
    value_type: ValueType
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "condition": {
                "operation": self.operation.value,
                "property": self.property,
                "type": self.value_type.value,
                "value": self.value,
            }
        }


@dataclass
class Grouping:
    """자식 노드를 AND/OR/NOT으로 묶는 그룹

    자식이 없는 그룹은 어떤 문서도 제외하지 않습니다.
    """
    type: GroupType
    children: List["FilterNode"] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.children

    def add(self, node: "FilterNode") -> "Grouping":
        self.children.append(node)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "children": [child.to_dict() for child in self.children],
        }


FilterNode = Union[Grouping, Condition]


def contains(property_name: str, value: Any) -> Condition:
    """배열 필드 포함 조건"""
    return Condition(Operation.CONTAINS, property_name, ValueType.ARRAY, value)


@dataclass(frozen=True)
class SortSpec:
    """정렬 설정"""
    sort_by: str
    ascending: bool
    sort_type: Optional[Union[ValueType, str]] = None

    @property
    def is_shuffle(self) -> bool:
        return self.sort_by == SHUFFLE

    @property
    def seed(self) -> Optional[str]:
        """셔플 정렬의 시드 (셔플이 아니면 None)"""
        if not self.is_shuffle:
            return None
        return str(self.sort_type)
