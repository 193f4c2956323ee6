"""三连完成类型定义 - 同值组 / 升序连 / 降序连"""

from enum import Enum


class CompletionType(str, Enum):
    """三连完成类型枚举"""
    SET = "SET"                 # 三值相同
    ASCENDING = "ASCENDING"     # 上→下 每次 +1
    DESCENDING = "DESCENDING"   # 上→下 每次 -1
