from .sink import ClickHouseSink
from .types import ColumnKind, ColumnType, parse_column_type, render_string_default, support_or_not

__all__ = [
    "ClickHouseSink",
    "ColumnKind",
    "ColumnType",
    "parse_column_type",
    "render_string_default",
    "support_or_not",
]
