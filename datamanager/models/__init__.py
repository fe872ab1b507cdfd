from .data_set import DataSet, DataSetInclude
from .log import Log
from .translation import Translation

__all__ = [
    "DataSet",
    "DataSetInclude",
    "Log",
    "Translation",
]
