"""
Export stage.

- rows: ExportRow and build_row (record + metadata → row)
- sink: JsonSink and open_sink (row → appended JSON document)
- pipeline: ExportPipeline and RunStats (index walk orchestration)
"""

from .pipeline import ExportPipeline, PipelineState, RunStats
from .rows import ExportRow, build_row
from .sink import JsonSink, open_sink

__all__ = [
    "ExportPipeline",
    "ExportRow",
    "JsonSink",
    "PipelineState",
    "RunStats",
    "build_row",
    "open_sink",
]
