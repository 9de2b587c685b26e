# Trace Package
from .formats import BranchRecord, TraceFormat, CBPTraceFormat, SimpleTextFormat
from .parser import TraceParser, BranchTrace, TraceInfo, write_text_trace
from .workloads import generate_workload, list_workloads

__all__ = [
    'BranchRecord',
    'TraceFormat',
    'CBPTraceFormat',
    'SimpleTextFormat',
    'TraceParser',
    'BranchTrace',
    'TraceInfo',
    'write_text_trace',
    'generate_workload',
    'list_workloads'
]
