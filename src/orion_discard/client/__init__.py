"""
Station-side flows: service client, cascading selector, record loader and
scan submission.
"""

from .api import DiscardClient, LocalTransport
from .listener import FlowListener, LoggingListener
from .loader import RecordLoader
from .scan_flow import ScanOutcome, ScanResult, ScanState, ScanSubmissionFlow
from .selector import CascadingSelector, ChoiceList, Selection

__all__ = [
    "DiscardClient",
    "LocalTransport",
    "FlowListener",
    "LoggingListener",
    "RecordLoader",
    "CascadingSelector",
    "ChoiceList",
    "Selection",
    "ScanSubmissionFlow",
    "ScanState",
    "ScanOutcome",
    "ScanResult",
]
