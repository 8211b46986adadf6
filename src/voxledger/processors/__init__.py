"""Processors for completed records.

:class:`~voxledger.processors.router.ProcessorRouter` dispatches a
complete draft to the Transaction, Attendance or Reminder processor, and
query slots to the Query processor.
"""

from voxledger.processors.base import Processor, RouteResult
from voxledger.processors.router import ProcessorRouter, default_processors

__all__ = ["Processor", "ProcessorRouter", "RouteResult", "default_processors"]
