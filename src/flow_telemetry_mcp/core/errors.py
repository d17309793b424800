from __future__ import annotations
from typing import List, Optional

from .models import FlowRecord


class FlowCollectionError(Exception):
    """
    Base class for errors raised by collector capabilities.
    """


class CollectionFailed(FlowCollectionError):
    """
    The telemetry source was unreachable, or produced nothing parseable.

    Fatal to the run. The CLI reports it on stderr and exits non-zero.
    """


class CollectionCancelled(FlowCollectionError):
    """
    The operator stopped collection before the window elapsed.

    flows
      Whatever was collected before the stop. Still analyzed and reported,
      labeled as a partial window.
    """

    def __init__(self, flows: Optional[List[FlowRecord]] = None, message: str = "collection cancelled"):
        super().__init__(message)
        self.flows: List[FlowRecord] = list(flows or [])
