from __future__ import annotations

from dataclasses import dataclass

from parity.common import PrintLogger
from parity.endpoints.base import SupportsQueryExecution
from parity.tools.base import ExecutionTool

from .config import DateRange, SourceConfig


@dataclass
class ReconContext:
    """Everything one fetch task owns; nothing here is shared between sides."""

    source: SourceConfig
    window: DateRange
    tool: ExecutionTool
    endpoint: SupportsQueryExecution
    logger: PrintLogger

    @property
    def label(self) -> str:
        return self.source.label
