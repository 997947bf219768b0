"""
Pipeline timing utilities.

Times the read, extract, transform and render stages of a report and warns
about slow ones.
"""
import time
from typing import Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


class StageTimer:
    """
    Context manager timing one pipeline stage.

    Usage:
        with StageTimer("extract", timings):
            extracted = extract_cash_flow(sheet)
    """

    # Threshold for slow stage warning (ms)
    SLOW_STAGE_THRESHOLD_MS = 2000

    def __init__(self, stage: str, timings: Optional[Dict[str, float]] = None):
        self.stage = stage
        self.timings = timings
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
            if self.timings is not None:
                self.timings[self.stage] = self.duration_ms

            if self.duration_ms > self.SLOW_STAGE_THRESHOLD_MS:
                logger.warning("slow_stage", stage=self.stage, duration_ms=self.duration_ms)
            else:
                logger.debug("stage_timing", stage=self.stage, duration_ms=self.duration_ms)

        return False  # Don't suppress exceptions
