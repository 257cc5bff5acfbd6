"""
Segment assembly: runs in, scored drafts out.
"""

from __future__ import annotations

import logging

from tripmemories.domain.models import ClusterDraft, Home
from tripmemories.vacation.days.base import Days
from tripmemories.vacation.runs import RunDetector
from tripmemories.vacation.scoring import VacationScoreCalculator

logger = logging.getLogger(__name__)


class VacationSegmentAssembler:
    def __init__(self, run_detector: RunDetector, score_calculator: VacationScoreCalculator):
        self._runs = run_detector
        self._scores = score_calculator

    def detect_segments(self, days: Days, home: Home) -> list[ClusterDraft]:
        drafts: list[ClusterDraft] = []
        runs = self._runs.detect_vacation_runs(days, home)
        for run in runs:
            draft = self._scores.build_draft(run, days, home)
            if draft is not None:
                drafts.append(draft)
        logger.info("Assembled %d draft(s) from %d run(s)", len(drafts), len(runs))
        return drafts
