"""Tactical checklist evaluation.

Provides the per-criterion checks and the verdict evaluator that maps an
indicator snapshot to BUY / TP / TRAIL / HOLD.
"""

from tactical.signals.checklist import evaluate, evaluate_criteria
from tactical.signals.models import CRITERION_LABELS, ChecklistResult, Criterion, Verdict

__all__ = [
    "CRITERION_LABELS",
    "ChecklistResult",
    "Criterion",
    "Verdict",
    "evaluate",
    "evaluate_criteria",
]
