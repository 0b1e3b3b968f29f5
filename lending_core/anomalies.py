"""
Data Quality Module

Non-fatal anomalies found while reading loans, payments and advances.
Anomalies are normalized to a safe default by the code that finds them and
reported back to the caller as values; they are never raised.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger("lending_core.anomalies")


class AnomalyKind(Enum):
    """Kinds of data-quality anomalies"""
    INVALID_DATE = "invalid_date"                  # Date could not be parsed, today was used
    MISSING_AMOUNT = "missing_amount"              # Payment without amount, excluded
    NON_POSITIVE_AMOUNT = "non_positive_amount"    # Payment amount <= 0, excluded
    MISSING_PRINCIPAL = "missing_principal"        # Principal portion missing, counted as zero
    MISSING_INTEREST = "missing_interest"          # Interest portion missing, counted as zero
    CURRENCY_MISMATCH = "currency_mismatch"        # Payment currency differs from loan, excluded
    MISSING_SCHEDULE_FIELD = "missing_schedule_field"  # Schedule field missing, estimate used


@dataclass(frozen=True)
class DataQualityIssue:
    """A single anomaly tied to the entity and field it was found on"""
    kind: AnomalyKind
    entity_type: str
    entity_id: str
    field: str
    message: str
    raw_value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logs and UI warnings"""
        return {
            'kind': self.kind.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'field': self.field,
            'message': self.message,
            'raw_value': self.raw_value,
        }


def report_issue(
    kind: AnomalyKind,
    entity_type: str,
    entity_id: str,
    field: str,
    message: str,
    raw_value: Any = None
) -> DataQualityIssue:
    """Build an issue and log it at WARNING"""
    issue = DataQualityIssue(
        kind=kind,
        entity_type=entity_type,
        entity_id=entity_id,
        field=field,
        message=message,
        raw_value=None if raw_value is None else str(raw_value),
    )
    logger.warning(
        f"{entity_type} {entity_id}: {message}",
        extra={'entity_type': entity_type, 'entity_id': entity_id,
               'action': kind.value},
    )
    return issue


def dedupe_issues(issues: List[DataQualityIssue]) -> List[DataQualityIssue]:
    """Drop repeated issues, keeping first-seen order"""
    seen = set()
    unique = []
    for issue in issues:
        if issue not in seen:
            seen.add(issue)
            unique.append(issue)
    return unique
