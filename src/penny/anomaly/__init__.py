"""
Ingestion-time anomaly detection.

Quick Start:
    >>> from penny.anomaly import AnomalyDetector
    >>> detector = AnomalyDetector()
    >>> detector.is_anomaly(Decimal("75000"), history, all_history)
    True
"""
from penny.anomaly.detector import AnomalyDetector
from penny.config.settings import AnomalySettings

__all__ = [
    "AnomalyDetector",
    "AnomalySettings",
]
