"""
Alerting Package.

Threshold alerts with cooldown and hysteresis, delivered
through a chat webhook.
"""

from .base import AlertOptions, ThresholdAlert
from .evaluators import ScalingAlert, SessionsAlert
from .notifier import WebhookNotifier
from .service import AlertsService

__all__ = [
    "AlertOptions",
    "ThresholdAlert",
    "ScalingAlert",
    "SessionsAlert",
    "WebhookNotifier",
    "AlertsService",
]
