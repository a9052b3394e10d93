"""Delivery layer - Cola in-flight y scheduler de reintentos."""

from .queue import DeliveryQueue, DeliveryQueueStats
from .scheduler import RetryScheduler

__all__ = ["DeliveryQueue", "DeliveryQueueStats", "RetryScheduler"]
