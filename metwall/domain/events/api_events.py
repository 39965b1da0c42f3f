"""Domain Events related to outbound calls and resilience.

Examples include events for when calls are admitted by the scheduler,
retried, fail, or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Callable, Optional

@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass

# Listener signature accepted by the scheduler and the retry service
EventListener = Callable[[DomainEvent], None]

# --- Specific API Events ---

@dataclass
class OperationAdmitted(DomainEvent):
    """Event triggered when the scheduler starts an operation."""
    started_at: float  # Scheduler clock reading at admission
    active: int        # In-flight operations, including this one
    pending: int       # Operations still queued
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an outbound call succeeds."""
    url: str
    attempts: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an outbound call fails definitively (after retries)."""
    url: str
    attempts: int
    error_type: str
    error_message: str
    status: Optional[int] = None
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed call."""
    url: str
    attempt_number: int  # The attempt that just failed
    delay_seconds: float
    status: Optional[int] = None
    timestamp: float = field(default_factory=time.time)
