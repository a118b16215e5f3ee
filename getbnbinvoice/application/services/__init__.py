"""Application services shared by the download use cases."""

from .credit_preflight import preflight_credit_check
from .event_emitter import EventEmitter
from .retry import run_with_retry

__all__ = ["EventEmitter", "preflight_credit_check", "run_with_retry"]
