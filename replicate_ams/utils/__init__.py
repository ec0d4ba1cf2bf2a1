from .retry import call_with_retry, is_transient

__all__ = ["call_with_retry", "is_transient"]
