from .dispatch import CloudSearchDispatchClient, DispatchClient

__all__ = ["CloudSearchDispatchClient", "DispatchClient"]
