from .backend import BackendError, MasterGymClient, get_backend_client

__all__ = ["BackendError", "MasterGymClient", "get_backend_client"]
