from lineclient.models.object import ConnectionState, HostTarget

__all__ = ["ConnectionState", "HostTarget"]
