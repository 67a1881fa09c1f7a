"""Domain-level contracts shared by services and infrastructure."""

from .gateway import ChangeAction, ChangeEvent, ChannelHandle, RemoteDataGateway

__all__ = ["ChangeAction", "ChangeEvent", "ChannelHandle", "RemoteDataGateway"]
