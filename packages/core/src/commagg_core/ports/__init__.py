from .background_worker import IBackgroundWorker
from .log_store import ILogStore
from .messaging import IDelivery, IMessageConsumer, IMessagePublisher
from .record_store import IRecordStore

__all__ = [
    "IBackgroundWorker",
    "IDelivery",
    "ILogStore",
    "IMessageConsumer",
    "IMessagePublisher",
    "IRecordStore",
]
