"""Run the log sink: ``python -m commagg_logsink``."""

from __future__ import annotations

import asyncio
import logging
import signal

from commagg_core.config import Settings
from commagg_messaging.rabbitmq import (
    RabbitMQConnectionManager,
    RabbitMQConsumer,
    declare_topology,
)
from commagg_observability import setup_logging
from commagg_persistence_elasticsearch import ElasticsearchIndexStore
from commagg_persistence_mongo import MongoConnectionManager, MongoLogStore

from .sink import LogSink

logger = logging.getLogger("commagg.logsink")


async def run(settings: Settings) -> None:
    config = settings.sink_config()
    mongo = MongoConnectionManager(
        settings.mongo_url, database=settings.mongo_database
    )
    broker = RabbitMQConnectionManager(settings.broker_url)
    await mongo.connect()
    await broker.connect()
    await declare_topology(
        broker.channel, settings.channels, redelivery_limit=settings.redelivery_limit
    )

    primary = ElasticsearchIndexStore(settings.elastic_url, index=config.index_name)
    secondary = MongoLogStore(mongo)
    await secondary.ensure_indexes()
    consumer = RabbitMQConsumer(broker, prefetch_count=config.prefetch_count)
    sink = LogSink(primary, secondary, consumer, config)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await sink.start()
    try:
        await stop.wait()
    finally:
        await consumer.stop()
        await sink.stop()
        await primary.close()
        await broker.close()
        mongo.close()


def main() -> None:
    settings = Settings()
    setup_logging(settings.log_level, json_format=settings.log_json)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
