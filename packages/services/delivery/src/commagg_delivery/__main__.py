"""Run one channel worker: ``python -m commagg_delivery <channel>``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from commagg_core.config import Settings
from commagg_messaging.rabbitmq import (
    RabbitMQConnectionManager,
    RabbitMQConsumer,
    RabbitMQPublisher,
    channel_queue_arguments,
    declare_topology,
)
from commagg_observability import LogEmitter, setup_logging
from commagg_persistence_mongo import MongoConnectionManager, MongoRecordStore

from .recovery import RetrySweeper
from .sender import SimulatedSender
from .worker import ChannelWorker

logger = logging.getLogger("commagg.delivery")


async def run(settings: Settings, channel: str) -> None:
    config = settings.worker_config(channel)
    mongo = MongoConnectionManager(
        settings.mongo_url, database=settings.mongo_database
    )
    broker = RabbitMQConnectionManager(settings.broker_url)
    await mongo.connect()
    await broker.connect()
    await declare_topology(
        broker.channel, settings.channels, redelivery_limit=settings.redelivery_limit
    )

    publisher = RabbitMQPublisher(broker)
    consumer = RabbitMQConsumer(
        broker,
        prefetch_count=config.prefetch_count,
        queue_arguments=channel_queue_arguments(settings.redelivery_limit),
    )
    store = MongoRecordStore(mongo)
    worker = ChannelWorker(
        config,
        store,
        publisher,
        consumer,
        SimulatedSender(settings.fail_rate, latency=settings.send_latency),
        LogEmitter(
            publisher,
            f"{config.service_name}.{channel}",
            timeout=settings.log_publish_timeout,
        ),
    )
    sweeper = RetrySweeper(
        worker, store, interval=config.sweep_interval, grace=config.sweep_grace
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await worker.start()
    await sweeper.start()
    try:
        await stop.wait()
    finally:
        await sweeper.stop()
        await consumer.stop()
        # pending retries are persisted; the next sweep requeues them
        await worker.stop(drain=False)
        await broker.close()
        mongo.close()


def main() -> None:
    settings = Settings()
    parser = argparse.ArgumentParser(prog="commagg_delivery")
    parser.add_argument("channel", choices=settings.channels)
    args = parser.parse_args()
    setup_logging(settings.log_level, json_format=settings.log_json)
    asyncio.run(run(settings, args.channel))


if __name__ == "__main__":
    main()
