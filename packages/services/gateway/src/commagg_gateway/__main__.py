"""Run the gateway: ``python -m commagg_gateway``."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import uvicorn

from commagg_core.config import Settings
from commagg_health import HealthRegistry, MessageBrokerHealthCheck, StoreHealthCheck
from commagg_messaging.rabbitmq import (
    RabbitMQConnectionManager,
    RabbitMQPublisher,
    declare_topology,
)
from commagg_observability import LogEmitter, setup_logging
from commagg_persistence_mongo import MongoConnectionManager, MongoRecordStore

from .api import create_app
from .service import DedupGateway

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger("commagg.gateway")


def build_app(settings: Settings) -> FastAPI:
    mongo = MongoConnectionManager(
        settings.mongo_url, database=settings.mongo_database
    )
    broker = RabbitMQConnectionManager(settings.broker_url)
    store = MongoRecordStore(mongo)
    publisher = RabbitMQPublisher(broker)
    config = settings.gateway_config()
    emitter = LogEmitter(
        publisher, config.service_name, timeout=settings.log_publish_timeout
    )
    gateway = DedupGateway(store, publisher, emitter, config)

    health = HealthRegistry()
    health.register("record_store", StoreHealthCheck(store))
    health.register("broker", MessageBrokerHealthCheck(publisher))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await mongo.connect()
        await store.ensure_indexes()
        await broker.connect()
        await declare_topology(
            broker.channel,
            settings.channels,
            redelivery_limit=settings.redelivery_limit,
        )
        logger.info("Gateway ready (channels=%s)", ",".join(settings.channels))
        yield
        await broker.close()
        mongo.close()
        logger.info("Gateway stopped")

    return create_app(gateway, health=health, lifespan=lifespan)


def main() -> None:
    settings = Settings()
    setup_logging(settings.log_level, json_format=settings.log_json)
    uvicorn.run(
        build_app(settings),
        host=settings.gateway_host,
        port=settings.gateway_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
