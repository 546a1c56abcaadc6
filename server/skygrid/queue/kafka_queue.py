"""Kafka implementation of EntryQueue.

Entries travel as JSON messages shaped like ``IndexedEntry.to_message()``,
keyed by geohash so every entry of a cell lands on the same partition.
kafka-python is blocking, so its calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
from collections import deque
from typing import TYPE_CHECKING

import structlog
from kafka import KafkaConsumer, KafkaProducer

from skygrid.core.models import IndexedEntry

if TYPE_CHECKING:
    from kafka.consumer.fetcher import ConsumerRecord

log = structlog.get_logger()


def serialize_entry(entry: IndexedEntry) -> bytes:
    return json.dumps(entry.to_message(), separators=(",", ":")).encode("utf-8")


def deserialize_entry(payload: bytes) -> IndexedEntry:
    return IndexedEntry.from_message(json.loads(payload.decode("utf-8")))


class KafkaEntryQueue:
    """EntryQueue backed by a Kafka topic."""

    def __init__(self, bootstrap_servers: str, topic: str, group_id: str) -> None:
        self._bootstrap_servers = bootstrap_servers
        self._topic = topic
        self._group_id = group_id
        self._producer: KafkaProducer | None = None
        self._consumer: KafkaConsumer | None = None
        self._buffer: deque[ConsumerRecord] = deque()

    def _get_producer(self) -> KafkaProducer:
        if self._producer is None:
            self._producer = KafkaProducer(
                bootstrap_servers=self._bootstrap_servers,
                value_serializer=serialize_entry,
                key_serializer=lambda k: k.encode("utf-8"),
                acks="all",
                retries=3,
            )
            log.info("kafka_producer_connected", topic=self._topic)
        return self._producer

    def _get_consumer(self) -> KafkaConsumer:
        if self._consumer is None:
            self._consumer = KafkaConsumer(
                self._topic,
                bootstrap_servers=self._bootstrap_servers,
                group_id=self._group_id,
                auto_offset_reset="earliest",
                enable_auto_commit=True,
                value_deserializer=deserialize_entry,
            )
            log.info("kafka_consumer_connected", topic=self._topic,
                     group_id=self._group_id)
        return self._consumer

    async def put(self, entry: IndexedEntry) -> None:
        producer = self._get_producer()
        future = await asyncio.to_thread(
            producer.send, self._topic, key=entry.geohash, value=entry,
        )
        # Surface broker errors to the caller so the writer can count them.
        await asyncio.to_thread(future.get, timeout=10)

    async def get(self) -> IndexedEntry:
        consumer = self._get_consumer()
        while not self._buffer:
            batches = await asyncio.to_thread(consumer.poll, timeout_ms=1000)
            for records in batches.values():
                self._buffer.extend(records)
        return self._buffer.popleft().value

    def qsize(self) -> int:
        # Broker-side lag is not visible here; only locally buffered records.
        return len(self._buffer)

    async def close(self) -> None:
        if self._producer is not None:
            await asyncio.to_thread(self._producer.flush)
            await asyncio.to_thread(self._producer.close)
            self._producer = None
        if self._consumer is not None:
            await asyncio.to_thread(self._consumer.close)
            self._consumer = None
