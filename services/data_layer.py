"""Wiring of the cache, record store and the services built on it."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from db.durable_store import DurableStore
from services.appointments import AppointmentService
from services.backup import BackupService
from services.cache import CacheLayer, Clock, utc_now
from services.notifications import NotificationService
from services.statistics import StatisticsService
from services.storage import RecordStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DataLayer:
    """One cache and record store shared by every service of the process."""

    cache: CacheLayer
    store: RecordStore
    notifications: NotificationService
    appointments: AppointmentService
    statistics: StatisticsService
    backups: BackupService


def build_data_layer(
    durable_store: DurableStore,
    *,
    strict_validation: bool = False,
    clock: Clock = utc_now,
) -> DataLayer:
    cache = CacheLayer(durable_store, clock=clock)
    store = RecordStore(cache, strict_validation=strict_validation)
    notifications = NotificationService(store)
    logger.info(
        "Data layer ready (%s, strict_validation=%s)",
        type(durable_store).__name__,
        strict_validation,
    )
    return DataLayer(
        cache=cache,
        store=store,
        notifications=notifications,
        appointments=AppointmentService(store, notifications),
        statistics=StatisticsService(store),
        backups=BackupService(store),
    )
