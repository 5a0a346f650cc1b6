# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, orchestration and external integrations.
"""

from .mongodb import MongoDBService, get_mongodb_service, close_mongodb_connection
from .notifications import NotificationGateway, MongoNotificationGateway, NotificationDispatcher
from .geo_index import GeoIndex
from .matching import MatchingEngine, MatchResult
from .inventory import InventoryLedger
from .requests import BloodRequestService

__all__ = [
    "MongoDBService",
    "get_mongodb_service",
    "close_mongodb_connection",
    "NotificationGateway",
    "MongoNotificationGateway",
    "NotificationDispatcher",
    "GeoIndex",
    "MatchingEngine",
    "MatchResult",
    "InventoryLedger",
    "BloodRequestService"
]
