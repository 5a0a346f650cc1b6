#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Remove expired blood stock at every hospital.

Meant to run on a schedule (cron or similar):
    python -m hemolink.scripts.expire_stock
"""

import sys
import logging
from datetime import datetime
from typing import Dict, Optional

from ..domain.inventory import InventoryConfig
from ..services.inventory import InventoryLedger
from ..services.lookups import HOSPITALS
from ..services.mongodb import get_mongodb_service, close_mongodb_connection
from ..services.notifications import MongoNotificationGateway, NotificationDispatcher

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def expire_all(mongodb_service, ledger: InventoryLedger, now: Optional[datetime] = None) -> Dict[str, int]:
    """Expire stock hospital by hospital; returns removed counts keyed by hospital ID."""
    now = now or datetime.utcnow()
    removed = {}
    for hospital in mongodb_service.find(HOSPITALS):
        removed[hospital["id"]] = ledger.expire_stock(hospital["id"], now=now)
    return removed


def main() -> int:
    mongodb_service = get_mongodb_service()
    try:
        ledger = InventoryLedger(
            mongodb_service,
            NotificationDispatcher(MongoNotificationGateway(mongodb_service)),
            InventoryConfig.from_env()
        )
        removed = expire_all(mongodb_service, ledger)
        logger.info(
            f"Expired {sum(removed.values())} inventory records across {len(removed)} hospitals"
        )
        return 0

    except Exception as e:
        logger.error(f"Failed to expire stock: {e}")
        return 1
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    sys.exit(main())
