#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create the MongoDB indexes used by the field CRM collections.

    python scripts/create_indexes.py           # create, then list
    python scripts/create_indexes.py --list    # list only
"""

import argparse
import sys
import os
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.mongodb import get_mongodb_service, close_mongodb_connection

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "users", "clients", "branch_locations", "contact_persons", "meetings",
    "projects", "expenses", "location_samples", "audit_logs"
)


def list_indexes(mongodb_service) -> None:
    for name in COLLECTIONS:
        indexes = sorted(mongodb_service.get_collection(name).index_information())
        logger.info(f"{name}: {', '.join(indexes) or '(none)'}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--list", action="store_true", help="only list existing indexes")
    args = parser.parse_args(argv)

    mongodb_service = get_mongodb_service()
    try:
        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health.get('error')}")
            return 1

        logger.info(f"Connected to MongoDB {health['version']}, database {health['database']}")
        if not args.list:
            mongodb_service.create_indexes()
        list_indexes(mongodb_service)
        return 0
    except Exception as e:
        logger.error(f"Index maintenance failed: {e}")
        return 1
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    sys.exit(main())
