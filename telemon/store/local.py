"""TELEMON — Local Fallback Store.

Key-value copy of the backend state in the local database. Used when the
backend is unreachable and as the offline cache of the last good read.
"""

import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from telemon.core.logging import get_logger
from telemon.models.store_models import LocalSetting

logger = get_logger("store.local")


class LocalConfigStore:
    """get / set / delete of JSON values keyed by name."""

    def __init__(self, engine):
        self.engine = engine

    def get(self, key: str, default: Any = None) -> Any:
        try:
            with Session(self.engine) as session:
                row = session.get(LocalSetting, key)
                if row is None:
                    return default
                return json.loads(row.value_json)
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"Error reading {key} from local store: {e}")
            return default

    def set(self, key: str, value: Any) -> bool:
        try:
            with Session(self.engine) as session:
                row = session.get(LocalSetting, key)
                if row is None:
                    row = LocalSetting(key=key, value_json=json.dumps(value))
                else:
                    row.value_json = json.dumps(value)
                    row.updated_at = datetime.now(timezone.utc)
                session.add(row)
                session.commit()
            return True
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error(f"Error saving {key} to local store: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            with Session(self.engine) as session:
                row = session.get(LocalSetting, key)
                if row is not None:
                    session.delete(row)
                    session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {key} from local store: {e}")
            return False
