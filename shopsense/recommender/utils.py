"""Utility functions for loading catalog and behavior data.

This module reads product catalogs and behavior logs from CSV files into the
models used by the recommender. Hosts with a database normally implement the
repository interfaces directly; these loaders back the in-memory
implementations, the CLI and the tests.
"""

import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from shopsense.recommender.models import BehaviorAction, BehaviorEvent, Product
from shopsense.service.exceptions import DataFileNotFoundError, InvalidDataError

# Configure module logger
logger = logging.getLogger(__name__)

# Separator between tags inside the CSV "tags" column
TAG_SEPARATOR = "|"

PRODUCT_COLUMNS = {"id", "title", "price"}
BEHAVIOR_COLUMNS = {"user_id", "product_id", "action", "timestamp"}


def _read_csv(csv_path: str, required_columns: set) -> pd.DataFrame:
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise DataFileNotFoundError(str(csv_path))

    logger.info(f"Loading CSV from {csv_path}")
    df = pd.read_csv(csv_file, dtype={"id": str, "user_id": str, "product_id": str})

    if not required_columns.issubset(df.columns):
        missing = sorted(required_columns - set(df.columns))
        raise InvalidDataError(
            f"CSV {csv_path} missing required columns: {missing}",
            details={"path": str(csv_path), "missing_columns": missing},
        )

    return df


def parse_tags(value: object) -> List[str]:
    """Split a tag cell into tags, dropping blanks.

    Example:
        >>> parse_tags("audio| bluetooth |")
        ['audio', 'bluetooth']
    """
    if _is_missing(value):
        return []
    return [tag.strip() for tag in str(value).split(TAG_SEPARATOR) if tag.strip()]


def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, float) and pd.isna(value))


def _optional_str(value: object) -> Optional[str]:
    return None if _is_missing(value) else str(value)


def _number(value: object, default: float) -> float:
    return default if _is_missing(value) else float(value)


def load_products_csv(csv_path: str) -> List[Product]:
    """Load a product catalog from CSV.

    Required columns are id, title and price (minor units). Optional columns
    are slug, description, tags ("|"-separated), stock and rating.

    Args:
        csv_path: Path to the catalog CSV.

    Returns:
        Products in file order.

    Raises:
        DataFileNotFoundError: If the file does not exist.
        InvalidDataError: If required columns are missing or a row is invalid.
    """
    df = _read_csv(csv_path, PRODUCT_COLUMNS)

    products = []
    for row_number, row in enumerate(df.to_dict(orient="records"), start=1):
        try:
            products.append(
                Product(
                    id=str(row["id"]),
                    slug=_optional_str(row.get("slug")) or "",
                    title=str(row["title"]),
                    description=_optional_str(row.get("description")),
                    price=int(row["price"]),
                    tags=parse_tags(row.get("tags")),
                    stock=int(_number(row.get("stock"), 0)),
                    rating=_number(row.get("rating"), 0.0),
                )
            )
        except (TypeError, ValueError) as e:
            raise InvalidDataError(
                f"Invalid product on row {row_number} of {csv_path}: {e}",
                details={"path": str(csv_path), "row": row_number},
            ) from e

    logger.info(f"Loaded {len(products)} products")
    return products


def load_behavior_csv(csv_path: str) -> List[BehaviorEvent]:
    """Load behavior events from CSV.

    Columns are user_id, product_id, action (VIEW, ADD_TO_CART or PURCHASE)
    and timestamp. Naive timestamps are read as UTC.

    Raises:
        DataFileNotFoundError: If the file does not exist.
        InvalidDataError: If required columns are missing or a row is invalid.
    """
    df = _read_csv(csv_path, BEHAVIOR_COLUMNS)
    if df.empty:
        logger.info("Loaded 0 behavior events")
        return []

    try:
        timestamps = pd.to_datetime(df["timestamp"], utc=True)
    except (TypeError, ValueError) as e:
        raise InvalidDataError(
            f"Invalid timestamps in {csv_path}: {e}",
            details={"path": str(csv_path)},
        ) from e

    events = []
    for row_number, (row, timestamp) in enumerate(
        zip(df.to_dict(orient="records"), timestamps), start=1
    ):
        try:
            events.append(
                BehaviorEvent(
                    user_id=str(row["user_id"]),
                    product_id=str(row["product_id"]),
                    action=BehaviorAction(str(row["action"]).upper()),
                    timestamp=timestamp.to_pydatetime(),
                )
            )
        except ValueError as e:
            raise InvalidDataError(
                f"Invalid behavior event on row {row_number} of {csv_path}: {e}",
                details={"path": str(csv_path), "row": row_number},
            ) from e

    logger.info(f"Loaded {len(events)} behavior events")
    return events
