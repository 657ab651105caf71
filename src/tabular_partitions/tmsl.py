"""TMSL create-or-replace and delete documents for partitions."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields
from typing import Union

from .errors import BuildFailure

logger = logging.getLogger(__name__)

CREATE_OR_REPLACE_TEMPLATE = """{{
  "createOrReplace": {{
    "object": {{
      "database": "{database}",
      "table": "{table}",
      "partition": "{partition}"
    }},
    "partition": {{
      "name": "{partition}",
      "source": {{
        "query": "{query}",
        "dataSource": "{data_source}"
      }}
    }}
  }}
}}"""

DELETE_TEMPLATE = """{{
  "delete": {{
    "object": {{
      "database": "{database}",
      "table": "{table}",
      "partition": "{partition}"
    }}
  }}
}}"""

# Characters that break the document's string quoting when inserted verbatim.
_UNSAFE = re.compile(r'["\\\x00-\x1f]')


@dataclass(frozen=True)
class CreateOrReplace:
    database: str
    table: str
    partition: str
    query: str
    data_source: str

    kind = "createOrReplace"


@dataclass(frozen=True)
class Delete:
    database: str
    table: str
    partition: str

    kind = "delete"


PartitionOperation = Union[CreateOrReplace, Delete]


def _check_values(operation: PartitionOperation, strict: bool) -> None:
    unsafe = [
        field.name
        for field in fields(operation)
        if _UNSAFE.search(getattr(operation, field.name))
    ]
    if not unsafe:
        return
    message = (
        f"{operation.kind} document for partition '{operation.partition}' has "
        f"unescaped quote/control characters in: {', '.join(unsafe)}"
    )
    if strict:
        raise BuildFailure(message)
    logger.warning(message)


def build_document(operation: PartitionOperation, strict: bool = False) -> str:
    """Render ``operation`` into its TMSL text.

    Values are interpolated verbatim, without JSON escaping. Quotes, backslashes
    and control characters therefore corrupt the document; they are logged as
    a warning, or rejected with ``BuildFailure`` when ``strict`` is set.
    """
    _check_values(operation, strict)
    if isinstance(operation, CreateOrReplace):
        return CREATE_OR_REPLACE_TEMPLATE.format(
            database=operation.database,
            table=operation.table,
            partition=operation.partition,
            query=operation.query,
            data_source=operation.data_source,
        )
    if isinstance(operation, Delete):
        return DELETE_TEMPLATE.format(
            database=operation.database,
            table=operation.table,
            partition=operation.partition,
        )
    raise BuildFailure(f"Unsupported partition operation: {operation!r}")


__all__ = [
    "CREATE_OR_REPLACE_TEMPLATE",
    "CreateOrReplace",
    "DELETE_TEMPLATE",
    "Delete",
    "PartitionOperation",
    "build_document",
]
