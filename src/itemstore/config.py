"""Store configuration.

Settings come from ``ITEMSTORE_*`` environment variables (a ``.env`` file is
loaded by the CLI entry point before this module reads them).
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from itemstore.logger import get_logger
from itemstore.utils import default_data_path

logger = get_logger("config")

ENV_PREFIX = "ITEMSTORE_"


class StoreConfig(BaseModel):
    """Configuration for an item repository."""

    model_config = ConfigDict(frozen=True)

    data_path: Path = Field(default_factory=default_data_path, description="JSON file holding the collection")
    watch: bool = Field(True, description="Watch the data file for external changes")
    aggregate_field: str = Field("price", min_length=1, description="Numeric field averaged by stats")
    write_retries: int = Field(3, ge=0, description="Compare-and-swap retries for create")
    create_missing: bool = Field(False, description="Create an empty collection file on start if absent")
    log_level: str = Field("INFO", description="loguru level name")
    log_file: Optional[str] = Field(None, description="Log file path (defaults to itemstore.log)")

    @classmethod
    def from_env(cls, **overrides) -> "StoreConfig":
        """
        Build a config from ``ITEMSTORE_*`` environment variables.

        Args:
            **overrides: Values that win over the environment (None values are ignored)

        Returns:
            StoreConfig

        Raises:
            pydantic.ValidationError: If a value cannot be coerced
        """
        values: dict[str, object] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls.model_validate(values)
        logger.debug(f"Loaded store config: {config.model_dump()}")
        return config
