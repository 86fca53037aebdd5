"""Runtime configuration for the extraction scheduler.

ExtractorConfig is an immutable pydantic model. Changes go through
updated(), which validates the merged values and raises
InvalidConfigurationException without touching the current instance, so a
rejected change always leaves the previous configuration in effect.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from adsb_extractor.common.exceptions import InvalidConfigurationException
from adsb_extractor.common.lxml_table_source import DEFAULT_TABLE_ID
from adsb_extractor.data_types import ExportMode


class ExtractorConfig(BaseModel):
    """Scheduler configuration.

    Attributes:
        interval_minutes: Minutes between scheduled extractions.
        max_extractions: Stop automatically after this many successful
            extractions (0 = unlimited).
        export_mode: Which files scheduled extractions export.
        history_capacity: Snapshots kept in memory (0 = unlimited).
        force_scheduled_export: Export both files on every scheduled
            extraction regardless of export_mode.
        table_id: The ``id`` of the aircraft table on the page.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    interval_minutes: int = Field(default=5, ge=1)
    max_extractions: int = Field(default=0, ge=0)
    export_mode: ExportMode = ExportMode.BOTH
    history_capacity: int = Field(default=10, ge=0)
    force_scheduled_export: bool = False
    table_id: str = Field(default=DEFAULT_TABLE_ID, min_length=1)

    @property
    def interval_seconds(self) -> float:
        return float(self.interval_minutes * 60)

    @classmethod
    def build(cls, **values: Any) -> ExtractorConfig:
        """Validate values into a config.

        Raises:
            InvalidConfigurationException: If any value is rejected.
        """
        try:
            return cls(**values)
        except ValidationError as e:
            raise InvalidConfigurationException(
                [dict(err) for err in e.errors()], values
            ) from e

    def updated(self, **changes: Any) -> ExtractorConfig:
        """Return a validated copy with the given changes applied.

        Args:
            **changes: Field values to replace.

        Returns:
            A new ExtractorConfig; this instance is left untouched.

        Raises:
            InvalidConfigurationException: If any merged value is rejected.
        """
        return self.build(**{**self.model_dump(), **changes})
