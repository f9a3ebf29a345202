from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class StyleConfig(BaseModel):
    dpi: int = Field(default=100, ge=10)
    font_size: float = Field(default=10.0, gt=0)
    line_width: float = Field(default=1.5, gt=0)
    figure_size: Tuple[float, float] = (8.0, 10.0)
    palette: str = "viridis"
    write_metadata: bool = False


class AppConfig(BaseModel):
    archive_root: Path = Path.home() / "bufkit"
    output_dir: Path = Path("images")
    data_dir: Path = Path("text")
    days_back: int = Field(default=2, ge=0)
    models: Optional[List[str]] = None
    summary: bool = False
    log_level: str = "INFO"
    style: StyleConfig = Field(default_factory=StyleConfig)

    @field_validator("models")
    @classmethod
    def _known_models(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        from ..sources import Model

        return [Model.parse(v).name_str for v in value]

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level '{value}'")
        return level
