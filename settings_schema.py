from typing import Literal

from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    db_path: str = "fittrack.db"
    history_limit: int = Field(default=100, gt=0)
    default_rest_seconds: int = Field(default=90, gt=0)
    weight_unit: Literal["lbs", "kg"] = "lbs"
    log_level: str = "INFO"


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
